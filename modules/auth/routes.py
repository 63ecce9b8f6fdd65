"""
Auth Module - Routes
=====================
Admin login/logout and customer sign-up/sign-in/sign-out.

NOTE: Unified auth: single auth_token cookie for every principal.
"""

from fastapi import APIRouter, Request, Depends, Form
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from config.database import get_db
from config.settings import AUTH_COOKIE, ADMIN_LOGIN_PATH, ADMIN_DASHBOARD_PATH
from common.exceptions import JRadianceError, action_ok, action_fail, action_response
from common.helpers import get_real_ip, safe_next_url
from common.security import new_csrf_token, csrf_check, get_cookie_kwargs, create_token
from modules.auth.service import auth_service

router = APIRouter(tags=["auth"])


def _with_csrf(result: dict):
    """JSON response carrying a fresh CSRF token (also set as cookie)."""
    csrf = new_csrf_token()
    result.setdefault("data", {})["csrf_token"] = csrf
    response = action_response(result)
    response.set_cookie("csrf_token", csrf, httponly=True, samesite="lax")
    return response


def _signed_in(result: dict, token: str):
    response = action_response(result)
    response.set_cookie(AUTH_COOKIE, token, **get_cookie_kwargs())
    return response


# ==========================================
# 🔐 Admin
# ==========================================

@router.get(ADMIN_LOGIN_PATH)
async def admin_login_page():
    return _with_csrf(action_ok())


@router.post(ADMIN_LOGIN_PATH)
async def admin_login(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    csrf_token: str = Form(""),
    db: Session = Depends(get_db),
):
    csrf_check(request, csrf_token)
    try:
        token = auth_service.admin_login(
            db, email, password,
            ip_address=get_real_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    except JRadianceError as e:
        db.rollback()
        return action_response(action_fail(e.message, e.code))

    return _signed_in(action_ok("Login successful", redirect=ADMIN_DASHBOARD_PATH), token)


@router.post("/admin/logout")
async def admin_logout():
    response = RedirectResponse(ADMIN_LOGIN_PATH, status_code=302)
    response.delete_cookie(AUTH_COOKIE)
    response.delete_cookie("csrf_token")
    return response


# ==========================================
# 🛍️ Customer
# ==========================================

@router.get("/shop/auth")
async def customer_auth_page(redirect: str = ""):
    return _with_csrf(action_ok(redirect=safe_next_url(redirect)))


@router.post("/shop/auth/signup")
async def customer_signup(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    full_name: str = Form(""),
    phone: str = Form(""),
    redirect: str = Form(""),
    csrf_token: str = Form(""),
    db: Session = Depends(get_db),
):
    csrf_check(request, csrf_token)
    try:
        user = auth_service.register(db, email, password, full_name=full_name, phone=phone)
    except JRadianceError as e:
        return action_response(action_fail(e.message, e.code))

    token = create_token({"sub": user.id})
    result = action_ok("Account created", redirect=safe_next_url(redirect, "/shop"))
    return _signed_in(result, token)


@router.post("/shop/auth/login")
async def customer_login(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    redirect: str = Form(""),
    csrf_token: str = Form(""),
    db: Session = Depends(get_db),
):
    csrf_check(request, csrf_token)
    try:
        token = auth_service.customer_login(db, email, password)
    except JRadianceError as e:
        return action_response(action_fail(e.message, e.code))

    return _signed_in(action_ok("Login successful", redirect=safe_next_url(redirect, "/shop")), token)


@router.get("/shop/auth/logout")
async def customer_logout():
    """Clear auth cookies and redirect to the shop."""
    response = RedirectResponse("/shop", status_code=302)
    response.delete_cookie(AUTH_COOKIE)
    response.delete_cookie("csrf_token")
    return response
