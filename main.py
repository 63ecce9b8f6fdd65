"""
JRadiance - Application Entry Point
=====================================
FastAPI app initialization, middleware, and router registration.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from config import settings
from config.database import SessionLocal, Base, engine
from config.logging import setup_logging
from common.exceptions import JRadianceError, action_fail, action_response
from common.helpers import get_real_ip
from modules.admin.audit_service import audit_service
from modules.auth.deps import load_principal, principal_id_from_request
from modules.auth.guard import (
    evaluate_route, evaluate_on_error, is_admin_path, is_protected_customer_path,
)

setup_logging()
logger = logging.getLogger("jradiance.app")
guard_logger = logging.getLogger("jradiance.guard")


# ==========================================
# Import ALL models so Alembic/Base can see them
# ==========================================
from modules.user.models import Profile  # noqa: F401,E402
from modules.catalog.models import Product  # noqa: F401,E402
from modules.order.models import Order, OrderItem  # noqa: F401,E402
from modules.issue.models import Issue  # noqa: F401,E402

# ==========================================
# Import routers
# ==========================================
from modules.auth.routes import router as auth_router  # noqa: E402
from modules.admin.routes import router as admin_router  # noqa: E402
from modules.user.admin_routes import router as user_admin_router  # noqa: E402
from modules.catalog.admin_routes import router as catalog_admin_router  # noqa: E402
from modules.order.admin_routes import router as order_admin_router  # noqa: E402
from modules.order.routes import router as order_router  # noqa: E402
from modules.payment.routes import router as payment_router  # noqa: E402
from modules.issue.admin_routes import router as issue_admin_router  # noqa: E402
from modules.issue.routes import router as issue_router  # noqa: E402
from modules.shop.routes import router as shop_router  # noqa: E402


@asynccontextmanager
async def lifespan(app):
    # Auto-create any missing tables (safe for existing tables)
    Base.metadata.create_all(bind=engine)
    logger.info("JRadiance started")
    yield


# ==========================================
# Create App
# ==========================================
app = FastAPI(
    title="JRadiance",
    description="Storefront back-office API",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
    lifespan=lifespan,
)


# ==========================================
# Exception handler: business errors → JSON result
# ==========================================
@app.exception_handler(JRadianceError)
async def business_error_handler(request: Request, exc: JRadianceError):
    return action_response(action_fail(exc.message, exc.code))


# ==========================================
# Middleware: Route Guard
# ==========================================
@app.middleware("http")
async def route_guard(request: Request, call_next):
    """Redirect unauthorized requests away from admin and account pages."""
    path = request.url.path
    if not (is_admin_path(path) or is_protected_customer_path(path)):
        return await call_next(request)

    principal = None
    has_session = principal_id_from_request(request) is not None
    db = SessionLocal()
    try:
        principal = load_principal(db, request)
        decision = evaluate_route(path, principal, has_session=has_session)
    except SQLAlchemyError:
        guard_logger.exception(f"Session resolution failed for {path}")
        decision = evaluate_on_error(path)
    finally:
        db.close()

    if not decision.allow:
        guard_logger.info(f"{request.method} {path} -> {decision.redirect_to}")
        response = RedirectResponse(decision.redirect_to, status_code=302)
        if decision.sign_out:
            response.delete_cookie(settings.AUTH_COOKIE)
        return response

    if decision.log_access:
        audit_service.record_best_effort(
            SessionLocal, principal.id, "page_access",
            resource_type="admin_page",
            changes={"path": path, "method": request.method},
            ip_address=get_real_ip(request),
            user_agent=request.headers.get("user-agent"),
        )

    return await call_next(request)


# ==========================================
# Middleware: No-Cache for Admin pages
# ==========================================
# Registered after route_guard so it also wraps the guard's redirects.
@app.middleware("http")
async def no_cache_admin(request: Request, call_next):
    """Prevent caching of admin responses so stats are always fresh."""
    response = await call_next(request)
    if is_admin_path(request.url.path):
        response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
        response.headers["Pragma"] = "no-cache"
        response.headers["Expires"] = "0"
    return response


# ==========================================
# Register Routers
# ==========================================
app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(user_admin_router)
app.include_router(catalog_admin_router)
app.include_router(order_admin_router)
app.include_router(issue_admin_router)
app.include_router(order_router)
app.include_router(payment_router)
app.include_router(issue_router)
app.include_router(shop_router)


# ==========================================
# Health check
# ==========================================
@app.get("/health")
async def health():
    return {"status": "ok", "version": "1.0.0"}
