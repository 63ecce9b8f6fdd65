"""
User Module - Admin Routes
============================
Chief-admin user management: listings, promote, demote, toggle, delete.
The route guard already keeps non-chief staff away from these paths; the
service re-checks manage_users on every call.
"""

from typing import Optional

from fastapi import APIRouter, Request, Depends, Form
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import action_response
from common.security import csrf_check
from modules.admin.permissions import PermissionSet
from modules.auth.deps import current_permissions
from modules.user.admin_service import user_admin_service

router = APIRouter(tags=["user-admin"])


@router.get("/admin/users")
async def list_users(
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    return action_response(user_admin_service.list_users(db, perms))


@router.get("/admin/agents")
async def list_agents(
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    return action_response(user_admin_service.list_agents(db, perms))


@router.post("/admin/users/{user_id}/promote")
async def promote_user(
    request: Request,
    user_id: str,
    role: str = Form(...),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    csrf_check(request, csrf_token)
    return action_response(user_admin_service.promote_user(db, perms, user_id, role))


@router.post("/admin/users/{user_id}/demote")
async def demote_user(
    request: Request,
    user_id: str,
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    csrf_check(request, csrf_token)
    return action_response(user_admin_service.demote_user(db, perms, user_id))


@router.post("/admin/users/{user_id}/toggle")
async def toggle_user(
    request: Request,
    user_id: str,
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    csrf_check(request, csrf_token)
    return action_response(user_admin_service.toggle_user_status(db, perms, user_id))


@router.post("/admin/users/{user_id}/delete")
async def delete_user(
    request: Request,
    user_id: str,
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    csrf_check(request, csrf_token)
    return action_response(user_admin_service.delete_user(db, perms, user_id))
