"""
Admin Module - Dashboard & Logs Routes
========================================
Dashboard statistics, audit log viewer, sales log, and the caller's own
capability map.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import action_ok, action_response
from modules.admin.audit_service import audit_service
from modules.admin.dashboard_service import dashboard_service
from modules.admin.permissions import PermissionSet
from modules.auth.deps import current_permissions

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/dashboard")
async def dashboard(
    period: str = Query("all"),
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    return action_response(dashboard_service.dashboard_summary(db, perms, period))


@router.get("/audit-log")
async def audit_log(
    limit: int = Query(100, ge=1, le=1000),
    resource_type: str = Query(None),
    resource_id: str = Query(None),
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    result = audit_service.list_logs(
        db, perms, limit, resource_type=resource_type, resource_id=resource_id,
    )
    return action_response(result)


@router.get("/sales-log")
async def sales_log(
    period: str = Query("all"),
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    return action_response(dashboard_service.sales_log(db, perms, period))


@router.get("/permissions")
async def my_permissions(perms: Optional[PermissionSet] = Depends(current_permissions)):
    if perms is None:
        return action_response(action_ok(permissions=None))
    return action_response(action_ok(permissions=perms.to_dict()))
