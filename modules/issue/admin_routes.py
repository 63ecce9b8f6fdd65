"""
Issue Module - Admin Routes
=============================
Issue tracker for admins: list, detail, report, status, priority, and the
chief-admin-only assign and delete. The route guard keeps agents off
/admin/issues; the service re-checks the capability on every call.
"""

from typing import Optional

from fastapi import APIRouter, Request, Depends, Form, Query
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import action_response
from common.security import csrf_check
from modules.admin.permissions import PermissionSet
from modules.auth.deps import current_permissions
from modules.issue.service import issue_service, IssueFilter

router = APIRouter(prefix="/admin/issues", tags=["issue-admin"])


@router.get("")
async def admin_issues(
    status: str = Query(None),
    type: str = Query(None),
    priority: str = Query(None),
    offset: int = Query(0, ge=0),
    limit: int = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    filters = IssueFilter(status=status, type=type, priority=priority, offset=offset, limit=limit)
    return action_response(issue_service.list_issues(db, perms, filters))


@router.get("/{issue_id}")
async def admin_issue_detail(
    issue_id: str,
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    return action_response(issue_service.get_issue(db, perms, issue_id))


@router.post("")
async def create_issue_admin(
    request: Request,
    type: str = Form(...),
    title: str = Form(""),
    description: str = Form(""),
    priority: str = Form(""),
    customer_email: str = Form(""),
    customer_order_id: str = Form(""),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    csrf_check(request, csrf_token)
    data = {
        "type": type, "title": title, "description": description, "priority": priority,
        "customer_email": customer_email, "customer_order_id": customer_order_id,
    }
    return action_response(issue_service.create_issue(db, perms, data), success_status=201)


@router.post("/{issue_id}/status")
async def update_issue_status(
    request: Request,
    issue_id: str,
    status: str = Form(...),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    csrf_check(request, csrf_token)
    return action_response(issue_service.update_issue_status(db, perms, issue_id, status))


@router.post("/{issue_id}/priority")
async def update_issue_priority(
    request: Request,
    issue_id: str,
    priority: str = Form(...),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    csrf_check(request, csrf_token)
    return action_response(issue_service.update_issue_priority(db, perms, issue_id, priority))


@router.post("/{issue_id}/assign")
async def assign_issue(
    request: Request,
    issue_id: str,
    assignee_id: str = Form(...),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    csrf_check(request, csrf_token)
    return action_response(issue_service.assign_issue(db, perms, issue_id, assignee_id))


@router.post("/{issue_id}/delete")
async def delete_issue(
    request: Request,
    issue_id: str,
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    csrf_check(request, csrf_token)
    return action_response(issue_service.delete_issue(db, perms, issue_id))
