"""
Order Module - Admin Routes
==============================
Order management for staff: list, detail, status transition, payment
status, cancel, refund. Every handler passes the resolved PermissionSet to
the service, which enforces manage_orders itself.
"""

from typing import Optional

from fastapi import APIRouter, Request, Depends, Form, Query
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import action_response
from common.security import csrf_check
from modules.admin.permissions import PermissionSet
from modules.auth.deps import current_permissions
from modules.order.service import order_service, OrderFilter
from modules.payment.service import payment_service

router = APIRouter(prefix="/admin/orders", tags=["order-admin"])


@router.get("")
async def admin_orders(
    status: str = Query(None),
    payment_status: str = Query(None),
    user_id: str = Query(None),
    offset: int = Query(0, ge=0),
    limit: int = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    filters = OrderFilter(
        status=status, payment_status=payment_status, user_id=user_id,
        offset=offset, limit=limit,
    )
    return action_response(order_service.list_orders(db, perms, filters))


@router.get("/{order_id}")
async def admin_order_detail(
    order_id: str,
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    return action_response(order_service.get_order(db, perms, order_id))


@router.post("/{order_id}/status")
async def update_order_status(
    request: Request,
    order_id: str,
    status: str = Form(...),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    csrf_check(request, csrf_token)
    return action_response(order_service.transition_status(db, perms, order_id, status))


@router.post("/{order_id}/payment-status")
async def update_payment_status(
    request: Request,
    order_id: str,
    payment_status: str = Form(...),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    csrf_check(request, csrf_token)
    return action_response(payment_service.update_payment_status(db, perms, order_id, payment_status))


@router.post("/{order_id}/cancel")
async def cancel_order_admin(
    request: Request,
    order_id: str,
    reason: str = Form(""),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    """Staff cancels a pending/confirmed order; stock is released."""
    csrf_check(request, csrf_token)
    return action_response(order_service.cancel_order(db, perms, order_id, reason=reason))


@router.post("/{order_id}/refund")
async def refund_order(
    request: Request,
    order_id: str,
    amount: str = Form(""),
    reason: str = Form(""),
    csrf_token: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    csrf_check(request, csrf_token)
    result = order_service.process_refund(
        db, perms, order_id, amount=amount or None, reason=reason,
    )
    return action_response(result)
