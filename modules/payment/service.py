"""
Payment Service
=================
Payment status tracking for orders: staff updates and the gateway callback.

Refunds are not handled here; `refunded` is only ever written by
order_service.process_refund together with the order moving to `returned`.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from common.exceptions import (
    admin_action, action_ok, ValidationError, NotFoundError,
    ConcurrencyError, InvalidTransitionError,
)
from common.helpers import now_utc
from common.revalidation import revalidate_path
from modules.admin.audit_service import audit_service
from modules.admin.permissions import Capability, PermissionSet, require_capability
from modules.order.models import Order, PaymentStatus, parse_enum

logger = logging.getLogger("jradiance.payment")


PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.COMPLETED, PaymentStatus.FAILED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PENDING, PaymentStatus.COMPLETED}),
    PaymentStatus.COMPLETED: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
}


def can_transition_payment(current, new) -> bool:
    current_status = parse_enum(PaymentStatus, current)
    new_status = parse_enum(PaymentStatus, new)
    if current_status is None or new_status is None:
        return False
    return new_status in PAYMENT_TRANSITIONS[current_status]


class PaymentService:

    # ==========================================
    # Staff update
    # ==========================================

    @admin_action("Failed to update payment status")
    def update_payment_status(
        self, db: Session, perms: Optional[PermissionSet], order_id: str, new_status: str,
    ) -> dict:
        require_capability(perms, Capability.MANAGE_ORDERS)

        target = parse_enum(PaymentStatus, new_status)
        if target is None:
            raise ValidationError(f"Unknown payment status: {new_status}")
        if target == PaymentStatus.REFUNDED:
            raise ValidationError("Use the refund action to mark a payment refunded")

        order = self._load(db, order_id)
        current = PaymentStatus(order.payment_status)
        if target not in PAYMENT_TRANSITIONS[current]:
            raise InvalidTransitionError(current.value, target.value, field="payment_status")

        self._swap(db, order.id, current, target)
        audit_service.record(
            db, perms.principal_id, "payment_status_updated", "order", order.id,
            {"old_payment_status": current.value, "new_payment_status": target.value},
        )
        db.commit()
        logger.info(f"Order {order_id} payment: {current.value} -> {target.value}")
        revalidate_path("/admin/orders", "/admin/dashboard")
        return action_ok("Payment status updated")

    # ==========================================
    # Gateway callback
    # ==========================================

    @admin_action("Failed to record payment")
    def apply_gateway_callback(
        self, db: Session, order_id: str, succeeded: bool, reference: str = None,
    ) -> dict:
        """
        Record a gateway outcome. A repeated success callback for an order
        that is already completed is a no-op; anything already settled
        (completed/refunded) is never moved back.
        """
        order = self._load(db, order_id)
        current = PaymentStatus(order.payment_status)
        target = PaymentStatus.COMPLETED if succeeded else PaymentStatus.FAILED

        if current == target or current in (PaymentStatus.COMPLETED, PaymentStatus.REFUNDED):
            logger.info(f"Callback for order {order_id} ignored (payment already {current.value})")
            return action_ok("Payment already processed", payment_status=current.value)

        if target not in PAYMENT_TRANSITIONS[current]:
            raise InvalidTransitionError(current.value, target.value, field="payment_status")

        self._swap(db, order.id, current, target)
        audit_service.record(
            db, None, "payment_status_updated", "order", order.id,
            {
                "old_payment_status": current.value,
                "new_payment_status": target.value,
                "reference": reference,
                "source": "gateway",
            },
        )
        db.commit()
        logger.info(f"Gateway callback order {order_id}: {current.value} -> {target.value} (ref={reference})")
        revalidate_path("/admin/orders", "/admin/dashboard")
        return action_ok("Payment recorded", payment_status=target.value)

    # ==========================================
    # Private Helpers
    # ==========================================

    def _load(self, db: Session, order_id: str) -> Order:
        order = (
            db.query(Order)
            .filter(Order.id == order_id)
            .populate_existing()
            .with_for_update()
            .first()
        )
        if not order:
            raise NotFoundError("Order not found")
        return order

    def _swap(self, db: Session, order_id: str, current: PaymentStatus, target: PaymentStatus) -> None:
        updated = (
            db.query(Order)
            .filter(Order.id == order_id, Order.payment_status == current.value)
            .update({Order.payment_status: target.value, Order.updated_at: now_utc()})
        )
        if updated != 1:
            raise ConcurrencyError("Payment status was modified by another user. Please reload and try again.")


payment_service = PaymentService()
