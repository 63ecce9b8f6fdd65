"""
Order Module - Service Layer
===============================
Checkout, order queries, and the order lifecycle state machine
(status transition, cancellation, refund) with stock restoration.

Every status write is a compare-and-swap on the status read at the start of
the same transaction; stock restoration, the status write, and the audit row
commit together.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from config.settings import LOW_STOCK_THRESHOLD, ORDER_NUMBER_PREFIX, CURRENCY_SYMBOL
from common.exceptions import (
    admin_action, action_ok, JRadianceError, ValidationError, NotFoundError,
    ConcurrencyError, InvalidTransitionError,
)
from common.helpers import now_utc, to_money, format_money, generate_order_number
from common.revalidation import revalidate_path
from modules.admin.audit_service import audit_service
from modules.admin.permissions import Capability, PermissionSet, require_capability
from modules.catalog.models import Product
from modules.order.models import (
    Order, OrderItem, OrderStatus, PaymentStatus, parse_enum,
    build_order, build_order_item,
)

logger = logging.getLogger("jradiance.order")


# ==========================================
# Transition table
# ==========================================

ORDER_TRANSITIONS = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.RETURNED}),
    OrderStatus.DELIVERED: frozenset(),   # returned only via process_refund
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.RETURNED: frozenset(),
}

CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})
REFUNDABLE_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.SHIPPED})
STOCK_RESTORING_STATUSES = frozenset({OrderStatus.CANCELLED, OrderStatus.RETURNED})

ORDER_PAGES = ("/admin/orders", "/admin/dashboard")


def can_transition(current, new) -> bool:
    current_status = parse_enum(OrderStatus, current)
    new_status = parse_enum(OrderStatus, new)
    if current_status is None or new_status is None:
        return False
    return new_status in ORDER_TRANSITIONS[current_status]


@dataclass(frozen=True)
class OrderFilter:
    """Every supported order-list filter. None means "don't filter"."""
    status: Optional[str] = None
    payment_status: Optional[str] = None
    user_id: Optional[str] = None
    offset: int = 0
    limit: Optional[int] = None


@dataclass(frozen=True)
class CheckoutLine:
    product_id: str
    quantity: int


class OrderService:

    # ==========================================
    # Query
    # ==========================================

    def get_order_by_id(self, db: Session, order_id: str) -> Optional[Order]:
        return db.query(Order).filter(Order.id == order_id).first()

    def get_customer_orders(self, db: Session, user_id: str) -> List[Order]:
        return db.query(Order).filter(
            Order.user_id == user_id,
        ).order_by(desc(Order.created_at)).all()

    def get_orders(self, db: Session, filters: OrderFilter = None) -> List[Order]:
        filters = filters or OrderFilter()
        q = db.query(Order).order_by(desc(Order.created_at))
        if filters.status:
            if parse_enum(OrderStatus, filters.status) is None:
                raise ValidationError(f"Unknown order status: {filters.status}")
            q = q.filter(Order.status == filters.status)
        if filters.payment_status:
            if parse_enum(PaymentStatus, filters.payment_status) is None:
                raise ValidationError(f"Unknown payment status: {filters.payment_status}")
            q = q.filter(Order.payment_status == filters.payment_status)
        if filters.user_id:
            q = q.filter(Order.user_id == filters.user_id)
        if filters.limit:
            q = q.offset(max(0, filters.offset)).limit(filters.limit)
        return q.all()

    @admin_action("Failed to fetch orders")
    def list_orders(self, db: Session, perms: Optional[PermissionSet], filters: OrderFilter = None) -> dict:
        require_capability(perms, Capability.MANAGE_ORDERS)
        orders = self.get_orders(db, filters)
        return action_ok(orders=[o.to_dict() for o in orders])

    @admin_action("Failed to fetch order")
    def get_order(self, db: Session, perms: Optional[PermissionSet], order_id: str) -> dict:
        require_capability(perms, Capability.MANAGE_ORDERS)
        order = self.get_order_by_id(db, order_id)
        if not order:
            raise NotFoundError("Order not found")
        return action_ok(order=order.to_dict())

    # ==========================================
    # Checkout
    # ==========================================

    @admin_action("Failed to place order")
    def create_order(
        self,
        db: Session,
        user_id: str,
        lines: List[CheckoutLine],
        shipping_address: str,
        billing_address: str = None,
        notes: str = None,
        tax=0,
        shipping_cost=0,
        estimated_delivery_date=None,
    ) -> dict:
        """
        Create a pending order for `user_id`:
        1. Load the requested products (must exist and be active)
        2. Snapshot name + price into order items
        3. Deduct stock (conditional update, never below zero)
        4. Insert order + items, record low-stock alerts
        """
        if not user_id:
            raise ValidationError("Not authenticated")
        if not lines:
            raise ValidationError("Cart is empty")
        if not (shipping_address or "").strip():
            raise ValidationError("Shipping address is required")

        quantities = {}
        for line in lines:
            if not isinstance(line.quantity, int) or line.quantity <= 0:
                raise ValidationError("Quantity must be a positive integer")
            quantities[line.product_id] = quantities.get(line.product_id, 0) + line.quantity

        products = {
            p.id: p for p in
            db.query(Product).filter(Product.id.in_(list(quantities))).all()
        }

        items = []
        for product_id, quantity in quantities.items():
            product = products.get(product_id)
            if not product or not product.is_active:
                raise ValidationError("Product is no longer available")
            items.append(build_order_item(product.id, product.name, quantity, product.effective_price))

        order = build_order(
            user_id=user_id,
            order_number=self._unique_order_number(db),
            items=items,
            tax=tax,
            shipping_cost=shipping_cost,
            shipping_address=shipping_address.strip(),
            billing_address=(billing_address or "").strip() or None,
            notes=notes,
            estimated_delivery_date=estimated_delivery_date,
        )

        for product_id, quantity in quantities.items():
            updated = (
                db.query(Product)
                .filter(Product.id == product_id, Product.stock_quantity >= quantity)
                .update({Product.stock_quantity: Product.stock_quantity - quantity})
            )
            if updated != 1:
                raise ValidationError(f"Insufficient stock for {products[product_id].name}")

        db.add(order)
        db.flush()

        for product_id in quantities:
            remaining = db.query(Product.stock_quantity).filter(Product.id == product_id).scalar()
            if remaining is not None and remaining < LOW_STOCK_THRESHOLD:
                audit_service.record(
                    db, None, "low_stock_alert", "product", product_id,
                    {"remaining_stock": remaining},
                )

        db.commit()
        logger.info(f"Order {order.order_number} placed by {user_id}: {order.total_amount}")
        revalidate_path(*ORDER_PAGES, "/shop")
        return action_ok("Order placed successfully", order=order.to_dict())

    # ==========================================
    # Status transition
    # ==========================================

    @admin_action("Failed to update order")
    def transition_status(
        self, db: Session, perms: Optional[PermissionSet], order_id: str, new_status: str,
    ) -> dict:
        require_capability(perms, Capability.MANAGE_ORDERS)

        target = parse_enum(OrderStatus, new_status)
        if target is None:
            raise ValidationError(f"Unknown order status: {new_status}")

        order = self._load(db, order_id)
        current = OrderStatus(order.status)
        if target not in ORDER_TRANSITIONS[current]:
            raise InvalidTransitionError(current.value, target.value)

        self._swap(db, order, {"status": current.value}, {"status": target.value})
        if target in STOCK_RESTORING_STATUSES:
            self._restore_stock(db, order.id)

        audit_service.record(
            db, perms.principal_id, "order_status_updated", "order", order.id,
            {"old_status": current.value, "new_status": target.value},
        )
        db.commit()
        logger.info(f"Order {order_id}: {current.value} -> {target.value}")
        revalidate_path(*ORDER_PAGES)
        return action_ok("Order status updated")

    # ==========================================
    # Cancel
    # ==========================================

    @admin_action("Failed to cancel order")
    def cancel_order(
        self, db: Session, perms: Optional[PermissionSet], order_id: str, reason: str = None,
    ) -> dict:
        """Cancel a pending/confirmed order and put its items back in stock."""
        require_capability(perms, Capability.MANAGE_ORDERS)

        order = self._load(db, order_id)
        current = OrderStatus(order.status)
        if current not in CANCELLABLE_STATUSES:
            raise ValidationError(f"Cannot cancel order with status {current.value}")

        reason = (reason or "").strip() or None
        values = {"status": OrderStatus.CANCELLED.value}
        if reason:
            values["notes"] = order.append_note(f"Cancellation reason: {reason}")

        self._swap(db, order, {"status": current.value}, values)
        self._restore_stock(db, order.id)

        audit_service.record(
            db, perms.principal_id, "order_cancelled", "order", order.id,
            {"old_status": current.value, "reason": reason},
        )
        db.commit()
        logger.info(f"Order {order_id} cancelled from {current.value}")
        revalidate_path(*ORDER_PAGES)
        return action_ok("Order cancelled successfully")

    # ==========================================
    # Refund
    # ==========================================

    @admin_action("Failed to process refund")
    def process_refund(
        self, db: Session, perms: Optional[PermissionSet], order_id: str,
        amount=None, reason: str = None,
    ) -> dict:
        """Mark a shipped/delivered order returned + refunded and restock its items."""
        require_capability(perms, Capability.MANAGE_ORDERS)

        order = self._load(db, order_id)
        current = OrderStatus(order.status)
        if current not in REFUNDABLE_STATUSES:
            raise ValidationError(f"Cannot refund order with status {current.value}")

        total = to_money(order.total_amount)
        refund_amount = total if amount is None else to_money(amount)
        if refund_amount is None or refund_amount <= 0 or refund_amount > total:
            raise ValidationError(f"Refund amount must be greater than 0 and at most {total}")

        reason = (reason or "").strip() or None
        shown = format_money(refund_amount, CURRENCY_SYMBOL)
        note = f"Refund reason: {reason}. Amount: {shown}" if reason else f"Refund amount: {shown}"

        old_payment = order.payment_status
        self._swap(
            db, order,
            {"status": current.value, "payment_status": old_payment},
            {
                "status": OrderStatus.RETURNED.value,
                "payment_status": PaymentStatus.REFUNDED.value,
                "notes": order.append_note(note),
            },
        )
        self._restore_stock(db, order.id)

        audit_service.record(
            db, perms.principal_id, "order_refunded", "order", order.id,
            {
                "old_status": current.value,
                "old_payment_status": old_payment,
                "reason": reason,
                "refund_amount": str(refund_amount),
            },
        )
        db.commit()
        logger.info(f"Order {order_id} refunded: {refund_amount}")
        revalidate_path(*ORDER_PAGES)
        return action_ok("Refund processed successfully")

    # ==========================================
    # Private Helpers
    # ==========================================

    def _load(self, db: Session, order_id: str) -> Order:
        """Fresh read of the order row (row lock where the backend supports it)."""
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

    def _swap(self, db: Session, order: Order, expected: dict, values: dict) -> None:
        """
        Conditional update: apply `values` only if every column in `expected`
        still holds the value read earlier in this transaction.
        """
        criteria = [getattr(Order, col) == val for col, val in expected.items()]
        changes = {getattr(Order, col): val for col, val in values.items()}
        changes[Order.updated_at] = now_utc()

        updated = db.query(Order).filter(Order.id == order.id, *criteria).update(changes)
        if updated != 1:
            raise ConcurrencyError("Order was modified by another user. Please reload and try again.")

    def _restore_stock(self, db: Session, order_id: str) -> None:
        items = db.query(OrderItem).filter(OrderItem.order_id == order_id).all()
        for item in items:
            db.query(Product).filter(Product.id == item.product_id).update(
                {Product.stock_quantity: Product.stock_quantity + item.quantity}
            )

    def _unique_order_number(self, db: Session, max_retries: int = 10) -> str:
        for _ in range(max_retries):
            number = generate_order_number(ORDER_NUMBER_PREFIX)
            exists = db.query(Order.id).filter(Order.order_number == number).first()
            if not exists:
                return number
        raise JRadianceError("Failed to generate unique order number after retries")


# Singleton
order_service = OrderService()
