"""
Order Module - Models
======================
Order with a frozen per-item snapshot (product name, unit price) taken at
checkout. Status and payment status are plain strings holding the enum
values below; the legal moves between them live in order.service and
payment.service.
"""

import enum
from decimal import Decimal

from sqlalchemy import (
    Column, Integer, String, Numeric, Text, Date, DateTime, ForeignKey, Index,
)
from sqlalchemy.orm import relationship

from config.database import Base
from common.exceptions import ValidationError
from common.helpers import now_utc, to_money
from modules.user.models import new_uuid


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


def parse_enum(enum_cls, value):
    """Return the enum member for value (member or raw string), or None."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_uuid)
    order_number = Column(String, unique=True, nullable=False)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)

    # Amounts
    subtotal = Column(Numeric(10, 2), nullable=False)
    tax = Column(Numeric(10, 2), default=0, nullable=False)
    shipping_cost = Column(Numeric(10, 2), default=0, nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)

    # Lifecycle
    status = Column(String(20), default=OrderStatus.PENDING.value, nullable=False, index=True)
    payment_status = Column(String(20), default=PaymentStatus.PENDING.value, nullable=False, index=True)

    # Delivery
    shipping_address = Column(Text, nullable=True)
    billing_address = Column(Text, nullable=True)
    estimated_delivery_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    # Relationships
    user = relationship("Profile", back_populates="orders")
    items = relationship(
        "OrderItem", back_populates="order",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_orders_created", "created_at"),
    )

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "user_id": self.user_id,
            "subtotal": self.subtotal,
            "tax": self.tax,
            "shipping_cost": self.shipping_cost,
            "total_amount": self.total_amount,
            "status": self.status,
            "payment_status": self.payment_status,
            "shipping_address": self.shipping_address,
            "billing_address": self.billing_address,
            "estimated_delivery_date": self.estimated_delivery_date,
            "notes": self.notes,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data

    def append_note(self, line: str) -> str:
        """Return notes with `line` appended on a new line (does not mutate)."""
        return f"{self.notes}\n{line}" if self.notes else line

    def __repr__(self):
        return f"<Order {self.order_number} {self.status}/{self.payment_status}>"


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=new_uuid)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)

    # Snapshot at time of purchase
    product_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)

    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
        }


# ==========================================
# Constructors (amounts are computed and checked here)
# ==========================================

def build_order_item(product_id: str, product_name: str, quantity: int, unit_price) -> OrderItem:
    """Create an OrderItem with total_price = quantity * unit_price."""
    price = to_money(unit_price)
    if not product_name:
        raise ValidationError("Product name is required")
    if not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("Quantity must be a positive integer")
    if price is None or price < 0:
        raise ValidationError("Valid unit price is required")
    return OrderItem(
        product_id=product_id,
        product_name=product_name,
        quantity=quantity,
        unit_price=price,
        total_price=(price * quantity).quantize(Decimal("0.01")),
    )


def build_order(
    user_id: str,
    order_number: str,
    items: list,
    tax=0,
    shipping_cost=0,
    total_amount=None,
    shipping_address: str = None,
    billing_address: str = None,
    notes: str = None,
    estimated_delivery_date=None,
) -> Order:
    """
    Create a pending Order from prebuilt OrderItems.
    subtotal is the sum of item totals; total_amount must equal
    subtotal + tax + shipping_cost (computed when not given).
    """
    if not items:
        raise ValidationError("Order must contain at least one item")

    tax_amount = to_money(tax)
    shipping = to_money(shipping_cost)
    if tax_amount is None or tax_amount < 0:
        raise ValidationError("Valid tax amount is required")
    if shipping is None or shipping < 0:
        raise ValidationError("Valid shipping cost is required")

    subtotal = sum((item.total_price for item in items), Decimal("0.00"))
    expected_total = subtotal + tax_amount + shipping
    if total_amount is not None and to_money(total_amount) != expected_total:
        raise ValidationError(
            f"Total amount {to_money(total_amount)} does not equal "
            f"subtotal + tax + shipping ({expected_total})"
        )

    now = now_utc()
    return Order(
        user_id=user_id,
        order_number=order_number,
        subtotal=subtotal,
        tax=tax_amount,
        shipping_cost=shipping,
        total_amount=expected_total,
        status=OrderStatus.PENDING.value,
        payment_status=PaymentStatus.PENDING.value,
        shipping_address=shipping_address,
        billing_address=billing_address or shipping_address,
        notes=notes,
        estimated_delivery_date=estimated_delivery_date,
        created_at=now,
        updated_at=now,
        items=list(items),
    )
