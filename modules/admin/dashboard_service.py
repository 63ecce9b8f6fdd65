"""
Admin Dashboard Service
=========================
Aggregated order/revenue statistics and stock alerts for the admin dashboard.
All aggregation happens in SQL (GROUP BY / SUM); money stays Decimal.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Any, List, Optional

from sqlalchemy.orm import Session
from sqlalchemy import func as sa_func

from config.settings import LOW_STOCK_THRESHOLD
from common.exceptions import admin_action, action_ok, ValidationError
from common.helpers import now_utc
from modules.order.models import Order, OrderStatus, PaymentStatus
from modules.catalog.models import Product
from modules.admin.permissions import Capability, PermissionSet, require_capability

PERIOD_DAYS = {"day": 1, "week": 7, "month": 30, "all": None}

ZERO = Decimal("0.00")


def period_start(period: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """Start of the rolling window for `period`, or None for "all"."""
    if period not in PERIOD_DAYS:
        raise ValidationError(f"Unknown period: {period}")
    days = PERIOD_DAYS[period]
    if days is None:
        return None
    return (now or now_utc()) - timedelta(days=days)


class DashboardService:

    def get_order_statistics(self, db: Session, period: str = "all", now: datetime = None) -> Dict[str, Any]:
        """
        Order counts per status and revenue split by payment status
        for orders created inside the period window.
        """
        start = period_start(period, now)

        by_status = {s.value: 0 for s in OrderStatus}
        status_q = db.query(Order.status, sa_func.count(Order.id))
        if start is not None:
            status_q = status_q.filter(Order.created_at >= start)
        for status, count in status_q.group_by(Order.status).all():
            if status in by_status:
                by_status[status] = count

        revenue_q = db.query(
            Order.payment_status,
            sa_func.coalesce(sa_func.sum(Order.total_amount), 0),
        ).filter(Order.payment_status.in_([PaymentStatus.COMPLETED.value, PaymentStatus.PENDING.value]))
        if start is not None:
            revenue_q = revenue_q.filter(Order.created_at >= start)
        revenue = {ps: Decimal(total).quantize(ZERO) for ps, total in revenue_q.group_by(Order.payment_status).all()}

        return {
            "period": period,
            "total_orders": sum(by_status.values()),
            "by_status": by_status,
            "total_revenue": revenue.get(PaymentStatus.COMPLETED.value, ZERO),
            "pending_revenue": revenue.get(PaymentStatus.PENDING.value, ZERO),
        }

    def get_sales_stats(self, db: Session, period: str = "all", now: datetime = None) -> Dict[str, Any]:
        """Paid (completed-payment) orders in the window, newest first."""
        start = period_start(period, now)

        q = db.query(Order).filter(Order.payment_status == PaymentStatus.COMPLETED.value)
        if start is not None:
            q = q.filter(Order.created_at >= start)
        orders = q.order_by(Order.created_at.desc()).all()

        return {
            "period": period,
            "total_revenue": sum((Decimal(o.total_amount) for o in orders), ZERO),
            "total_orders": len(orders),
            "completed_orders": sum(1 for o in orders if o.status == OrderStatus.DELIVERED.value),
            "orders": [
                {
                    "id": o.id,
                    "order_number": o.order_number,
                    "total_amount": o.total_amount,
                    "status": o.status,
                    "created_at": o.created_at,
                }
                for o in orders
            ],
        }

    def get_low_stock_products(self, db: Session, threshold: int = LOW_STOCK_THRESHOLD) -> List[Product]:
        """Active products with stock strictly below threshold, lowest first."""
        return (
            db.query(Product)
            .filter(Product.is_active == True, Product.stock_quantity < threshold)
            .order_by(Product.stock_quantity.asc(), Product.name.asc())
            .all()
        )

    def get_recent_orders(self, db: Session, limit: int = 10) -> List[Order]:
        """Most recent orders for dashboard feed."""
        return (
            db.query(Order)
            .order_by(Order.created_at.desc())
            .limit(limit)
            .all()
        )

    # ==========================================
    # Admin pages
    # ==========================================

    @admin_action("Failed to load dashboard")
    def dashboard_summary(
        self, db: Session, perms: Optional[PermissionSet], period: str = "all", now: datetime = None,
    ) -> dict:
        require_capability(perms, Capability.MANAGE_ORDERS)
        stats = self.get_order_statistics(db, period, now)
        low_stock = self.get_low_stock_products(db, LOW_STOCK_THRESHOLD)
        recent = self.get_recent_orders(db)
        return action_ok(
            stats=stats,
            low_stock=[
                {"id": p.id, "name": p.name, "sku": p.sku, "stock_quantity": p.stock_quantity}
                for p in low_stock
            ],
            recent_orders=[o.to_dict(include_items=False) for o in recent],
        )

    @admin_action("Failed to load sales log")
    def sales_log(
        self, db: Session, perms: Optional[PermissionSet], period: str = "all", now: datetime = None,
    ) -> dict:
        require_capability(perms, Capability.VIEW_SALES_LOGS)
        return action_ok(**self.get_sales_stats(db, period, now))


dashboard_service = DashboardService()
