"""Row builders shared by the test modules."""

import itertools
from decimal import Decimal

from common.security import hash_password, create_token
from modules.admin.models import AdminActivityLog
from modules.catalog.models import Product
from modules.issue.models import Issue
from modules.order.models import build_order, build_order_item
from modules.user.models import Profile

TEST_PASSWORD = "Password123!"

_order_numbers = itertools.count(1)


def make_profile(db, role: str, email: str = None, is_active: bool = True) -> Profile:
    profile = Profile(
        email=email or f"{role}@example.com",
        full_name=role.replace("_", " ").title(),
        role=role,
        is_active=is_active,
        password_hash=hash_password(TEST_PASSWORD),
    )
    db.add(profile)
    db.commit()
    return profile


def login(client, profile) -> None:
    client.cookies.set("auth_token", create_token({"sub": profile.id}))


def make_product(db, name="Glow Serum", stock=10, price="1500.00", category="skincare", **extra) -> Product:
    product = Product(
        name=name,
        slug=name.lower().replace(" ", "-"),
        category=category,
        price=Decimal(price),
        stock_quantity=stock,
        **{"is_active": True, **extra},
    )
    db.add(product)
    db.commit()
    return product


def make_order(db, user, product, quantity=1, status="pending", payment_status="pending",
               created_at=None, **extra):
    """Insert an order directly in the given state (stock is not touched)."""
    item = build_order_item(product.id, product.name, quantity, product.price)
    order = build_order(
        user_id=user.id,
        order_number=f"ORD-20260101-{next(_order_numbers):06d}",
        items=[item],
        shipping_address="12 Allen Avenue, Ikeja",
        **extra,
    )
    order.status = status
    order.payment_status = payment_status
    if created_at is not None:
        order.created_at = created_at
    db.add(order)
    db.commit()
    return order


def stock_of(db, product_id) -> int:
    db.expire_all()
    return db.query(Product.stock_quantity).filter(Product.id == product_id).scalar()


def audit_rows(db, resource_id=None, action=None):
    db.expire_all()
    q = db.query(AdminActivityLog)
    if resource_id:
        q = q.filter(AdminActivityLog.resource_id == resource_id)
    if action:
        q = q.filter(AdminActivityLog.action == action)
    return q.all()


def make_issue(db, reporter=None, type="complaint", title="Parcel arrived damaged",
               status="reported", priority="medium", **extra):
    issue = Issue(
        type=type,
        title=title,
        description="The serum bottle was cracked on arrival.",
        status=status,
        priority=priority,
        reported_by=reporter.id if reporter else None,
        **extra,
    )
    db.add(issue)
    db.commit()
    return issue
