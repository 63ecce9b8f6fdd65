"""
JRadiance - Database Seeder
=============================
Seeds a chief admin, one staff member per role, a test customer and a few
products.

Usage:
    python scripts/seed.py
    SEED_PASSWORD=... python scripts/seed.py
"""

import sys
import os
from decimal import Decimal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.database import SessionLocal, Base, engine
from config.settings import SEED_PASSWORD
from common.helpers import generate_sku, slugify
from common.security import hash_password
from modules.user.models import Profile
from modules.catalog.models import Product
from modules.order.models import Order, OrderItem  # noqa: F401
from modules.issue.models import Issue  # noqa: F401

USERS = [
    ("chief@jradiance.local", "Chief Admin", "chief_admin"),
    ("admin@jradiance.local", "Store Admin", "admin"),
    ("agent@jradiance.local", "Support Agent", "agent"),
    ("customer@jradiance.local", "Test Customer", "customer"),
]

PRODUCTS = [
    ("Radiance Glow Serum", "skincare", Decimal("15000.00"), Decimal("12500.00"), 40),
    ("Silk Body Lotion", "bodycare", Decimal("8500.00"), None, 25),
    ("Velvet Matte Lipstick", "makeup", Decimal("4500.00"), None, 6),
]


def seed_users(db):
    print("[1/2] Users...")
    for email, name, role in USERS:
        if db.query(Profile).filter(Profile.email == email).first():
            print(f"  = {email} exists")
            continue
        db.add(Profile(
            email=email, full_name=name, role=role,
            password_hash=hash_password(SEED_PASSWORD), is_active=True,
        ))
        print(f"  + {email} ({role})")
    db.flush()


def seed_products(db):
    print("[2/2] Products...")
    for name, category, price, discount, stock in PRODUCTS:
        slug = slugify(name)
        if db.query(Product).filter(Product.slug == slug).first():
            print(f"  = {slug} exists")
            continue
        db.add(Product(
            name=name, slug=slug, category=category,
            price=price, discount_price=discount, stock_quantity=stock,
            sku=generate_sku(category), is_active=True,
        ))
        print(f"  + {slug}")
    db.flush()


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_users(db)
        seed_products(db)
        db.commit()
        print("\nSeed complete.")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
