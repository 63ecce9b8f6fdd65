"""
Catalog Module - Models
========================
Product rows. The order core only relies on id, name, stock_quantity and
is_active; the rest is catalog data managed from the admin panel.
"""

from sqlalchemy import (
    Column, Integer, String, Numeric, Boolean, Text, DateTime, JSON, CheckConstraint,
)

from config.database import Base
from common.helpers import now_utc
from modules.user.models import new_uuid


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=False, index=True)
    price = Column(Numeric(10, 2), nullable=False)
    discount_price = Column(Numeric(10, 2), nullable=True)
    stock_quantity = Column(Integer, default=0, nullable=False)
    sku = Column(String, unique=True, nullable=True)
    images = Column(JSON, default=list)
    attributes = Column(JSON, default=dict)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
    )

    @property
    def effective_price(self):
        return self.discount_price if self.discount_price is not None else self.price

    def __repr__(self):
        return f"<Product {self.slug} stock={self.stock_quantity}>"
