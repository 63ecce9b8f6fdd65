"""
Catalog Module - Service Layer
================================
Product CRUD for the admin panel (agent and above): validation, unique
slug generation, SKU generation, activation toggle, and filtered listing.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from config.settings import SKU_PREFIX
from common.exceptions import admin_action, action_ok, ValidationError, NotFoundError
from common.helpers import now_utc, to_money, slugify, generate_sku
from common.revalidation import revalidate_path
from modules.admin.audit_service import audit_service
from modules.admin.permissions import Capability, PermissionSet, require_capability
from modules.catalog.models import Product

logger = logging.getLogger("jradiance.catalog")

EDITABLE_FIELDS = (
    "name", "slug", "description", "category", "price", "discount_price",
    "stock_quantity", "sku", "images", "attributes", "is_active",
)

CATALOG_PAGES = ("/admin/catalog", "/shop")


@dataclass(frozen=True)
class ProductFilter:
    """Every supported product-list filter. None means "don't filter"."""
    category: Optional[str] = None
    search: Optional[str] = None
    is_active: Optional[bool] = None
    offset: int = 0
    limit: Optional[int] = None


def validate_product_data(data: dict) -> dict:
    """
    Check a full set of product fields and normalize money/int values.
    Returns the cleaned dict; raises ValidationError on the first problem.
    """
    cleaned = dict(data)

    if not (data.get("name") or "").strip():
        raise ValidationError("Product name is required")
    if not (data.get("category") or "").strip():
        raise ValidationError("Product category is required")
    cleaned["name"] = data["name"].strip()
    cleaned["category"] = data["category"].strip()

    price = to_money(data.get("price"))
    if price is None or price < 0:
        raise ValidationError("Valid price is required")
    cleaned["price"] = price

    stock = data.get("stock_quantity")
    if isinstance(stock, bool) or not isinstance(stock, int) or stock < 0:
        raise ValidationError("Valid stock quantity is required")

    discount = data.get("discount_price")
    if discount is not None and discount != "":
        discount = to_money(discount)
        if discount is None or discount < 0:
            raise ValidationError("Discount price must be positive")
        if discount >= price:
            raise ValidationError("Discount price must be less than original price")
        cleaned["discount_price"] = discount
    else:
        cleaned["discount_price"] = None

    return cleaned


class ProductService:

    # ==========================================
    # Query
    # ==========================================

    def get_by_id(self, db: Session, product_id: str) -> Optional[Product]:
        return db.query(Product).filter(Product.id == product_id).first()

    def get_by_slug(self, db: Session, slug: str) -> Optional[Product]:
        return db.query(Product).filter(Product.slug == slug).first()

    def list_products(self, db: Session, filters: ProductFilter = None) -> List[Product]:
        filters = filters or ProductFilter()
        q = db.query(Product)
        if filters.category:
            q = q.filter(Product.category == filters.category)
        if filters.is_active is not None:
            q = q.filter(Product.is_active == filters.is_active)
        if filters.search:
            term = f"%{filters.search.strip()}%"
            q = q.filter(or_(
                Product.name.ilike(term),
                Product.description.ilike(term),
                Product.sku.ilike(term),
            ))
        q = q.order_by(Product.created_at.desc())
        if filters.limit:
            q = q.offset(max(0, filters.offset)).limit(filters.limit)
        return q.all()

    # ==========================================
    # Slug
    # ==========================================

    def unique_slug(self, db: Session, name: str, exclude_id: str = None) -> str:
        """slugify(name), suffixed -1, -2, ... until no other product uses it."""
        base = slugify(name) or f"product-{int(now_utc().timestamp() * 1000)}"
        slug, counter = base, 0
        while self._slug_taken(db, slug, exclude_id):
            counter += 1
            slug = f"{base}-{counter}"
        return slug

    def _slug_taken(self, db: Session, slug: str, exclude_id: str = None) -> bool:
        q = db.query(Product.id).filter(Product.slug == slug)
        if exclude_id:
            q = q.filter(Product.id != exclude_id)
        return q.first() is not None

    # ==========================================
    # Mutations
    # ==========================================

    @admin_action("Failed to create product")
    def create_product(self, db: Session, perms: Optional[PermissionSet], data: dict) -> dict:
        require_capability(perms, Capability.MANAGE_PRODUCTS)

        fields = validate_product_data({k: v for k, v in data.items() if k in EDITABLE_FIELDS})

        requested_slug = slugify(fields.get("slug") or "")
        if requested_slug and not self._slug_taken(db, requested_slug):
            fields["slug"] = requested_slug
        else:
            fields["slug"] = self.unique_slug(db, fields["name"])
        fields["sku"] = (fields.get("sku") or "").strip() or generate_sku(fields["category"], SKU_PREFIX)

        product = Product(created_by=perms.principal_id, **fields)
        db.add(product)
        db.flush()

        audit_service.record(
            db, perms.principal_id, "product_created", "product", product.id,
            {"name": product.name, "slug": product.slug, "sku": product.sku},
        )
        db.commit()
        logger.info(f"Product {product.slug} created by {perms.principal_id}")
        revalidate_path(*CATALOG_PAGES)
        return action_ok("Product created successfully", product_id=product.id)

    @admin_action("Failed to update product")
    def update_product(self, db: Session, perms: Optional[PermissionSet], product_id: str, updates: dict) -> dict:
        require_capability(perms, Capability.MANAGE_PRODUCTS)

        product = self._load(db, product_id)
        updates = {k: v for k, v in updates.items() if k in EDITABLE_FIELDS}
        if not updates:
            raise ValidationError("No changes provided")

        current = {f: getattr(product, f) for f in EDITABLE_FIELDS}
        merged = validate_product_data({**current, **updates})

        if "name" in updates and not updates.get("slug"):
            merged["slug"] = self.unique_slug(db, merged["name"], exclude_id=product.id)
        elif updates.get("slug"):
            slug = slugify(updates["slug"])
            if not slug or self._slug_taken(db, slug, exclude_id=product.id):
                raise ValidationError("Slug is already in use")
            merged["slug"] = slug
        if "category" in updates and not updates.get("sku"):
            merged["sku"] = generate_sku(merged["category"], SKU_PREFIX)

        changes = {}
        for field in EDITABLE_FIELDS:
            if merged.get(field) != current[field]:
                setattr(product, field, merged.get(field))
                changes[field] = merged.get(field)
        product.updated_at = now_utc()
        db.flush()

        audit_service.record(
            db, perms.principal_id, "product_updated", "product", product.id,
            {k: str(v) if isinstance(v, Decimal) else v for k, v in changes.items()},
        )
        db.commit()
        logger.info(f"Product {product.slug} updated by {perms.principal_id}: {sorted(changes)}")
        revalidate_path(*CATALOG_PAGES, f"/products/{product.slug}")
        return action_ok("Product updated successfully")

    @admin_action("Failed to delete product")
    def delete_product(self, db: Session, perms: Optional[PermissionSet], product_id: str) -> dict:
        require_capability(perms, Capability.MANAGE_PRODUCTS)

        from modules.order.models import OrderItem

        product = self._load(db, product_id)
        if db.query(OrderItem.id).filter(OrderItem.product_id == product.id).first():
            raise ValidationError("Product has orders; deactivate it instead of deleting")

        snapshot = {"name": product.name, "slug": product.slug}
        db.delete(product)
        db.flush()

        audit_service.record(db, perms.principal_id, "product_deleted", "product", product_id, snapshot)
        db.commit()
        logger.info(f"Product {snapshot['slug']} deleted by {perms.principal_id}")
        revalidate_path(*CATALOG_PAGES)
        return action_ok("Product deleted successfully")

    @admin_action("Failed to toggle product status")
    def toggle_product_status(self, db: Session, perms: Optional[PermissionSet], product_id: str) -> dict:
        require_capability(perms, Capability.MANAGE_PRODUCTS)

        product = self._load(db, product_id)
        product.is_active = not product.is_active
        product.updated_at = now_utc()
        db.flush()

        outcome = "activated" if product.is_active else "deactivated"
        audit_service.record(db, perms.principal_id, f"product_{outcome}", "product", product.id)
        db.commit()
        revalidate_path(*CATALOG_PAGES)
        return action_ok(f"Product {outcome}")

    # ==========================================
    # Private Helpers
    # ==========================================

    def _load(self, db: Session, product_id: str) -> Product:
        product = self.get_by_id(db, product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product


product_service = ProductService()
