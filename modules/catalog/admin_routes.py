"""
Catalog Module - Admin Routes
===============================
Product CRUD for staff (agent and above). JSON in, action result out.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Request, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import action_ok, action_response
from common.security import csrf_check
from modules.admin.permissions import Capability, PermissionSet, require_capability
from modules.auth.deps import current_permissions
from modules.catalog.service import product_service, ProductFilter

router = APIRouter(prefix="/admin/catalog", tags=["catalog-admin"])


# ==========================================
# Schemas
# ==========================================

class ProductCreate(BaseModel):
    name: str = Field(..., max_length=200)
    slug: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    category: str = Field(..., max_length=100)
    price: Decimal
    discount_price: Optional[Decimal] = None
    stock_quantity: int = 0
    sku: Optional[str] = Field(None, max_length=100)
    images: List[str] = []
    attributes: Dict[str, Any] = {}


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    slug: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    price: Optional[Decimal] = None
    discount_price: Optional[Decimal] = None
    stock_quantity: Optional[int] = None
    sku: Optional[str] = Field(None, max_length=100)
    images: Optional[List[str]] = None
    attributes: Optional[Dict[str, Any]] = None


def _product_dict(p) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "slug": p.slug,
        "description": p.description,
        "category": p.category,
        "price": p.price,
        "discount_price": p.discount_price,
        "stock_quantity": p.stock_quantity,
        "sku": p.sku,
        "images": p.images or [],
        "attributes": p.attributes or {},
        "is_active": p.is_active,
        "created_at": p.created_at,
        "updated_at": p.updated_at,
    }


# ==========================================
# 📦 Products
# ==========================================

@router.get("")
async def list_products(
    category: str = Query(None),
    search: str = Query(None),
    is_active: Optional[bool] = Query(None),
    offset: int = Query(0, ge=0),
    limit: int = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    require_capability(perms, Capability.MANAGE_PRODUCTS)
    filters = ProductFilter(category=category, search=search, is_active=is_active, offset=offset, limit=limit)
    products = product_service.list_products(db, filters)
    return action_response(action_ok(products=[_product_dict(p) for p in products]))


@router.post("")
async def create_product(
    request: Request,
    body: ProductCreate,
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    csrf_check(request)
    return action_response(product_service.create_product(db, perms, body.model_dump()), success_status=201)


@router.patch("/{product_id}")
async def update_product(
    request: Request,
    product_id: str,
    body: ProductUpdate,
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    csrf_check(request)
    updates = body.model_dump(exclude_unset=True)
    return action_response(product_service.update_product(db, perms, product_id, updates))


@router.delete("/{product_id}")
async def delete_product(
    request: Request,
    product_id: str,
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    csrf_check(request)
    return action_response(product_service.delete_product(db, perms, product_id))


@router.post("/{product_id}/toggle")
async def toggle_product(
    request: Request,
    product_id: str,
    db: Session = Depends(get_db),
    perms: Optional[PermissionSet] = Depends(current_permissions),
):
    csrf_check(request)
    return action_response(product_service.toggle_product_status(db, perms, product_id))
