"""
Shop Module - Routes
======================
Public storefront data: active product listing and product detail.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import action_ok, action_fail, action_response
from modules.catalog.service import product_service, ProductFilter

router = APIRouter(prefix="/shop", tags=["shop"])

PER_PAGE = 12


def _public_product(p) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "slug": p.slug,
        "description": p.description,
        "category": p.category,
        "price": p.price,
        "discount_price": p.discount_price,
        "effective_price": p.effective_price,
        "in_stock": p.stock_quantity > 0,
        "images": p.images or [],
    }


@router.get("")
async def shop_products(
    category: str = Query(None),
    q: str = Query(None),
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
):
    """Active products only, newest first."""
    filters = ProductFilter(
        category=category or None, search=q or None, is_active=True,
        offset=(page - 1) * PER_PAGE, limit=PER_PAGE,
    )
    products = product_service.list_products(db, filters)
    return action_response(action_ok(products=[_public_product(p) for p in products], page=page))


@router.get("/products/{slug}")
async def product_detail(slug: str, db: Session = Depends(get_db)):
    product = product_service.get_by_slug(db, slug)
    if not product or not product.is_active:
        return action_response(action_fail("Product not found", "not_found"))
    return action_response(action_ok(product=_public_product(product)))
