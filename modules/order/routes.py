"""
Order Module - Customer Routes
================================
Checkout and order history for the signed-in customer.
"""

from typing import List, Optional
from datetime import date

from fastapi import APIRouter, Request, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import action_ok, action_response
from common.security import csrf_check
from modules.auth.deps import require_login
from modules.order.service import order_service, CheckoutLine

router = APIRouter(prefix="/shop", tags=["orders"])


# ==========================================
# Schemas
# ==========================================

class CheckoutItem(BaseModel):
    product_id: str = Field(..., min_length=1, max_length=36)
    quantity: int = Field(..., gt=0, le=1000)


class CheckoutRequest(BaseModel):
    items: List[CheckoutItem] = Field(..., min_length=1)
    shipping_address: str = Field(..., min_length=1, max_length=1000)
    billing_address: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = Field(None, max_length=2000)
    estimated_delivery_date: Optional[date] = None


# ==========================================
# POST /shop/checkout
# ==========================================

@router.post("/checkout")
async def checkout(
    request: Request,
    body: CheckoutRequest,
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    csrf_check(request)
    result = order_service.create_order(
        db, me.id,
        [CheckoutLine(product_id=i.product_id, quantity=i.quantity) for i in body.items],
        shipping_address=body.shipping_address,
        billing_address=body.billing_address,
        notes=body.notes,
        estimated_delivery_date=body.estimated_delivery_date,
    )
    return action_response(result, success_status=201)


# ==========================================
# GET /shop/history
# ==========================================

@router.get("/history")
async def order_history(
    db: Session = Depends(get_db),
    me=Depends(require_login),
):
    orders = order_service.get_customer_orders(db, me.id)
    return action_response(action_ok(orders=[o.to_dict() for o in orders]))
