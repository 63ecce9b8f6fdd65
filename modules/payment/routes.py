"""
Payment Routes
================
Signed gateway callback. Staff payment-status updates live with the
admin order routes.
"""

import logging

from fastapi import APIRouter, Depends, Form
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import action_fail, action_response
from common.security import verify_payment_signature
from modules.payment.service import payment_service

logger = logging.getLogger("jradiance.payment")

router = APIRouter(prefix="/payment", tags=["payment"])

OUTCOMES = ("success", "failed")


# ==========================================
# 🏦 Gateway: Callback (POST, form data)
# ==========================================

@router.post("/callback")
async def gateway_callback(
    order_id: str = Form(...),
    outcome: str = Form(...),
    reference: str = Form(""),
    signature: str = Form(""),
    db: Session = Depends(get_db),
):
    """
    Gateway server-to-server notification.
    signature = HMAC-SHA256("<order_id>:<outcome>:<reference>").
    """
    if outcome not in OUTCOMES:
        return action_response(action_fail("Unknown payment outcome", "validation"))

    if not verify_payment_signature(order_id, outcome, reference, signature):
        logger.warning(f"Rejected gateway callback with bad signature for order {order_id}")
        return action_response(action_fail("Invalid signature", "forbidden"))

    result = payment_service.apply_gateway_callback(
        db, order_id, succeeded=(outcome == "success"), reference=reference or None,
    )
    return action_response(result)
