"""
JRadiance - Security Utilities
===============================
JWT session tokens, password hashing, CSRF protection, and payment webhook
signatures.

NOTE: Single auth_token cookie for every principal (customer or staff).
The token only carries the profile id; role and active flag are always read
fresh from the database.
"""

import hmac
import hashlib
import logging
import secrets
from datetime import timedelta
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from fastapi import Request, HTTPException
from jose import jwt, JWTError

from config.settings import (
    SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES, CSRF_ENABLED,
    PAYMENT_WEBHOOK_SECRET,
)
from common.helpers import now_utc

logger = logging.getLogger("jradiance.security")

_password_hasher = PasswordHasher()


# ==========================================
# Passwords
# ==========================================

def hash_password(password: str) -> str:
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return _password_hasher.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


# ==========================================
# JWT Tokens
# ==========================================

def create_token(data: dict) -> str:
    """Create a session JWT. `sub` must be the profile id."""
    to_encode = data.copy()
    to_encode["exp"] = now_utc() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode a JWT token. Returns payload or None."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


# ==========================================
# Cookie Helpers
# ==========================================

def get_cookie_kwargs() -> dict:
    """Standard cookie settings for auth tokens."""
    from config.settings import COOKIE_SECURE, COOKIE_SAMESITE
    return dict(
        httponly=True,
        secure=COOKIE_SECURE,
        samesite=COOKIE_SAMESITE,
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


# ==========================================
# CSRF
# ==========================================

def new_csrf_token() -> str:
    """Generate a new random CSRF token."""
    return secrets.token_urlsafe(32)


def csrf_check(request: Request, form_token: Optional[str] = None):
    """
    Verify CSRF token from cookie matches the one in header or form.
    Raises HTTPException(403) on mismatch.
    """
    if not CSRF_ENABLED:
        return

    cookie_token = request.cookies.get("csrf_token")
    header_token = request.headers.get("X-CSRF-Token")
    token = header_token or form_token

    if not cookie_token or not token or not hmac.compare_digest(cookie_token, token):
        raise HTTPException(403, "CSRF token missing or invalid")


# ==========================================
# Payment Webhook Signature
# ==========================================

def sign_payment_callback(order_id: str, outcome: str, reference: str) -> str:
    """HMAC-SHA256 over order id, outcome and gateway reference."""
    msg = f"{order_id}:{outcome}:{reference}".encode("utf-8")
    return hmac.new(PAYMENT_WEBHOOK_SECRET.encode("utf-8"), msg, hashlib.sha256).hexdigest()


def verify_payment_signature(order_id: str, outcome: str, reference: str, signature: str) -> bool:
    if not PAYMENT_WEBHOOK_SECRET:
        logger.error("PAYMENT_WEBHOOK_SECRET is not configured; rejecting gateway callback")
        return False
    expected = sign_payment_callback(order_id, outcome, reference)
    return hmac.compare_digest(expected, signature or "")
