"""
JRadiance - Shared Helpers
===========================
Pure utility functions with NO database or module dependencies.
"""

import re
import secrets
import string
import time
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional

CENT = Decimal("0.01")


def now_utc() -> datetime:
    """Returns current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def to_money(value) -> Optional[Decimal]:
    """Convert a number/string to a 2-place Decimal. Returns None on failure."""
    if value is None or value == "":
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    try:
        return amount.quantize(CENT)
    except InvalidOperation:
        return None


def format_money(value, symbol: str = "") -> str:
    """Format a money value with comma separators and 2 decimals."""
    if value is None:
        value = 0
    try:
        return f"{symbol}{Decimal(str(value)):,.2f}"
    except (InvalidOperation, ValueError):
        return str(value)


def get_real_ip(request) -> Optional[str]:
    """Extract real client IP from request (handles X-Forwarded-For proxy header)."""
    x_forwarded = request.headers.get("X-Forwarded-For")
    if x_forwarded:
        return x_forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def safe_next_url(url: str, default: str = "/") -> str:
    """Only allow relative paths as redirect targets (prevent open redirect)."""
    if not url or not url.startswith("/") or url.startswith("//"):
        return default
    return url


# ==========================================
# Slug / SKU / Order Number
# ==========================================

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Lowercase, collapse non-alphanumerics to hyphens, trim hyphens."""
    return _NON_SLUG.sub("-", (name or "").lower()).strip("-")


def _base36(number: int) -> str:
    alphabet = string.digits + string.ascii_uppercase
    out = ""
    while number:
        number, rem = divmod(number, 36)
        out = alphabet[rem] + out
    return out or "0"


def generate_sku(category: str, prefix: str = "JRAD") -> str:
    """Format: JRAD-CAT-<base36 ms timestamp>-<4 random chars>."""
    cat = re.sub(r"[^A-Z]", "", (category or "")[:3].upper())
    stamp = _base36(int(time.time() * 1000))
    rand = "".join(secrets.choice(string.ascii_uppercase + string.digits) for _ in range(4))
    return f"{prefix}-{cat}-{stamp}-{rand}"


def generate_order_number(prefix: str = "ORD", when: datetime = None) -> str:
    """Format: ORD-YYYYMMDD-NNNNNN."""
    when = when or now_utc()
    return f"{prefix}-{when:%Y%m%d}-{secrets.randbelow(10 ** 6):06d}"
