"""
Auth Module - Dependencies
===========================
FastAPI dependencies for session resolution and permission lookup.
These are injected into route handlers via Depends().

NOTE: Unified auth: single Profile model, single auth_token cookie.
The principal is returned whether or not it is active; the route guard
handles inactive accounts.
"""

from typing import Optional

from fastapi import Request, Depends, HTTPException, status
from sqlalchemy.orm import Session

from config.database import get_db
from config.settings import AUTH_COOKIE
from common.security import decode_token
from modules.admin.permissions import PermissionSet, resolve_permissions
from modules.user.models import Profile


def principal_id_from_request(request: Request) -> Optional[str]:
    """Profile id carried by the auth_token cookie, or None."""
    token = request.cookies.get(AUTH_COOKIE)
    if not token:
        return None

    payload = decode_token(token)
    if not payload:
        return None

    return payload.get("sub")


def load_principal(db: Session, request: Request) -> Optional[Profile]:
    principal_id = principal_id_from_request(request)
    if not principal_id:
        return None
    return db.query(Profile).filter(Profile.id == principal_id).first()


def get_current_principal(request: Request, db: Session = Depends(get_db)) -> Optional[Profile]:
    """
    Identify the current principal from the auth_token cookie.
    Returns Profile object or None.
    """
    return load_principal(db, request)


def current_permissions(request: Request, db: Session = Depends(get_db)) -> Optional[PermissionSet]:
    """Capabilities of the current principal (None when not signed in)."""
    return resolve_permissions(db, principal_id_from_request(request))


def require_login(user=Depends(get_current_principal)):
    """Require any authenticated active principal. Raises 401 if not logged in."""
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="login_required")
    return user
