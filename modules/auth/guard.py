"""
Auth Module - Route Guard
===========================
Decides, per request path, whether to let the request through or redirect
it. evaluate_route() is pure; the HTTP middleware in main.py resolves the
principal, calls it, and applies the decision.
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

from config.settings import (
    ADMIN_PREFIX, ADMIN_LOGIN_PATH, ADMIN_DASHBOARD_PATH, CUSTOMER_AUTH_PATH,
    PROTECTED_CUSTOMER_ROUTES, CHIEF_ADMIN_ONLY_ROUTES, AGENT_RESTRICTED_ROUTES,
)
from modules.admin.permissions import Role, is_staff_role, parse_role


@dataclass(frozen=True)
class GuardDecision:
    allow: bool
    redirect_to: Optional[str] = None
    sign_out: bool = False
    log_access: bool = False

    @classmethod
    def proceed(cls, log_access: bool = False) -> "GuardDecision":
        return cls(allow=True, log_access=log_access)

    @classmethod
    def redirect(cls, location: str, sign_out: bool = False) -> "GuardDecision":
        return cls(allow=False, redirect_to=location, sign_out=sign_out)


def is_admin_path(path: str) -> bool:
    return path == ADMIN_PREFIX or path.startswith(ADMIN_PREFIX + "/")


def is_protected_customer_path(path: str) -> bool:
    return any(path.startswith(route) for route in PROTECTED_CUSTOMER_ROUTES)


def customer_auth_redirect(path: str) -> str:
    return f"{CUSTOMER_AUTH_PATH}?{urlencode({'redirect': path})}"


def evaluate_route(path: str, principal, has_session: bool = False) -> GuardDecision:
    """
    principal: the signed-in Profile (anything with .role and .is_active),
    or None. has_session is True when a session token was presented even if
    no profile row backs it.
    """
    if path == ADMIN_LOGIN_PATH:
        return GuardDecision.proceed()

    if is_admin_path(path):
        return _evaluate_admin(path, principal, has_session)

    if is_protected_customer_path(path):
        if principal is None:
            return GuardDecision.redirect(customer_auth_redirect(path), sign_out=has_session)
        if not principal.is_active:
            return GuardDecision.redirect(customer_auth_redirect(path), sign_out=True)

    return GuardDecision.proceed()


def evaluate_on_error(path: str) -> GuardDecision:
    """Decision when the session itself could not be resolved."""
    if path == ADMIN_LOGIN_PATH:
        return GuardDecision.proceed()
    if is_admin_path(path):
        return GuardDecision.redirect(ADMIN_LOGIN_PATH)
    return GuardDecision.proceed()


def _evaluate_admin(path: str, principal, has_session: bool = False) -> GuardDecision:
    if principal is None:
        return GuardDecision.redirect(ADMIN_LOGIN_PATH, sign_out=has_session)

    role = parse_role(principal.role)
    if not is_staff_role(role):
        return GuardDecision.redirect("/")

    if not principal.is_active:
        return GuardDecision.redirect(ADMIN_LOGIN_PATH, sign_out=True)

    if any(path.startswith(route) for route in CHIEF_ADMIN_ONLY_ROUTES) and role != Role.CHIEF_ADMIN:
        return GuardDecision.redirect(ADMIN_DASHBOARD_PATH)

    if any(path.startswith(route) for route in AGENT_RESTRICTED_ROUTES) and role == Role.AGENT:
        return GuardDecision.redirect(ADMIN_DASHBOARD_PATH)

    return GuardDecision.proceed(log_access=True)
