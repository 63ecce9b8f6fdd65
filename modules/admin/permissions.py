"""
Admin Permissions Registry
============================
Role hierarchy and the capabilities each role unlocks.

Roles (each includes all below):
  customer    → storefront only
  agent       → products, orders, audit/sales logs
  admin       → agent capabilities plus the issue tracker
  chief_admin → everything, including user management and issue assignment
"""

import enum
from dataclasses import dataclass
from typing import FrozenSet, Optional

from sqlalchemy.orm import Session

from common.exceptions import AuthenticationError, AuthorizationError


class Role(str, enum.Enum):
    CUSTOMER = "customer"
    AGENT = "agent"
    ADMIN = "admin"
    CHIEF_ADMIN = "chief_admin"

    @property
    def rank(self) -> int:
        return ROLE_RANKS[self]

    def __ge__(self, other):
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank >= other.rank

    def __gt__(self, other):
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank > other.rank

    def __le__(self, other):
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank <= other.rank

    def __lt__(self, other):
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank < other.rank


ROLE_RANKS = {
    Role.CUSTOMER: 0,
    Role.AGENT: 1,
    Role.ADMIN: 2,
    Role.CHIEF_ADMIN: 3,
}

STAFF_ROLES = frozenset({Role.AGENT, Role.ADMIN, Role.CHIEF_ADMIN})

ROLE_LABELS = {
    Role.CUSTOMER: "Customer",
    Role.AGENT: "Support Agent",
    Role.ADMIN: "Administrator",
    Role.CHIEF_ADMIN: "Chief Administrator",
}


def parse_role(value) -> Optional[Role]:
    """Return the Role for a label, or None for anything unrecognized."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


def meets_role(actual, required) -> bool:
    """True iff rank(actual) >= rank(required). Unknown roles never pass."""
    actual_role = parse_role(actual)
    required_role = parse_role(required)
    if actual_role is None or required_role is None:
        return False
    return actual_role >= required_role


def is_staff_role(value) -> bool:
    return parse_role(value) in STAFF_ROLES


# --- Capabilities ---

class Capability(str, enum.Enum):
    MANAGE_USERS = "manage_users"
    MANAGE_PRODUCTS = "manage_products"
    MANAGE_ORDERS = "manage_orders"
    VIEW_AUDIT_LOGS = "view_audit_logs"
    VIEW_SALES_LOGS = "view_sales_logs"
    MANAGE_AGENTS = "manage_agents"
    MANAGE_ISSUES = "manage_issues"
    ASSIGN_ISSUES = "assign_issues"


CAPABILITY_MIN_ROLE = {
    Capability.MANAGE_USERS: Role.CHIEF_ADMIN,
    Capability.MANAGE_AGENTS: Role.CHIEF_ADMIN,
    Capability.MANAGE_PRODUCTS: Role.AGENT,
    Capability.MANAGE_ORDERS: Role.AGENT,
    Capability.VIEW_AUDIT_LOGS: Role.AGENT,
    Capability.VIEW_SALES_LOGS: Role.AGENT,
    Capability.MANAGE_ISSUES: Role.ADMIN,
    Capability.ASSIGN_ISSUES: Role.CHIEF_ADMIN,
}

CAPABILITY_DENIED_MESSAGES = {
    Capability.MANAGE_USERS: "Only chief admin can manage users",
    Capability.MANAGE_AGENTS: "Only chief admin can manage agents",
    Capability.ASSIGN_ISSUES: "Only chief admin can assign or delete issues",
}


def capabilities_for(role) -> FrozenSet[Capability]:
    return frozenset(
        cap for cap, min_role in CAPABILITY_MIN_ROLE.items()
        if meets_role(role, min_role)
    )


@dataclass(frozen=True)
class PermissionSet:
    """Capabilities of one authenticated principal, derived from their role."""
    principal_id: str
    role: Optional[Role]
    capabilities: FrozenSet[Capability]

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def require(self, capability: Capability) -> None:
        if not self.can(capability):
            raise AuthorizationError(
                CAPABILITY_DENIED_MESSAGES.get(capability, "Insufficient permissions")
            )

    def to_dict(self) -> dict:
        return {
            "role": self.role.value if self.role else None,
            "role_label": ROLE_LABELS.get(self.role),
            **{cap.value: cap in self.capabilities for cap in Capability},
        }


def resolve_permissions(db: Session, principal_id: Optional[str]) -> Optional[PermissionSet]:
    """
    Look up the principal's role and derive their capabilities.
    Returns None when there is no session or no matching profile row.
    """
    if not principal_id:
        return None

    from modules.user.models import Profile

    row = db.query(Profile.role).filter(Profile.id == principal_id).first()
    if row is None:
        return None

    role = parse_role(row.role)
    return PermissionSet(
        principal_id=principal_id,
        role=role,
        capabilities=capabilities_for(role),
    )


def require_capability(perms: Optional[PermissionSet], capability: Capability) -> PermissionSet:
    """Guard for every privileged service call: authenticated first, then capable."""
    if perms is None:
        raise AuthenticationError()
    perms.require(capability)
    return perms
