"""
User Module - Admin Service
=============================
Chief-admin-only user management: role promotion/demotion, activation
toggle, hard delete, and the user/agent listings.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from common.exceptions import admin_action, action_ok, ValidationError, NotFoundError
from common.helpers import now_utc
from common.revalidation import revalidate_path
from modules.admin.audit_service import audit_service
from modules.admin.permissions import (
    Capability, PermissionSet, Role, parse_role, require_capability,
)
from modules.user.models import Profile

logger = logging.getLogger("jradiance.users")

USER_PAGES = ("/admin/users", "/admin/agents")


class UserAdminService:

    # ==========================================
    # Query
    # ==========================================

    def get_by_id(self, db: Session, user_id: str) -> Optional[Profile]:
        return db.query(Profile).filter(Profile.id == user_id).first()

    def get_users(self, db: Session, role: str = None) -> List[Profile]:
        q = db.query(Profile)
        if role:
            q = q.filter(Profile.role == role)
        return q.order_by(Profile.created_at.desc()).all()

    @admin_action("Failed to fetch users")
    def list_users(self, db: Session, perms: Optional[PermissionSet]) -> dict:
        require_capability(perms, Capability.MANAGE_USERS)
        return action_ok(users=[_profile_dict(p) for p in self.get_users(db)])

    @admin_action("Failed to fetch agents")
    def list_agents(self, db: Session, perms: Optional[PermissionSet]) -> dict:
        require_capability(perms, Capability.MANAGE_AGENTS)
        return action_ok(agents=[_profile_dict(p) for p in self.get_users(db, Role.AGENT.value)])

    # ==========================================
    # Role changes
    # ==========================================

    @admin_action("Failed to promote user")
    def promote_user(
        self, db: Session, perms: Optional[PermissionSet], target_id: str, new_role: str,
    ) -> dict:
        require_capability(perms, Capability.MANAGE_USERS)

        role = parse_role(new_role)
        if role is None or role == Role.CUSTOMER:
            raise ValidationError("Role must be agent, admin or chief_admin")

        target = self._load(db, target_id)
        if target.id == perms.principal_id:
            raise ValidationError("You cannot change your own role")
        if target.role == role.value:
            raise ValidationError(f"User is already {role.value}")

        old_role = target.role
        target.role = role.value
        target.updated_at = now_utc()
        db.flush()

        audit_service.record(
            db, perms.principal_id, "user_promoted", "user", target.id,
            {"old_role": old_role, "new_role": role.value},
        )
        db.commit()
        logger.info(f"User {target.email} promoted {old_role} -> {role.value} by {perms.principal_id}")
        revalidate_path(*USER_PAGES)
        return action_ok(f"User promoted to {role.value}")

    @admin_action("Failed to demote user")
    def demote_user(self, db: Session, perms: Optional[PermissionSet], target_id: str) -> dict:
        require_capability(perms, Capability.MANAGE_USERS)

        target = self._load(db, target_id)
        if target.id == perms.principal_id:
            raise ValidationError("You cannot demote yourself")
        if target.role == Role.CUSTOMER.value:
            raise ValidationError("User is already a customer")

        old_role = target.role
        target.role = Role.CUSTOMER.value
        target.updated_at = now_utc()
        db.flush()

        audit_service.record(
            db, perms.principal_id, "user_demoted", "user", target.id,
            {"old_role": old_role, "new_role": Role.CUSTOMER.value},
        )
        db.commit()
        logger.info(f"User {target.email} demoted from {old_role} by {perms.principal_id}")
        revalidate_path(*USER_PAGES)
        return action_ok("User demoted to customer")

    # ==========================================
    # Delete / toggle
    # ==========================================

    @admin_action("Failed to delete user")
    def delete_user(self, db: Session, perms: Optional[PermissionSet], target_id: str) -> dict:
        """Hard delete; the profile's orders go with it."""
        require_capability(perms, Capability.MANAGE_USERS)

        target = self._load(db, target_id)
        if target.id == perms.principal_id:
            raise ValidationError("You cannot delete your own account")

        snapshot = {"email": target.email, "role": target.role}
        db.delete(target)
        db.flush()

        audit_service.record(db, perms.principal_id, "user_deleted", "user", target_id, snapshot)
        db.commit()
        logger.info(f"User {snapshot['email']} deleted by {perms.principal_id}")
        revalidate_path(*USER_PAGES)
        return action_ok("User deleted successfully")

    @admin_action("Failed to toggle user status")
    def toggle_user_status(self, db: Session, perms: Optional[PermissionSet], target_id: str) -> dict:
        require_capability(perms, Capability.MANAGE_USERS)

        target = self._load(db, target_id)
        if target.id == perms.principal_id and target.is_active:
            raise ValidationError("You cannot deactivate your own account")

        target.is_active = not target.is_active
        target.updated_at = now_utc()
        db.flush()

        outcome = "activated" if target.is_active else "deactivated"
        audit_service.record(
            db, perms.principal_id, f"user_{outcome}", "user", target.id,
            {"is_active": target.is_active},
        )
        db.commit()
        logger.info(f"User {target.email} {outcome} by {perms.principal_id}")
        revalidate_path(*USER_PAGES)
        return action_ok(f"User {outcome}")

    # ==========================================
    # Private Helpers
    # ==========================================

    def _load(self, db: Session, user_id: str) -> Profile:
        user = self.get_by_id(db, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user


def _profile_dict(p: Profile) -> dict:
    return {
        "id": p.id,
        "email": p.email,
        "full_name": p.full_name,
        "phone": p.phone,
        "role": p.role,
        "is_active": p.is_active,
        "created_at": p.created_at,
    }


user_admin_service = UserAdminService()
