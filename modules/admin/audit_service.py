"""
Audit Log Service
===================
Writes and reads the admin activity trail.

record() joins the caller's transaction: the row is flushed together with
the mutation it describes, so either both commit or neither does.
record_best_effort() is for page-access entries and never raises.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from common.exceptions import admin_action, action_ok
from modules.admin.models import AdminActivityLog
from modules.admin.permissions import Capability, PermissionSet, require_capability

logger = logging.getLogger("jradiance.audit")

MAX_LOG_LIMIT = 1000


class AuditService:

    def record(
        self,
        db: Session,
        actor_id: Optional[str],
        action: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        changes: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AdminActivityLog:
        entry = AdminActivityLog(
            admin_id=actor_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            changes=changes,
            ip_address=ip_address,
            user_agent=(user_agent or "")[:500] or None,
        )
        db.add(entry)
        db.flush()
        logger.info(f"{action} {resource_type}:{resource_id} by {actor_id or 'system'}")
        return entry

    def record_best_effort(self, session_factory, actor_id: Optional[str], action: str, **kwargs) -> bool:
        """Write an entry in its own session. Returns False instead of raising."""
        db = None
        try:
            db = session_factory()
            self.record(db, actor_id, action, **kwargs)
            db.commit()
            return True
        except Exception:
            logger.warning(f"Best-effort audit write failed ({action})", exc_info=True)
            if db is not None:
                db.rollback()
            return False
        finally:
            if db is not None:
                db.close()

    # ==========================================
    # Query
    # ==========================================

    def get_logs(
        self, db: Session, limit: int = 100,
        resource_type: str = None, resource_id: str = None,
    ) -> List[AdminActivityLog]:
        q = db.query(AdminActivityLog)
        if resource_type:
            q = q.filter(AdminActivityLog.resource_type == resource_type)
        if resource_id:
            q = q.filter(AdminActivityLog.resource_id == resource_id)
        limit = max(1, min(int(limit), MAX_LOG_LIMIT))
        return (
            q.order_by(AdminActivityLog.created_at.desc(), AdminActivityLog.id.desc())
            .limit(limit)
            .all()
        )

    @admin_action("Failed to fetch activity logs")
    def list_logs(
        self, db: Session, perms: Optional[PermissionSet], limit: int = 100,
        resource_type: str = None, resource_id: str = None,
    ) -> dict:
        require_capability(perms, Capability.VIEW_AUDIT_LOGS)
        logs = self.get_logs(db, limit, resource_type=resource_type, resource_id=resource_id)
        return action_ok(logs=[log.to_dict() for log in logs])


audit_service = AuditService()
