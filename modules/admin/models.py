"""
Admin Module - Models
======================
AdminActivityLog: append-only audit trail of privileged mutations and
admin page access.
"""

from sqlalchemy import Column, String, DateTime, JSON, Index

from config.database import Base
from common.helpers import now_utc
from modules.user.models import new_uuid


class AdminActivityLog(Base):
    __tablename__ = "admin_activity_logs"

    id = Column(String(36), primary_key=True, default=new_uuid)
    # No FK: audit rows must survive deletion of the acting profile.
    # NULL admin_id marks system entries (gateway callback, stock alerts).
    admin_id = Column(String(36), nullable=True)
    action = Column(String(100), nullable=False)                 # e.g. order_status_updated
    resource_type = Column(String(50), nullable=True)            # order / user / product / admin_page
    resource_id = Column(String(36), nullable=True)
    changes = Column(JSON, nullable=True)                        # structured before/after
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    __table_args__ = (
        Index("ix_activity_created", "created_at"),
        Index("ix_activity_resource", "resource_type", "resource_id"),
        Index("ix_activity_admin", "admin_id"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "admin_id": self.admin_id,
            "action": self.action,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "changes": self.changes,
            "ip_address": self.ip_address,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<AdminActivityLog {self.action} {self.resource_type}:{self.resource_id}>"
