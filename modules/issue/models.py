"""
Issue Module - Models
======================
Issue: a bug report, customer complaint or feature request tracked by the
admin team. Status, type and priority hold the enum values below.
"""

import enum

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index

from config.database import Base
from common.helpers import now_utc
from modules.user.models import new_uuid


class IssueType(str, enum.Enum):
    BUG = "bug"
    COMPLAINT = "complaint"
    FEATURE_REQUEST = "feature_request"


class IssueStatus(str, enum.Enum):
    REPORTED = "reported"
    PENDING = "pending"
    SOLVED = "solved"
    CLOSED = "closed"


class IssuePriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Issue(Base):
    __tablename__ = "issues"

    id = Column(String(36), primary_key=True, default=new_uuid)
    type = Column(String(20), nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String(20), default=IssueStatus.REPORTED.value, nullable=False, index=True)
    priority = Column(String(20), default=IssuePriority.MEDIUM.value, nullable=False, index=True)

    # People
    reported_by = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    assigned_to = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True)
    resolved_by = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    # Customer context
    customer_email = Column(String, nullable=True)
    customer_order_id = Column(String(36), ForeignKey("orders.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    __table_args__ = (
        Index("ix_issues_created", "created_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "reported_by": self.reported_by,
            "assigned_to": self.assigned_to,
            "resolved_by": self.resolved_by,
            "resolved_at": self.resolved_at,
            "customer_email": self.customer_email,
            "customer_order_id": self.customer_order_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self):
        return f"<Issue {self.type} {self.status}/{self.priority}: {self.title[:30]}>"
