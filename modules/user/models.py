"""
User Module - Profile Model
=============================
One row per principal (shopper or staff). The role column drives every
authorization decision; see modules.admin.permissions for the hierarchy.
"""

import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Index
from sqlalchemy.orm import relationship

from config.database import Base
from common.helpers import now_utc


def new_uuid() -> str:
    return str(uuid.uuid4())


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=new_uuid)

    # === Identity ===
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=True)

    # === Profile ===
    full_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)

    # === Access ===
    role = Column(String(20), default="customer", server_default="customer", nullable=False, index=True)
    is_active = Column(Boolean, default=True, server_default="true", nullable=False, index=True)

    # === Audit ===
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    # === Relationships ===
    orders = relationship(
        "Order", back_populates="user",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_profiles_created", "created_at"),
    )

    @property
    def display_name(self) -> str:
        return self.full_name or self.email

    @property
    def is_staff(self) -> bool:
        return self.role in ("agent", "admin", "chief_admin")

    @property
    def primary_redirect(self) -> str:
        """Where to redirect after login."""
        return "/admin/dashboard" if self.is_staff else "/"

    def __repr__(self):
        return f"<Profile {self.email} ({self.role})>"
