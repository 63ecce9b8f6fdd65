"""
Auth Module - Service Layer
=============================
Email/password sign-up and sign-in for customers, and the role-gated
admin login.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from common.exceptions import AuthenticationError, AuthorizationError, ValidationError
from common.security import hash_password, verify_password, create_token
from modules.admin.audit_service import audit_service
from modules.admin.permissions import Role, is_staff_role
from modules.user.models import Profile

logger = logging.getLogger("jradiance.auth")

MIN_PASSWORD_LENGTH = 8


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class AuthService:
    """Handles credential checks and session token creation."""

    def authenticate(self, db: Session, email: str, password: str) -> Profile:
        """Return the profile for valid credentials, else raise AuthenticationError."""
        email = normalize_email(email)
        if not email or not password:
            raise AuthenticationError("Email and password are required")

        user = db.query(Profile).filter(Profile.email == email).first()
        if not user or not verify_password(password, user.password_hash):
            raise AuthenticationError("Invalid email or password")
        return user

    def register(
        self, db: Session, email: str, password: str,
        full_name: str = "", phone: str = "",
    ) -> Profile:
        """Create a customer profile. Sign-up never grants a staff role."""
        email = normalize_email(email)
        if not email or "@" not in email:
            raise ValidationError("A valid email is required")
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        if db.query(Profile.id).filter(Profile.email == email).first():
            raise ValidationError("An account with this email already exists")

        user = Profile(
            email=email,
            password_hash=hash_password(password),
            full_name=full_name.strip() or None,
            phone=phone.strip() or None,
            role=Role.CUSTOMER.value,
            is_active=True,
        )
        try:
            db.add(user)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ValidationError("An account with this email already exists")

        db.refresh(user)
        logger.info(f"Customer registered: {email}")
        return user

    def customer_login(self, db: Session, email: str, password: str) -> str:
        user = self.authenticate(db, email, password)
        if not user.is_active:
            raise AuthorizationError("Account is inactive")
        return create_token({"sub": user.id})

    def admin_login(
        self, db: Session, email: str, password: str,
        ip_address: Optional[str] = None, user_agent: Optional[str] = None,
    ) -> str:
        """
        Staff sign-in. Order of checks: credentials, staff role, active flag.
        Writes an admin_login audit row and returns the session token.
        """
        user = self.authenticate(db, email, password)
        if not is_staff_role(user.role):
            logger.warning(f"Admin login refused for non-staff account {user.email}")
            raise AuthorizationError("Unauthorized")
        if not user.is_active:
            raise AuthorizationError("Account is inactive")

        audit_service.record(
            db, user.id, "admin_login", "auth", user.id,
            ip_address=ip_address, user_agent=user_agent,
        )
        db.commit()
        logger.info(f"Admin login: {user.email} ({user.role})")
        return create_token({"sub": user.id})


auth_service = AuthService()
