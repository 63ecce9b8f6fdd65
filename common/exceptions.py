"""
JRadiance - Custom Exceptions
==============================
Business-level exceptions, the uniform action-result shape, and the
conversion of both into HTTP responses.
"""

import functools
import logging

from fastapi import status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger("jradiance.errors")

GENERIC_ERROR = "An unexpected error occurred. Please try again."


class JRadianceError(Exception):
    """Base exception for all business logic errors."""
    code = "error"

    def __init__(self, message: str = GENERIC_ERROR):
        self.message = message
        super().__init__(self.message)


class AuthenticationError(JRadianceError):
    """Raised when there is no valid session."""
    code = "not_authenticated"

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class AuthorizationError(JRadianceError):
    """Raised when the principal's role is not high enough."""
    code = "forbidden"


class ValidationError(JRadianceError):
    """Raised for missing/invalid input and broken business rules."""
    code = "validation"


class InvalidTransitionError(ValidationError):
    """Raised when an order/payment status move is not in the transition table."""

    def __init__(self, current: str, attempted: str, field: str = "status"):
        self.current = current
        self.attempted = attempted
        label = "payment status" if field == "payment_status" else "status"
        super().__init__(f"Invalid {label} transition from {current} to {attempted}")


class ConcurrencyError(JRadianceError):
    """Raised when a conditional update finds the row already moved."""
    code = "conflict"


class NotFoundError(JRadianceError):
    """Raised when a requested resource doesn't exist."""
    code = "not_found"


HTTP_STATUS_BY_CODE = {
    "validation": status.HTTP_400_BAD_REQUEST,
    "not_authenticated": status.HTTP_401_UNAUTHORIZED,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "not_found": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
    "error": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


# ==========================================
# Action results
# ==========================================

def action_ok(message: str = None, **data) -> dict:
    result = {"success": True}
    if message:
        result["message"] = message
    if data:
        result["data"] = data
    return result


def action_fail(error: str, code: str = "error") -> dict:
    return {"success": False, "error": error, "code": code}


def admin_action(fallback_error: str):
    """
    Decorator for service methods with signature (self, db, ...).

    Business errors become a failure result carrying their message.
    Database and unexpected errors are rolled back, logged, and reported
    with `fallback_error`; internal details never reach the client.
    Any failure rolls back the session, so a mutation and its audit row
    are never split.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, db, *args, **kwargs):
            try:
                return func(self, db, *args, **kwargs)
            except JRadianceError as e:
                db.rollback()
                return action_fail(e.message, e.code)
            except SQLAlchemyError:
                db.rollback()
                logger.exception(f"{func.__qualname__} failed")
                return action_fail(fallback_error)
            except Exception:
                db.rollback()
                logger.exception(f"{func.__qualname__} raised unexpectedly")
                return action_fail(fallback_error)
        return wrapper
    return decorator


def action_response(result: dict, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    """Convert an action result into a JSON response with a matching status code."""
    if result.get("success"):
        return JSONResponse(_jsonable(result), status_code=success_status)
    code = HTTP_STATUS_BY_CODE.get(result.get("code"), status.HTTP_400_BAD_REQUEST)
    return JSONResponse(_jsonable(result), status_code=code)


def _jsonable(result: dict) -> dict:
    from fastapi.encoders import jsonable_encoder
    return jsonable_encoder(result)
