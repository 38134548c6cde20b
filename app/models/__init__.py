"""SQLAlchemy ORM models."""

from app.models.security_audit_log import SecurityAuditLog
from app.models.user import OtpChallenge, User

__all__ = [
    "OtpChallenge",
    "SecurityAuditLog",
    "User",
]
