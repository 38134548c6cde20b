"""Service for logging security events."""

import json
import logging

from fastapi import Request
from sqlalchemy.orm import Session

from app.models import SecurityAuditLog

logger = logging.getLogger(__name__)


class SecurityEventType:
    """Constants for security event types."""

    REGISTERED = "registered"
    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILED = "login_failed"
    LOGIN_BLOCKED_UNVERIFIED = "login_blocked_unverified"
    LOGOUT = "logout"
    SESSION_REFRESHED = "session_refreshed"
    REFRESH_TOKEN_REUSED = "refresh_token_reused"
    OTP_SENT = "otp_sent"
    OTP_FAILED = "otp_failed"
    EMAIL_VERIFIED = "email_verified"
    FEDERATED_LOGIN = "federated_login"
    PROFILE_UPDATED = "profile_updated"


class SecurityAuditService:
    """Service for recording security audit events."""

    @staticmethod
    def log_event(
        db: Session,
        event_type: str,
        user_id: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        details: dict | None = None,
    ) -> None:
        """Log a security event to the database.

        The entry is committed on its own: audit rows are written both on
        success and on failure paths, after the user record was (or was not)
        saved.
        """
        log_entry = SecurityAuditLog(
            user_id=user_id,
            event_type=event_type,
            ip_address=ip_address,
            user_agent=user_agent,
            details=json.dumps(details) if details else None,
        )
        db.add(log_entry)
        db.commit()

        # Also log to application logger for monitoring
        logger.info(f"Security event: {event_type} | user_id={user_id} | ip={ip_address}")

    @staticmethod
    def get_request_info(request: Request | None) -> tuple[str | None, str | None]:
        """Extract IP address and user agent from a FastAPI request."""
        ip_address = None
        user_agent = None

        if request:
            # Get IP from X-Forwarded-For header (if behind proxy) or client host
            forwarded_for = request.headers.get("X-Forwarded-For")
            if forwarded_for:
                ip_address = forwarded_for.split(",")[0].strip()
            elif request.client:
                ip_address = request.client.host

            user_agent = request.headers.get("User-Agent", "")[:500]

        return ip_address, user_agent
