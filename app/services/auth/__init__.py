"""Authentication services.

Handles password and verification-code checks, token issuance, the
single-session lifecycle, and security audit logging.
"""

from .orchestrator import AuthOrchestrator, AuthResult
from .otp_issuer import OtpIssuer
from .password_service import PasswordService
from .security_audit_service import SecurityAuditService, SecurityEventType
from .session_manager import SessionManager
from .token_service import TokenPair, TokenService

__all__ = [
    "AuthOrchestrator",
    "AuthResult",
    "OtpIssuer",
    "PasswordService",
    "SecurityAuditService",
    "SecurityEventType",
    "SessionManager",
    "TokenPair",
    "TokenService",
]
