"""Rate limiter configuration for auth endpoints."""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Rate limiter instance - shared across modules
limiter = Limiter(key_func=get_remote_address)

# Per-endpoint limits (per client IP)
REGISTER_LIMIT = "5/minute"
LOGIN_LIMIT = "5/minute"
VERIFY_EMAIL_LIMIT = "10/minute"
RESEND_OTP_LIMIT = "1/minute"
