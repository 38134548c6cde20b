"""Services layer - business logic and external integrations.

This module is organized into domain-based subpackages:
- auth/: Registration, verification codes, tokens and sessions
- repositories/: Data access layer
- shared/: Shared utilities (HTTP client base)

Common imports for convenience:
    from app.services import UserRepository, NotFoundError
"""

# Re-export commonly used components for convenience
from app.services.repositories import (
    DuplicateError,
    NotFoundError,
    RepositoryError,
    StaleRecordError,
    UserRepository,
)

__all__ = [
    # Repositories
    "DuplicateError",
    "NotFoundError",
    "RepositoryError",
    "StaleRecordError",
    "UserRepository",
]
