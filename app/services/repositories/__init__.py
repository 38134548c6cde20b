"""Repository layer - data access abstraction.

Repositories handle all database queries, providing a clean interface
for services. Services should use repositories for data access rather
than directly querying SQLAlchemy models.

The Repository pattern separates data access from business logic:
- Repositories: Pure data access (queries, creates, updates)
- Services: Business logic that uses repositories

Dependency direction: Services -> Repositories -> Models
"""

from .exceptions import DuplicateError, NotFoundError, RepositoryError, StaleRecordError
from .user_repository import UserRepository, generate_student_id, normalize_email

__all__ = [
    "DuplicateError",
    "NotFoundError",
    "RepositoryError",
    "StaleRecordError",
    "UserRepository",
    "generate_student_id",
    "normalize_email",
]
