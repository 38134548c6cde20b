"""User data access layer."""

import logging
import secrets

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.models import User
from app.services.repositories.exceptions import DuplicateError, NotFoundError, StaleRecordError

logger = logging.getLogger(__name__)

GENERATED_STUDENT_ID_ATTEMPTS = 5


def normalize_email(email: str) -> str:
    """Canonical form used for storage and lookups."""
    return email.strip().lower()


def generate_student_id(prefix: str = "G") -> str:
    """Placeholder student identifier for federated accounts."""
    return f"{prefix}-{secrets.token_hex(5).upper()}"


class UserRepository:
    """Centralized user data access.

    Naming conventions:
    - find_* : Query that may return None
    - get_* : Query that raises exception if missing

    Writes are full-record and guarded by the ``version`` column: ``save``
    raises ``StaleRecordError`` when another request committed a change to
    the same user after it was loaded.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def find_by_id(self, user_id: str) -> User | None:
        """Find user by primary key."""
        return self._db.query(User).filter(User.id == user_id).first()

    def get_by_id(self, user_id: str) -> User:
        """Get user by primary key or raise NotFoundError."""
        user = self.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def find_by_email(self, email: str) -> User | None:
        """Find user by email (case-insensitive)."""
        return (
            self._db.query(User)
            .filter(func.lower(User.email) == normalize_email(email))
            .first()
        )

    def find_by_student_id(self, student_id: str) -> User | None:
        """Find user by external student identifier."""
        return self._db.query(User).filter(User.student_id == student_id.strip()).first()

    def find_by_google_id(self, google_id: str) -> User | None:
        """Find user linked to a Google account."""
        return self._db.query(User).filter(User.google_id == google_id).first()

    def exists_with_email_or_student_id(self, email: str, student_id: str) -> bool:
        """Check the two unique identity fields before an insert."""
        return (
            self.find_by_email(email) is not None
            or self.find_by_student_id(student_id) is not None
        )

    def create(self, user: User) -> User:
        """Insert a new user.

        Raises:
            DuplicateError: email or student ID already taken. The session is
                rolled back, so nothing of the new user is persisted.
        """
        user.email = normalize_email(user.email)
        self._db.add(user)
        self._commit(user)
        logger.debug(f"Created user {user.id}")
        return user

    def create_with_unique_student_id(self, user: User) -> User:
        """Insert a federated user, regenerating its placeholder student ID on collision."""
        for attempt in range(1, GENERATED_STUDENT_ID_ATTEMPTS + 1):
            if self.find_by_student_id(user.student_id) is None:
                try:
                    return self.create(user)
                except DuplicateError as e:
                    if e.field != "student_id":
                        raise
            logger.debug(f"Generated student ID collision (attempt {attempt})")
            user = self._detach_copy(user)
            user.student_id = generate_student_id()
        raise DuplicateError("User", "student_id", user.student_id)

    def save(self, user: User) -> User:
        """Persist the full user record (last write wins, version-checked)."""
        self._db.add(user)
        self._commit(user)
        return user

    def _commit(self, user: User) -> None:
        try:
            self._db.commit()
        except StaleDataError as e:
            self._db.rollback()
            raise StaleRecordError("User", user.id) from e
        except IntegrityError as e:
            self._db.rollback()
            raise DuplicateError("User", self._duplicate_field(e), user.email) from e

    @staticmethod
    def _duplicate_field(error: IntegrityError) -> str:
        message = str(error.orig).lower()
        for field in ("student_id", "google_id", "email"):
            if field in message:
                return field
        return "email"

    @staticmethod
    def _detach_copy(user: User) -> User:
        # A rolled-back pending instance cannot be re-added; rebuild it
        return User(
            email=user.email,
            student_id=user.student_id,
            full_name=user.full_name,
            department=user.department,
            year=user.year,
            phone_number=user.phone_number,
            provider=user.provider,
            google_id=user.google_id,
            password_hash=user.password_hash,
            email_verified=user.email_verified,
        )
