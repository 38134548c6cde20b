"""User model: the account record owned by the auth subsystem."""

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.constants import AccountState, AuthProvider
from app.database import Base


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@dataclass(frozen=True)
class OtpChallenge:
    """An outstanding email verification challenge (hashed code + expiry)."""

    code_hash: str
    expires_at: datetime
    sent_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class User(Base):
    """Student account with credentials, verification and session state."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "(otp_hash IS NULL AND otp_expires_at IS NULL AND otp_sent_at IS NULL)"
            " OR (otp_hash IS NOT NULL AND otp_expires_at IS NOT NULL"
            " AND otp_sent_at IS NOT NULL)",
            name="ck_users_otp_challenge_complete",
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    student_id: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String(255))
    department: Mapped[str | None] = mapped_column(String(255))
    year: Mapped[str | None] = mapped_column(String(8))
    phone_number: Mapped[str] = mapped_column(String(32), default="")
    wallet_balance: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    provider: Mapped[str] = mapped_column(String(16), default=AuthProvider.LOCAL)
    google_id: Mapped[str | None] = mapped_column(String(255), unique=True)

    password_hash: Mapped[str | None] = mapped_column(String(255))
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    otp_hash: Mapped[str | None] = mapped_column(String(64))
    otp_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    otp_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    refresh_token_hash: Mapped[str | None] = mapped_column(String(64))

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )

    # Every UPDATE is conditional on the version that was read
    __mapper_args__ = {"version_id_col": version}

    @property
    def otp_challenge(self) -> OtpChallenge | None:
        if self.otp_hash is None or self.otp_expires_at is None or self.otp_sent_at is None:
            return None
        return OtpChallenge(
            code_hash=self.otp_hash,
            expires_at=_as_utc(self.otp_expires_at),
            sent_at=_as_utc(self.otp_sent_at),
        )

    @otp_challenge.setter
    def otp_challenge(self, challenge: OtpChallenge | None) -> None:
        if challenge is None:
            self.otp_hash = None
            self.otp_expires_at = None
            self.otp_sent_at = None
        else:
            self.otp_hash = challenge.code_hash
            self.otp_expires_at = challenge.expires_at
            self.otp_sent_at = challenge.sent_at

    @property
    def state(self) -> AccountState:
        return AccountState.VERIFIED if self.email_verified else AccountState.UNVERIFIED

    @property
    def has_session(self) -> bool:
        return self.refresh_token_hash is not None

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
