"""Database initialization script."""

import logging

from sqlalchemy.engine import Engine

from app.database import Base, engine
from app.models import SecurityAuditLog, User  # noqa: F401  (registers tables on Base)

logger = logging.getLogger(__name__)


def create_tables(bind: Engine = engine) -> None:
    """Create all database tables (idempotent)."""
    Base.metadata.create_all(bind=bind)
    logger.info("Database tables ensured")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_tables()
    print("Tables created successfully!")
