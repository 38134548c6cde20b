"""Database configuration and session management."""

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from app.config import settings


# Base class for ORM models
class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    pass


def build_engine(database_url: str) -> Engine:
    """Create the engine for ``database_url``.

    PostgreSQL gets a pooled engine with a lock timeout so a contended account
    row never blocks a request indefinitely. SQLite (local runs, tests) needs
    cross-thread access for FastAPI's threadpool.
    """
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=False,
        )

    return create_engine(
        database_url,
        pool_pre_ping=True,  # Enable connection health checks
        pool_size=10,
        max_overflow=20,
        pool_recycle=3600,  # Recycle connections after 1 hour
        echo=False,
        isolation_level="READ COMMITTED",
        connect_args={
            "options": "-c lock_timeout=5000"  # 5s lock timeout to prevent indefinite waits
        },
    )


engine = build_engine(settings.database_url)

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,  # Prevent lazy loading errors after commit
)


# Dependency for FastAPI routes
def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency for FastAPI routes.

    Yields:
        Session: SQLAlchemy database session

    Example:
        @router.get("/me")
        def me(db: Session = Depends(get_db)):
            return UserRepository(db).find_by_id(user_id)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
