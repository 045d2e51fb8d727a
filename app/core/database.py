"""Database connection and session management."""

from collections.abc import Generator
from typing import Annotated, Any

from fastapi import Depends
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from app.core.config import Settings, settings


class Base(DeclarativeBase):
    """SQLAlchemy declarative base class."""

    pass


def engine_options(config: Settings) -> dict[str, Any]:
    """Keyword arguments for ``create_engine``.

    SQLite uses a single-connection pool that rejects sizing, so the pool
    limits apply to server databases only.
    """
    options: dict[str, Any] = {"echo": False, "pool_pre_ping": True}
    if not config.DATABASE_URL.startswith("sqlite"):
        options["pool_size"] = config.DB_POOL_SIZE
        options["max_overflow"] = config.DB_MAX_OVERFLOW
    return options


# Create sync engine
engine = create_engine(settings.DATABASE_URL, **engine_options(settings))

# Create sync session factory
SessionLocal = sessionmaker(
    bind=engine,
    class_=Session,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


def get_db() -> Generator[Session, None, None]:
    """Get database session dependency."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# Type alias for dependency injection
DbSession = Annotated[Session, Depends(get_db)]
