"""Database engine, session factory and declarative base."""
from contextlib import contextmanager
from typing import Any, Dict, Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from config import get_settings

settings = get_settings()

Base = declarative_base()


def build_connect_args(database_url: str, timeout_seconds: float) -> Dict[str, Any]:
    """
    Driver arguments bounding how long any single call may block.

    Args:
        database_url: SQLAlchemy database URL
        timeout_seconds: Upper bound for lock waits / statements

    Returns:
        connect_args for create_engine
    """
    if database_url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": timeout_seconds}

    if database_url.startswith("postgresql"):
        return {
            "connect_timeout": max(1, int(timeout_seconds)),
            "options": f"-c statement_timeout={int(timeout_seconds * 1000)}",
        }

    return {}


engine = create_engine(
    settings.database_url,
    connect_args=build_connect_args(settings.database_url, settings.database_timeout_seconds),
    pool_pre_ping=True,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """Create all tables."""
    # Import models so they register with Base.metadata
    import models.booking  # noqa: F401
    import models.transporter  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def db_session() -> Generator[Session, None, None]:
    """Session scope for background jobs."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
