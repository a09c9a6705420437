from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from loguru import logger
from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from config import get_settings
from timora.db.models import Base

_engine: Engine | None = None
_SessionLocal: sessionmaker | None = None


def _ensure_sqlite_dir(url: str) -> None:
    """Create the directory of a file-backed SQLite database."""
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite" and parsed.database not in (None, "", ":memory:"):
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)


def configure_database(url: str | None = None) -> Engine:
    """(Re)create the engine and session factory, e.g. for a test database."""
    global _engine, _SessionLocal
    settings = get_settings()
    url = url or settings.database_url
    _ensure_sqlite_dir(url)
    _engine = create_engine(url, echo=settings.log_level == "DEBUG", pool_pre_ping=True)
    _SessionLocal = sessionmaker(bind=_engine, autocommit=False, autoflush=False, expire_on_commit=False)
    return _engine


def get_engine() -> Engine:
    """Get the database engine (created lazily from settings)."""
    if _engine is None:
        configure_database()
    return _engine


def init_db() -> None:
    """Initialize database tables."""
    Base.metadata.create_all(bind=get_engine())
    logger.info("Database tables initialized")


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations."""
    if _SessionLocal is None:
        configure_database()
    session = _SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:  # Intentionally broad - rollback on any error before re-raising
        session.rollback()
        raise
    finally:
        session.close()
