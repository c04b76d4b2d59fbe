"""Database engine, session factory, and dependency injection."""

from typing import Any, Dict, Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from footballzone.core.config import settings

engine_options: Dict[str, Any] = {"pool_pre_ping": True, "echo": settings.DEBUG}
if not settings.DATABASE_URL.startswith("sqlite"):
    engine_options.update(
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_timeout=30,
        pool_recycle=1800,
    )

engine = create_engine(settings.DATABASE_URL, **engine_options)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency that provides a DB session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
