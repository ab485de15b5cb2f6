"""
Database engine, session factory and declarative base
"""
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from laundry_service.config import settings
from laundry_service.exceptions import ConflictError, ValidationError
from laundry_service.logger import logger


class Base(DeclarativeBase):
    """Declarative base for all ORM models"""
    pass


def build_engine(url: str):
    """Create an engine; SQLite connections are shared across threads"""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(bind=None) -> None:
    """Create all tables"""
    # Register every model on Base.metadata before create_all
    from laundry_service import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    """FastAPI dependency yielding a session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _is_check_violation(error: IntegrityError) -> bool:
    # psycopg2 reports SQLSTATE 23514; SQLite only has the message
    return getattr(error.orig, "pgcode", None) == "23514" or "CHECK constraint failed" in str(error.orig)


def commit_or_conflict(db: Session, entity: str = "record") -> None:
    """
    Commit the session, turning lost optimistic-lock races into ConflictError

    Raises:
        ConflictError: If a concurrent transaction changed the row first or a
            unique constraint rejected the write
        ValidationError: If a check constraint rejected the write
    """
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if _is_check_violation(e):
            logger.warning(f"Write rejected by a check constraint for {entity}: {e.orig}")
            raise ValidationError(f"{entity} update violates a data constraint: {e.orig}") from e
        logger.warning(f"Concurrent update rejected for {entity}: {e}")
        raise ConflictError(f"{entity} was modified concurrently, retry the request") from e
    except StaleDataError as e:
        db.rollback()
        logger.warning(f"Concurrent update rejected for {entity}: {e}")
        raise ConflictError(f"{entity} was modified concurrently, retry the request") from e
