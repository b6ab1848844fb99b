"""Sessions and the commit helper used by MetadataRepository.

Each API request gets its own session from get_db(); Celery repair tasks
open one from get_session_factory(). Every repository mutation commits on
its own through transaction(), so a multi-step article write (shell insert,
content attach, tag links) is a series of small commits rather than one
atomic unit. The repair sweep settles whatever a failed sequence leaves.
"""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy.orm import Session, sessionmaker

from kbase.db.engine import get_engine


def create_session_factory(engine: Any = None) -> sessionmaker[Session]:
    """Create a session factory bound to engine (the configured one if None).

    expire_on_commit is off so rows read before a per-call commit stay usable.
    """
    if engine is None:
        engine = get_engine()

    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


_SessionLocal: sessionmaker[Session] | None = None


def get_session_factory() -> sessionmaker[Session]:
    """Return the process-wide session factory, creating it on first use."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = create_session_factory()
    return _SessionLocal


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session for the repository."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Generator[None, None, None]:
    """Commit one repository step, or roll it back and re-raise.

    A rollback here undoes only the current step; earlier steps of the same
    article write are already committed.
    """
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise
