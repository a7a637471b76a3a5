"""Session factory shared by the API and the maintenance scripts."""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session, sessionmaker

from ortoqbank.db.engine import engine

# Services commit at operation boundaries; loaded rows stay usable after commit.
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@contextmanager
def open_session() -> Iterator[Session]:
    """Yield a session, rolling back whatever is uncommitted if the caller raises."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_db() -> Iterator[Session]:
    """FastAPI dependency: one session per request."""
    with open_session() as db:
        yield db
