"""PostgreSQL engine, request-scoped sessions and a session scope for CLIs."""

import logging
from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from pickpool.core.config import get_settings

logger = logging.getLogger(__name__)

_settings = get_settings()

# create_engine does not connect; the first checkout does.
engine = create_engine(
    _settings.DATABASE_URL,
    pool_pre_ping=True,
    echo=_settings.DEBUG,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request, closed afterwards.

    Services own commit and rollback; an uncommitted session is rolled back
    on close.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for jobs outside a request (startup bootstrap, cron sweep)."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_connected(db: Session) -> bool:
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("Database health check failed: %s", type(e).__name__)
        return False
    return True
