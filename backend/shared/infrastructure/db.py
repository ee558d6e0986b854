"""
Engine and session handling for the floor database.

One sync SQLAlchemy session per request (or per CLI command). Services commit
through `safe_commit` so a failed commit never leaves the session unusable.
"""

import os
from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from shared.config.logging import get_logger
from shared.config.settings import DATABASE_URL

logger = get_logger(__name__)


def build_engine(url: str) -> Engine:
    """
    Engine for `url`. SQLite (demos, tests) takes no pool sizing; a server
    database gets a pool of 2 x cores + 1 connections, at most 20.
    """
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=min((os.cpu_count() or 4) * 2 + 1, 20),
        max_overflow=15,
        pool_timeout=30,
        pool_recycle=1800,
        connect_args={"connect_timeout": 10},
    )


engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


@contextmanager
def get_db_context() -> Iterator[Session]:
    """
    Session for code outside a request.

    Usage:
        with get_db_context() as db:
            SessionService(db).get_open_session_id_for_table(location_id, "T5")
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: a session closed when the request ends."""
    with get_db_context() as db:
        yield db


def safe_commit(db: Session) -> None:
    """Commit, or roll back and re-raise."""
    try:
        db.commit()
    except Exception as e:
        db.rollback()
        logger.warning("Commit rolled back", error_type=type(e).__name__)
        raise
