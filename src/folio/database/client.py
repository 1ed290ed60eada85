from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

_engines: dict[str, Engine] = {}


def get_engine(database_url: str) -> Engine:
    """Engine per URL, created once; the pool belongs to the engine."""
    engine = _engines.get(database_url)
    if engine is None:
        engine = create_engine(database_url, future=True, pool_pre_ping=True)
        _engines[database_url] = engine
    return engine


def get_session(database_url: str) -> Session:
    """Get a SQLAlchemy session (caller must close it)."""
    engine = get_engine(database_url)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)()


@contextmanager
def session_context(database_url: str) -> Generator[Session, None, None]:
    """
    Context manager for read sessions.

    Usage:
        with session_context(database_url) as session:
            items = list_public_items(session, inspector, "post")
    """
    session = get_session(database_url)
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
