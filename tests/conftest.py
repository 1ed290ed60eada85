"""Pytest configuration and fixtures."""

from typing import List

import pytest
from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker

from folio.database.inspector import SchemaInspector
from folio.database.query_monitor import (
    DEFAULT_SLOW_QUERY_MS,
    clear_query_metrics,
    set_slow_query_threshold,
)
from folio.database.schema import Base


@pytest.fixture
def session():
    """Create a temporary in-memory database session with the current schema."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)

    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def make_session():
    """Factory for in-memory sessions over a hand-written (legacy) schema.

    Usage:
        session = make_session(
            "CREATE TABLE posts (id INTEGER PRIMARY KEY, title TEXT, slug TEXT)",
            "INSERT INTO posts VALUES (1, 'Hello', 'hello')",
        )
    """
    created = []

    def _make(*statements: str):
        engine = create_engine("sqlite:///:memory:", echo=False)
        with engine.begin() as conn:
            for statement in statements:
                conn.execute(text(statement))
        session = sessionmaker(bind=engine)()
        created.append((engine, session))
        return session

    yield _make

    for engine, session in created:
        session.close()
        engine.dispose()


@pytest.fixture
def inspector():
    """Fresh schema inspector (empty cache) per test."""
    return SchemaInspector()


SAVEPOINT_PREFIXES = ("SAVEPOINT", "RELEASE SAVEPOINT", "ROLLBACK TO SAVEPOINT")


class QueryCounter:
    """Records every statement sent to the driver, savepoint bookkeeping aside."""

    def __init__(self) -> None:
        self.statements: List[str] = []

    def __call__(self, conn, cursor, statement, parameters, context, executemany) -> None:
        if statement.lstrip().upper().startswith(SAVEPOINT_PREFIXES):
            return
        self.statements.append(statement)

    @property
    def count(self) -> int:
        return len(self.statements)

    def reset(self) -> None:
        self.statements.clear()


@pytest.fixture
def count_queries():
    """Attach a QueryCounter to the engine behind a session."""
    attached = []

    def _attach(session) -> QueryCounter:
        counter = QueryCounter()
        engine = session.get_bind()
        event.listen(engine, "before_cursor_execute", counter)
        attached.append((engine, counter))
        return counter

    yield _attach

    for engine, counter in attached:
        event.remove(engine, "before_cursor_execute", counter)


@pytest.fixture(autouse=True)
def reset_query_monitor():
    """Query metrics and the slow-query threshold are process globals."""
    clear_query_metrics()
    set_slow_query_threshold(DEFAULT_SLOW_QUERY_MS)
    yield
    clear_query_metrics()
    set_slow_query_threshold(DEFAULT_SLOW_QUERY_MS)
