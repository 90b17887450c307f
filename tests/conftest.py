"""
Shared pytest fixtures for database sessions, seeded entities and settings.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from repokit import config as config_module
from repokit.config import Settings
from tests.factories import build_items
from tests.test_models import MockBase, MockItem


@pytest.fixture
async def db_engine() -> AsyncIterator[AsyncEngine]:
    """Provide a fresh async in-memory SQLite engine per test."""

    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as connection:
        await connection.run_sync(MockBase.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Yield a session that is rolled back after the test."""

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def seeded_items(db_session: AsyncSession) -> list[MockItem]:
    """Persist the five reference items and return them, still tracked as unchanged."""

    items = build_items()
    db_session.add_all(items)
    await db_session.commit()
    return items


@pytest.fixture
def statement_log(db_engine: AsyncEngine) -> Iterator[list[str]]:
    """Collect every SQL statement sent to the engine during the test."""

    statements: list[str] = []

    def _record(conn, cursor, statement, parameters, context, executemany) -> None:  # noqa: ARG001
        statements.append(statement)

    event.listen(db_engine.sync_engine, "before_cursor_execute", _record)
    try:
        yield statements
    finally:
        event.remove(db_engine.sync_engine, "before_cursor_execute", _record)


@pytest.fixture
def settings_override(monkeypatch: pytest.MonkeyPatch) -> Iterator[Settings]:
    """Point settings at test-friendly values through the environment."""

    monkeypatch.setenv("REPOKIT_DATABASE__URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("REPOKIT_PAGING__DEFAULT_PAGE_SIZE", "2")
    config_module.get_settings.cache_clear()
    try:
        yield config_module.get_settings()
    finally:
        config_module.get_settings.cache_clear()
