"""
Unit tests for settings loading.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from repokit.config import Environment, PagingSettings, Settings, SortDirection


def test_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.app.name == "repokit"
    assert settings.app.environment is Environment.LOCAL
    assert settings.database.url.startswith("sqlite+aiosqlite://")
    assert settings.database.expire_on_commit is False
    assert settings.paging.default_page_size == 20
    assert settings.paging.default_direction is SortDirection.ASCENDING


def test_nested_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REPOKIT_PAGING__DEFAULT_PAGE_SIZE", "50")
    monkeypatch.setenv("REPOKIT_DATABASE__ECHO", "true")
    monkeypatch.setenv("REPOKIT_APP__ENVIRONMENT", "staging")

    settings = Settings(_env_file=None)

    assert settings.paging.default_page_size == 50
    assert settings.database.echo is True
    assert settings.app.environment is Environment.STAGING


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("ASC", SortDirection.ASCENDING),
        ("desc", SortDirection.DESCENDING),
        (" Descending ", SortDirection.DESCENDING),
        (SortDirection.DESCENDING, SortDirection.DESCENDING),
    ],
)
def test_direction_shorthands(raw: str, expected: SortDirection) -> None:
    assert PagingSettings(default_direction=raw).default_direction is expected


@pytest.mark.parametrize("payload", [{"default_direction": "sideways"}, {"default_page_size": 0}])
def test_rejects_invalid_paging(payload: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        PagingSettings(**payload)


def test_direction_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REPOKIT_PAGING__DEFAULT_DIRECTION", "desc")

    settings = Settings(_env_file=None)

    assert settings.paging.default_direction is SortDirection.DESCENDING
