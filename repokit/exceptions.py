"""
Exception hierarchy for repository and paging components.
"""

from __future__ import annotations

from typing import Any


class RepositoryError(Exception):
    """Base exception for all repository-related errors."""

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = context or {}


class UnitOfWorkError(RepositoryError, TypeError):
    """Raised when a repository is handed no session or the wrong kind of session."""


class EmptyKeyError(RepositoryError, ValueError):
    """Raised when a key lookup is requested without any key values."""


class InvalidPageError(RepositoryError, ValueError):
    """Raised when a page request has a negative index or a non-positive size."""


class UnknownFieldError(RepositoryError, ValueError):
    """Raised when a field name does not match a mapped column."""


class SortKeyError(UnknownFieldError):
    """Raised when a sort expression cannot be resolved against the entity."""


__all__ = [
    "EmptyKeyError",
    "InvalidPageError",
    "RepositoryError",
    "SortKeyError",
    "UnitOfWorkError",
    "UnknownFieldError",
]
