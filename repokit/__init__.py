"""
Repository and unit-of-work adapters over SQLAlchemy async sessions.
"""

from .config import Settings, get_settings
from .db import (
    BaseRepository,
    EntityState,
    PagedQueryBuilder,
    PageRequest,
    Repository,
    SortDirection,
    get_paged,
    unit_of_work,
)
from .exceptions import (
    EmptyKeyError,
    InvalidPageError,
    RepositoryError,
    SortKeyError,
    UnitOfWorkError,
    UnknownFieldError,
)
from .logger import setup_logging

__version__ = "0.1.0"

__all__ = [
    "BaseRepository",
    "EmptyKeyError",
    "EntityState",
    "InvalidPageError",
    "PageRequest",
    "PagedQueryBuilder",
    "Repository",
    "RepositoryError",
    "Settings",
    "SortDirection",
    "SortKeyError",
    "UnitOfWorkError",
    "UnknownFieldError",
    "get_paged",
    "get_settings",
    "setup_logging",
    "unit_of_work",
]
