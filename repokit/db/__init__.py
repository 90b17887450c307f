"""
Database toolkit exposing repositories, paging and change-tracking helpers.
"""

from .paging import PagedQueryBuilder, PageRequest, SortClause, SortDirection, get_paged
from .repositories import BaseRepository, Repository
from .session import dispose_engine, get_engine, get_session_factory, unit_of_work
from .tracking import EntityState

__all__ = [
    "BaseRepository",
    "EntityState",
    "PageRequest",
    "PagedQueryBuilder",
    "Repository",
    "SortClause",
    "SortDirection",
    "dispose_engine",
    "get_engine",
    "get_paged",
    "get_session_factory",
    "unit_of_work",
]
