"""
Repository classes for database access.

- BaseRepository: holds and validates the session (unit of work)
- Repository: generic paging, mutation and change-tracking operations
"""

from .base import BaseRepository, Repository

__all__ = ["BaseRepository", "Repository"]
