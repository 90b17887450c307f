"""
Base repository classes with shared session handling.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import Select, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from ...config import SortDirection, get_settings
from ...exceptions import EmptyKeyError, UnitOfWorkError
from ..paging import PagedQueryBuilder, SortKey
from ..tracking import (
    EntityState,
    apply_values,
    entity_state,
    entries,
    mark_modified,
    reset_values,
)

LOGGER = logging.getLogger(__name__)

EntityT = TypeVar("EntityT")


class BaseRepository:
    """
    Base class for all repositories.

    Holds the unit of work, which must be an ``AsyncSession``. Repositories
    never commit; the owner of the session does.
    """

    def __init__(self, session: AsyncSession) -> None:
        if session is None:
            raise UnitOfWorkError("A repository requires a session.")
        if not isinstance(session, AsyncSession):
            raise UnitOfWorkError(
                f"Expected an AsyncSession, got {type(session).__name__}.",
                context={"session_type": type(session).__name__},
            )
        self._session = session

    @property
    def session(self) -> AsyncSession:
        """Expose the underlying session for transaction management."""
        return self._session


class Repository(BaseRepository, Generic[EntityT]):
    """
    Generic repository over one mapped entity.

    The entity is given either to the constructor or as the ``entity`` class
    attribute of a subclass::

        class ItemRepository(Repository[Item]):
            entity = Item
            sort_aliases = {"title": Item.name}

    Mutators return the repository so calls can be chained. Operations that
    need the database are coroutines, as on ``AsyncSession`` itself.
    """

    entity: ClassVar[type[Any] | None] = None
    sort_aliases: ClassVar[Mapping[str, Any]] = {}

    def __init__(self, session: AsyncSession, entity: type[EntityT] | None = None) -> None:
        super().__init__(session)
        resolved = entity or type(self).entity
        if resolved is None:
            raise TypeError(f"{type(self).__name__} has no entity class configured.")
        self._entity: type[EntityT] = resolved
        self._pager = PagedQueryBuilder(resolved, aliases=self.sort_aliases)

    @property
    def entity_type(self) -> type[EntityT]:
        return self._entity

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def set(self) -> Select[tuple[EntityT]]:
        """Return the root query over every row of the entity."""
        return select(self._entity)

    def get_paged(
        self,
        page_index: int,
        page_count: int | None = None,
        order_by: SortKey | None = None,
        ascending: bool | None = None,
        *,
        statement: Select[Any] | None = None,
    ) -> Select[tuple[EntityT]]:
        """
        Return an unexecuted query for one page.

        ``order_by`` is a textual expression (``"name desc, key"``) or a typed
        key (``Item.name`` / ``lambda m: m.name``); it defaults to the primary
        key. ``page_count`` and ``ascending`` fall back to the paging settings.
        Pass ``statement`` to page an already filtered query.
        """

        paging = get_settings().paging
        if page_count is None:
            page_count = paging.default_page_size
        if ascending is None:
            ascending = paging.default_direction is SortDirection.ASCENDING
        if order_by is None:
            order_by = self._primary_key_expression()
        return self._pager.page(page_index, page_count, order_by, ascending, statement=statement)

    async def fetch_page(
        self,
        page_index: int,
        page_count: int | None = None,
        order_by: SortKey | None = None,
        ascending: bool | None = None,
        *,
        statement: Select[Any] | None = None,
    ) -> list[EntityT]:
        """
        Execute ``get_paged`` and return the rows without tracking them.

        Instances that were already tracked before the read stay tracked;
        instances loaded only for this page are expunged afterwards.
        """

        already_tracked = set(self._session.identity_map.keys())
        stmt = self.get_paged(page_index, page_count, order_by, ascending, statement=statement)
        rows = list(await self._session.scalars(stmt))
        for row in rows:
            if inspect(row).key not in already_tracked:
                self._session.expunge(row)
        return rows

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, entity: EntityT) -> Repository[EntityT]:
        self._session.add(entity)
        LOGGER.debug("Added %s", entity)
        return self

    def add_range(self, entities: Iterable[EntityT]) -> Repository[EntityT]:
        items = list(entities)
        self._session.add_all(items)
        LOGGER.debug("Added %d %s instances", len(items), self._entity.__name__)
        return self

    async def delete(self, entity: EntityT) -> Repository[EntityT]:
        await self._session.delete(entity)
        LOGGER.debug("Marked %s for deletion", entity)
        return self

    def apply(
        self, entity: EntityT, new_values: Mapping[str, Any] | EntityT
    ) -> Repository[EntityT]:
        """Copy ``new_values`` onto the tracked ``entity`` (patch semantics)."""
        written = apply_values(entity, new_values)
        LOGGER.debug("Applied %s to %s", written, entity)
        return self

    def reset(self, entity: EntityT) -> Repository[EntityT]:
        """
        Discard local changes to ``entity`` without a database round trip.

        A pending (never flushed) instance has no loaded state to go back to,
        so it is expunged instead.
        """

        if entity in self._session.new:
            self._session.expunge(entity)
            LOGGER.debug("Reset pending %s by expunging it", entity)
            return self
        reverted = reset_values(self._session, entity)
        LOGGER.debug("Reset %s on %s", reverted, entity)
        return self

    async def refresh(self, entity: EntityT) -> Repository[EntityT]:
        """Reload ``entity`` from the database, discarding pending changes."""
        await self._session.refresh(entity)
        if entity in self._session.deleted:
            self._session.add(entity)
        return self

    async def source(self, entity: EntityT) -> EntityT | None:
        """
        Return the stored version of ``entity`` as a new, untracked instance.

        Only plain column values are read, so the identity map and the
        tracked instance are left untouched. Returns None when the entity has
        no primary key yet or its row no longer exists.
        """

        mapper = inspect(self._entity)
        state = inspect(entity)
        if state.pending:
            return None
        # Read the key from the identity so expired attributes are never loaded.
        identity = state.identity
        if identity is None:
            identity = mapper.primary_key_from_instance(entity)
        if any(value is None for value in identity):
            return None

        props = list(mapper.column_attrs)
        stmt = select(*(getattr(self._entity, prop.key) for prop in props)).where(
            *(column == value for column, value in zip(mapper.primary_key, identity))
        )
        with self._session.no_autoflush:
            row = (await self._session.execute(stmt)).one_or_none()
        if row is None:
            return None
        return self._entity(**{prop.key: value for prop, value in zip(props, row)})

    def detach(self, entity: EntityT) -> Repository[EntityT]:
        if entity in self._session:
            self._session.expunge(entity)
        return self

    def attach(self, entity: EntityT) -> Repository[EntityT]:
        """Start tracking ``entity`` without marking any attribute as modified."""
        self._session.add(entity)
        return self

    def track(self, entity: EntityT) -> Repository[EntityT]:
        """Attach ``entity`` and mark all of its loaded columns as modified."""
        self._session.add(entity)
        if inspect(entity).key is not None:
            flagged = mark_modified(entity)
            LOGGER.debug("Tracking %s with %s marked modified", entity, flagged)
        return self

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def find(self, *ids: Any) -> EntityT | None:
        """Return the entity with the given primary key values, or None."""
        ident = self._identity(ids)
        return await self._session.get(self._entity, ident)

    async def exists(self, *ids: Any) -> bool:
        return await self.find(*ids) is not None

    # ------------------------------------------------------------------
    # Change tracking
    # ------------------------------------------------------------------

    def state_of(self, entity: EntityT) -> EntityState:
        return entity_state(self._session, entity)

    def get_added(self) -> list[EntityT]:
        return entries(self._session, self._entity, EntityState.ADDED)

    def get_modified(self) -> list[EntityT]:
        return entries(self._session, self._entity, EntityState.MODIFIED)

    def get_deleted(self) -> list[EntityT]:
        return entries(self._session, self._entity, EntityState.DELETED)

    def get_unchanged(self) -> list[EntityT]:
        return entries(self._session, self._entity, EntityState.UNCHANGED)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _identity(self, ids: tuple[Any, ...]) -> Any:
        if not ids:
            LOGGER.warning("Key lookup on %s requested without key values", self._entity.__name__)
            raise EmptyKeyError(
                "ids should not be empty", context={"entity": self._entity.__name__}
            )
        return ids[0] if len(ids) == 1 else ids

    def _primary_key_expression(self) -> Any:
        mapper = inspect(self._entity)
        return getattr(self._entity, mapper.get_property_by_column(mapper.primary_key[0]).key)


__all__ = ["BaseRepository", "Repository"]
