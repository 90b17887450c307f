"""
Change-tracking helpers over an ``AsyncSession``.

The session already knows which instances are new, dirty or marked for
deletion; these helpers classify instances into a single ``EntityState`` and
perform the value-snapshot operations (apply, reset, mark modified) through
SQLAlchemy's attribute history instead of touching instance dictionaries.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from enum import Enum
from typing import Any, TypeVar

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapper
from sqlalchemy.orm.attributes import flag_modified, set_committed_value

from ..exceptions import UnknownFieldError

LOGGER = logging.getLogger(__name__)

EntityT = TypeVar("EntityT")


class EntityState(str, Enum):
    """Tracking state of an instance relative to one session."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    UNCHANGED = "unchanged"
    DETACHED = "detached"


def entity_state(session: AsyncSession, entity: object) -> EntityState:
    """Return the state ``entity`` holds in ``session``."""

    if entity not in session:
        return EntityState.DETACHED
    if entity in session.new:
        return EntityState.ADDED
    if entity in session.deleted:
        return EntityState.DELETED
    if session.is_modified(entity):
        return EntityState.MODIFIED
    return EntityState.UNCHANGED


def _tracked(session: AsyncSession) -> Iterator[object]:
    yield from session.new
    yield from session.identity_map.values()


def entries(
    session: AsyncSession, entity_type: type[EntityT], state: EntityState
) -> list[EntityT]:
    """Return the tracked instances of ``entity_type`` currently in ``state``."""

    if state is EntityState.DETACHED:
        return []
    if state is EntityState.ADDED:
        candidates: Iterator[object] = iter(session.new)
    elif state is EntityState.DELETED:
        candidates = iter(session.deleted)
    elif state is EntityState.MODIFIED:
        candidates = iter(session.dirty)
    else:
        candidates = _tracked(session)

    seen: set[int] = set()
    matches: list[EntityT] = []
    for entity in candidates:
        if not isinstance(entity, entity_type) or id(entity) in seen:
            continue
        seen.add(id(entity))
        if entity_state(session, entity) is state:
            matches.append(entity)
    return matches


def _writable_columns(mapper: Mapper[Any]) -> dict[str, Any]:
    """Map attribute keys of non primary-key column properties to their properties."""

    primary_keys = {mapper.get_property_by_column(column).key for column in mapper.primary_key}
    return {
        prop.key: prop for prop in mapper.column_attrs if prop.key not in primary_keys
    }


def apply_values(entity: object, new_values: Mapping[str, Any] | object) -> list[str]:
    """
    Copy ``new_values`` onto ``entity`` and return the attribute keys written.

    ``new_values`` is either a mapping of attribute names or another instance
    of the same class; for an instance, only attributes that were actually
    set on it are copied. Primary-key columns are never overwritten.
    """

    state = inspect(entity)
    writable = _writable_columns(state.mapper)

    if isinstance(new_values, Mapping):
        unknown = sorted(key for key in new_values if key not in writable)
        if unknown:
            raise UnknownFieldError(
                f"Cannot apply unknown or key fields {unknown} to {type(entity).__name__}.",
                context={"entity": type(entity).__name__, "fields": unknown},
            )
        items = list(new_values.items())
    else:
        if not isinstance(new_values, type(entity)):
            raise UnknownFieldError(
                f"Expected a mapping or {type(entity).__name__}, got {type(new_values).__name__}.",
                context={"entity": type(entity).__name__},
            )
        source_dict = inspect(new_values).dict
        items = [(key, source_dict[key]) for key in writable if key in source_dict]

    for key, value in items:
        setattr(entity, key, value)
    return [key for key, _ in items]


def reset_values(session: AsyncSession, entity: object) -> list[str]:
    """
    Restore the originally loaded column values of a persistent ``entity``.

    Attributes whose original value was never loaded are expired instead, so
    they are fetched again on next access. A pending delete is reverted.
    Returns the attribute keys that were reverted or expired.
    """

    state = inspect(entity)
    restored: list[str] = []
    stale: list[str] = []
    for prop in state.mapper.column_attrs:
        history = state.attrs[prop.key].history
        if not history.has_changes():
            continue
        if history.deleted:
            set_committed_value(entity, prop.key, history.deleted[0])
            restored.append(prop.key)
        else:
            stale.append(prop.key)

    if stale:
        session.expire(entity, stale)
    if entity in session.deleted:
        # re-adding a persistent instance removes it from the pending deletes
        session.add(entity)
    return restored + stale


def mark_modified(entity: object) -> list[str]:
    """Flag every loaded non-key column as modified and return their keys."""

    state = inspect(entity)
    flagged = [key for key in _writable_columns(state.mapper) if key in state.dict]
    for key in flagged:
        flag_modified(entity, key)
    return flagged


__all__ = [
    "EntityState",
    "apply_values",
    "entity_state",
    "entries",
    "mark_modified",
    "reset_values",
]
