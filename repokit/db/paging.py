"""
Page-query construction for mapped entities.

A page is described by a zero-based index, a positive size and a sort key.
Sort keys come in two forms:

- textual: ``"name"``, ``"name desc"``, ``"score descending, name"``. Field
  names are resolved through a lookup table built from the mapper's column
  attributes (plus optional aliases); nothing is evaluated dynamically.
- typed: a mapped attribute such as ``Item.name`` or a callable receiving the
  entity class, ``lambda m: m.name``.

The result is always an unexecuted ``Select`` ordered by the requested
clauses, then by the primary key so that consecutive pages never overlap.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union

from sqlalchemy import Select, asc, desc, inspect, select
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.orm import ColumnProperty, Mapper, QueryableAttribute
from sqlalchemy.sql.elements import ColumnElement

from ..config import SortDirection
from ..exceptions import InvalidPageError, SortKeyError

LOGGER = logging.getLogger(__name__)

SortExpression = Union[ColumnElement[Any], QueryableAttribute[Any]]
SortKey = Union[str, SortExpression, Callable[[type[Any]], SortExpression]]

_CLAUSE_SEPARATOR = re.compile(r"\s*,\s*")


@dataclass(frozen=True, slots=True)
class SortClause:
    """A resolved column expression paired with its direction."""

    expression: SortExpression
    direction: SortDirection = SortDirection.ASCENDING

    def to_order_by(self) -> ColumnElement[Any]:
        if self.direction is SortDirection.DESCENDING:
            return desc(self.expression)
        return asc(self.expression)


@dataclass(frozen=True, slots=True)
class PageRequest:
    """
    Transient description of one page.

    ``index`` is zero-based and unbounded above; indices past the end simply
    produce an empty page.
    """

    index: int
    size: int
    order_by: SortKey
    direction: SortDirection = SortDirection.ASCENDING

    def __post_init__(self) -> None:
        if self.index < 0:
            raise InvalidPageError(
                f"Page index must be >= 0, got {self.index}.",
                context={"index": self.index},
            )
        if self.size <= 0:
            raise InvalidPageError(
                f"Page size must be > 0, got {self.size}.",
                context={"size": self.size},
            )

    @classmethod
    def of(
        cls, index: int, size: int, order_by: SortKey, *, ascending: bool = True
    ) -> PageRequest:
        return cls(index, size, order_by, SortDirection.from_flag(ascending))

    @property
    def offset(self) -> int:
        return self.size * self.index


def _mapper_for(entity: type[Any]) -> Mapper[Any]:
    try:
        mapper = inspect(entity)
    except NoInspectionAvailable as exc:
        raise SortKeyError(
            f"{entity!r} is not a mapped class.", context={"entity": repr(entity)}
        ) from exc
    if not isinstance(mapper, Mapper):
        raise SortKeyError(f"{entity!r} is not a mapped class.", context={"entity": repr(entity)})
    return mapper


def resolve_typed_key(entity: type[Any], key: Any) -> SortExpression:
    """Turn a mapped attribute, column or accessor callable into a sortable expression."""

    if isinstance(key, (QueryableAttribute, ColumnElement)):
        return key
    if callable(key):
        resolved = key(entity)
        if isinstance(resolved, (QueryableAttribute, ColumnElement)):
            return resolved
    raise SortKeyError(
        f"Cannot sort {entity.__name__} by {key!r}.",
        context={"entity": entity.__name__, "key": repr(key)},
    )


def sortable_fields(
    entity: type[Any], aliases: Mapping[str, Any] | None = None
) -> dict[str, SortExpression]:
    """Return the lookup table of field names accepted by textual sort keys."""

    mapper = _mapper_for(entity)
    fields: dict[str, SortExpression] = {
        prop.key: getattr(entity, prop.key) for prop in mapper.column_attrs
    }
    for name, target in (aliases or {}).items():
        fields[name] = resolve_typed_key(entity, target)
    return fields


def parse_sort_expression(
    expression: str,
    entity: type[Any],
    *,
    default: SortDirection = SortDirection.ASCENDING,
    aliases: Mapping[str, Any] | None = None,
) -> list[SortClause]:
    """
    Parse ``"field [asc|ascending|desc|descending], ..."`` into sort clauses.

    Clauses without a direction token take ``default``. Field names match
    exactly first and then case-insensitively.
    """

    if not expression or not expression.strip():
        raise SortKeyError("Sort expression must not be empty.", context={"entity": entity.__name__})

    fields = sortable_fields(entity, aliases)
    folded = {name.lower(): column for name, column in fields.items()}

    clauses: list[SortClause] = []
    for raw_clause in _CLAUSE_SEPARATOR.split(expression.strip()):
        tokens = raw_clause.split()
        if not tokens or len(tokens) > 2:
            raise SortKeyError(
                f"Malformed sort clause {raw_clause!r}.",
                context={"expression": expression},
            )

        direction = default
        if len(tokens) == 2:
            parsed = SortDirection.from_token(tokens[1])
            if parsed is None:
                raise SortKeyError(
                    f"Unknown sort direction {tokens[1]!r}.",
                    context={"expression": expression},
                )
            direction = parsed

        name = tokens[0]
        column = fields.get(name)
        if column is None:
            column = folded.get(name.lower())
        if column is None:
            raise SortKeyError(
                f"Unknown sort field {name!r} for {entity.__name__}.",
                context={"entity": entity.__name__, "field": name},
            )
        clauses.append(SortClause(column, direction))
    return clauses


def resolve_sort(
    entity: type[Any],
    order_by: SortKey,
    direction: SortDirection = SortDirection.ASCENDING,
    *,
    aliases: Mapping[str, Any] | None = None,
) -> list[SortClause]:
    """Resolve either sort-key form into clauses."""

    if isinstance(order_by, str):
        return parse_sort_expression(order_by, entity, default=direction, aliases=aliases)
    return [SortClause(resolve_typed_key(entity, order_by), direction)]


def _own_columns(mapper: Mapper[Any], expression: SortExpression) -> set[Any]:
    """Return the columns of ``mapper``'s tables that ``expression`` sorts on directly."""

    if isinstance(expression, QueryableAttribute):
        # Attributes of another entity or of an alias never cover this entity's key.
        if expression.parent is not mapper or not isinstance(expression.property, ColumnProperty):
            return set()
        return set(expression.property.columns)
    if getattr(expression, "table", None) not in mapper.tables:
        return set()
    return set(getattr(expression, "base_columns", ()))


def order_by_clauses(entity: type[Any], clauses: Sequence[SortClause]) -> list[ColumnElement[Any]]:
    """Render clauses and append primary-key columns not already ordered on."""

    mapper = _mapper_for(entity)
    rendered = [clause.to_order_by() for clause in clauses]
    ordered: set[Any] = set()
    for clause in clauses:
        ordered |= _own_columns(mapper, clause.expression)
    tiebreak = clauses[0].direction if clauses else SortDirection.ASCENDING
    for column in mapper.primary_key:
        if column not in ordered:
            key = mapper.get_property_by_column(column).key
            rendered.append(SortClause(getattr(entity, key), tiebreak).to_order_by())
    return rendered


def paginate(
    statement: Select[Any], order_by: Sequence[ColumnElement[Any]], request: PageRequest
) -> Select[Any]:
    """Apply ordering, then skip ``size * index`` rows and take ``size``."""

    return statement.order_by(*order_by).offset(request.offset).limit(request.size)


class PagedQueryBuilder:
    """
    Builds page queries over one mapped entity.

    ``aliases`` extends the textual lookup table with extra names, each
    pointing at a mapped attribute or an accessor callable.
    """

    def __init__(self, entity: type[Any], *, aliases: Mapping[str, Any] | None = None) -> None:
        _mapper_for(entity)
        self._entity = entity
        self._aliases = dict(aliases or {})

    @property
    def entity(self) -> type[Any]:
        return self._entity

    def build(self, request: PageRequest, statement: Select[Any] | None = None) -> Select[Any]:
        """Return the unexecuted page query for ``request``."""

        clauses = resolve_sort(
            self._entity, request.order_by, request.direction, aliases=self._aliases
        )
        base = statement if statement is not None else select(self._entity)
        query = paginate(base, order_by_clauses(self._entity, clauses), request)
        LOGGER.debug(
            "Built page %d (size %d) of %s ordered by %s",
            request.index,
            request.size,
            self._entity.__name__,
            ", ".join(
                f"{getattr(c.expression, 'key', c.expression)} {c.direction.value}"
                for c in clauses
            ),
        )
        return query

    def page(
        self,
        page_index: int,
        page_count: int,
        order_by: SortKey,
        ascending: bool = True,
        *,
        statement: Select[Any] | None = None,
    ) -> Select[Any]:
        return self.build(
            PageRequest.of(page_index, page_count, order_by, ascending=ascending), statement
        )


def get_paged(
    source: type[Any] | Select[Any],
    page_index: int,
    page_count: int,
    order_by: SortKey,
    ascending: bool = True,
    *,
    aliases: Mapping[str, Any] | None = None,
) -> Select[Any]:
    """
    Return one ordered page of ``source``.

    ``source`` is either a mapped class or a ``Select`` whose first column is
    a mapped entity, which lets callers page an already filtered query.
    """

    if isinstance(source, Select):
        entity = source.column_descriptions[0].get("entity")
        if entity is None:
            raise SortKeyError(
                "Cannot page a statement that does not select a mapped entity.",
                context={"statement": str(source)},
            )
        return PagedQueryBuilder(entity, aliases=aliases).page(
            page_index, page_count, order_by, ascending, statement=source
        )
    return PagedQueryBuilder(source, aliases=aliases).page(
        page_index, page_count, order_by, ascending
    )


__all__ = [
    "PageRequest",
    "PagedQueryBuilder",
    "SortClause",
    "SortDirection",
    "SortKey",
    "get_paged",
    "order_by_clauses",
    "paginate",
    "parse_sort_expression",
    "resolve_sort",
    "resolve_typed_key",
    "sortable_fields",
]
