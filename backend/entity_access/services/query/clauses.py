"""
Parameterized clause builder for search, filter and sort input.

Every function here is pure and stateless. Untrusted input never raises:
anything malformed degrades to an empty fragment, so a caller cannot probe
the schema through error messages. Values only ever travel as positional
parameters (``$1``, ``$2``...); identifiers come from entity metadata,
never from the caller.

Usage:
    search = build_search_clause("acme", ["name", "email"])
    filters = build_filter_clause({"status": "open"}, ["status"], search.param_offset)
    where = combine_where_clauses([search.clause, filters.clause])
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Iterable, Mapping, Sequence
from uuid import UUID

from shared.config.constants import SortOrder

from entity_access.models.base import EntityMetadata, SortSpec

from .options import QueryOptions


# Filter operator -> SQL comparison
FILTER_OPERATORS: Mapping[str, str] = {
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
    "not": "!=",
}

IN_OPERATOR = "in"

_SCALAR_TYPES = (str, int, float, bool, Decimal, date, datetime, time, UUID)


@dataclass(frozen=True)
class Clause:
    """A predicate fragment and its positional parameters."""

    clause: str = ""
    params: tuple[Any, ...] = ()
    param_offset: int = 0

    def __bool__(self) -> bool:
        return bool(self.clause)


@dataclass(frozen=True)
class FilterClause(Clause):
    """Filter fragment plus the filters that were actually applied."""

    applied: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SortClause:
    field: str
    order: str
    table_prefix: str | None = None

    @property
    def sql(self) -> str:
        return f"{_qualify(self.field, self.table_prefix)} {self.order}"


@dataclass(frozen=True)
class QueryParts:
    """Everything ``build_query`` derives from list options."""

    where: str
    params: tuple[Any, ...]
    order_by: SortClause
    applied_filters: Mapping[str, Any]
    param_offset: int
    search_applied: bool = False


def _qualify(column: str, table_prefix: str | None) -> str:
    return f"{table_prefix}.{column}" if table_prefix else column


def _is_scalar(value: Any) -> bool:
    return isinstance(value, _SCALAR_TYPES)


def _in_values(operand: Any) -> list[Any]:
    """Accept a list or a comma-separated string; drop anything non-scalar."""
    if isinstance(operand, str):
        items: Iterable[Any] = (part.strip() for part in operand.split(","))
        return [item for item in items if item]
    if isinstance(operand, (list, tuple)):
        return [item for item in operand if _is_scalar(item)]
    return []


# =============================================================================
# Search
# =============================================================================


def build_search_clause(
    term: Any,
    searchable_fields: Sequence[str] | None,
    param_offset: int = 0,
    table_prefix: str | None = None,
) -> Clause:
    """
    Case-insensitive substring match across ``searchable_fields``.

    Returns an empty clause when the term is blank or there is nothing to
    search. Otherwise one parameter is consumed per field:

        (first_name ILIKE $1 OR last_name ILIKE $2)
    """
    if not isinstance(term, str) or not term.strip() or not searchable_fields:
        return Clause(param_offset=param_offset)

    pattern = f"%{term.strip()}%"
    conditions = [
        f"{_qualify(name, table_prefix)} ILIKE ${param_offset + index}"
        for index, name in enumerate(searchable_fields, start=1)
    ]
    return Clause(
        clause=f"({' OR '.join(conditions)})",
        params=(pattern,) * len(conditions),
        param_offset=param_offset + len(conditions),
    )


# =============================================================================
# Filters
# =============================================================================


def build_filter_clause(
    filters: Any,
    filterable_fields: Iterable[str] | None,
    param_offset: int = 0,
    table_prefix: str | None = None,
) -> FilterClause:
    """
    Turn a filter mapping into AND-joined conditions.

    Values:
        None            -> field IS NULL (no parameter)
        scalar          -> field = $n
        {"gte": 5, ...} -> one condition per operator
        {"in": [...]}   -> field IN ($n, $n+1, ...)

    Fields outside ``filterable_fields`` are skipped and never echoed back in
    ``applied``. Unknown operators and unusable values are skipped without
    leaving a gap in the placeholder sequence.
    """
    if not isinstance(filters, Mapping) or not filterable_fields:
        return FilterClause(param_offset=param_offset)

    allowed = set(filterable_fields)
    conditions: list[str] = []
    params: list[Any] = []
    applied: dict[str, Any] = {}
    offset = param_offset

    for name, value in filters.items():
        if name not in allowed:
            continue
        column = _qualify(name, table_prefix)

        if value is None:
            conditions.append(f"{column} IS NULL")
            applied[name] = None
            continue

        if isinstance(value, Mapping):
            used: dict[str, Any] = {}
            for operator, operand in value.items():
                if operator == IN_OPERATOR:
                    values = _in_values(operand)
                    if not values:
                        continue
                    placeholders = ", ".join(f"${offset + i}" for i in range(1, len(values) + 1))
                    conditions.append(f"{column} IN ({placeholders})")
                    params.extend(values)
                    offset += len(values)
                    used[operator] = values
                    continue

                offset += 1
                sql_operator = FILTER_OPERATORS.get(operator)
                if sql_operator is None or not _is_scalar(operand):
                    # Unknown operator: give the reserved placeholder back
                    offset -= 1
                    continue
                conditions.append(f"{column} {sql_operator} ${offset}")
                params.append(operand)
                used[operator] = operand

            if used:
                applied[name] = used
            continue

        if not _is_scalar(value):
            continue

        offset += 1
        conditions.append(f"{column} = ${offset}")
        params.append(value)
        applied[name] = value

    return FilterClause(
        clause=" AND ".join(conditions),
        params=tuple(params),
        param_offset=offset,
        applied=applied,
    )


# =============================================================================
# Sorting
# =============================================================================


def _normalize_order(order: Any) -> str | None:
    if not isinstance(order, str):
        return None
    order = order.strip().upper()
    return order if order in SortOrder.ALL else None


def build_sort_clause(
    sort_by: Any,
    sort_order: Any,
    sortable_fields: Sequence[str] | None,
    default_sort: SortSpec | None = None,
    primary_key: str = "id",
    table_prefix: str | None = None,
) -> SortClause:
    """
    Resolve a safe ORDER BY target.

    A field outside ``sortable_fields`` falls back to the default sort field,
    then the first sortable field, then the primary key. In that case the
    default order wins even if a valid order was requested.
    """
    sortable = tuple(sortable_fields or ())
    default_order = _normalize_order(default_sort.order if default_sort else None) or SortOrder.ASC

    if isinstance(sort_by, str) and sort_by in sortable:
        order = _normalize_order(sort_order) or default_order
        return SortClause(field=sort_by, order=order, table_prefix=table_prefix)

    if default_sort and default_sort.field:
        fallback = default_sort.field
    elif sortable:
        fallback = sortable[0]
    else:
        fallback = primary_key
    return SortClause(field=fallback, order=default_order, table_prefix=table_prefix)


# =============================================================================
# Combining
# =============================================================================


def combine_where_clauses(clauses: Iterable[Any]) -> str:
    """AND-join the non-empty fragments. Empty string when nothing remains."""
    parts = []
    for clause in clauses:
        text = clause.clause if isinstance(clause, Clause) else clause
        if text:
            parts.append(text)
    return " AND ".join(parts)


def build_query(
    options: QueryOptions,
    metadata: EntityMetadata,
    param_offset: int = 0,
    table_prefix: str | None = None,
) -> QueryParts:
    """Search, filter and sort for one entity in a single call."""
    search = build_search_clause(options.search, metadata.searchable_fields, param_offset, table_prefix)
    filters = build_filter_clause(options.filters, metadata.filterable_fields, search.param_offset, table_prefix)
    order_by = build_sort_clause(
        options.sort_by,
        options.sort_order,
        metadata.sortable_fields,
        metadata.default_sort,
        metadata.primary_key,
        table_prefix,
    )
    return QueryParts(
        where=combine_where_clauses([search, filters]),
        params=search.params + filters.params,
        order_by=order_by,
        applied_filters=filters.applied,
        param_offset=filters.param_offset,
        search_applied=bool(search),
    )
