"""
Query building: clause builder, pagination calculator and list options.

Usage:
    from entity_access.services.query import build_query, validate_params

    parts = build_query(options, metadata)
    page = validate_params({"page": options.page, "limit": options.limit})
"""

from .options import QueryOptions
from .clauses import (
    Clause,
    FilterClause,
    SortClause,
    QueryParts,
    FILTER_OPERATORS,
    build_search_clause,
    build_filter_clause,
    build_sort_clause,
    combine_where_clauses,
    build_query,
)
from .pagination import PageParams, validate_params, generate_metadata

__all__ = [
    "QueryOptions",
    "Clause",
    "FilterClause",
    "SortClause",
    "QueryParts",
    "FILTER_OPERATORS",
    "build_search_clause",
    "build_filter_clause",
    "build_sort_clause",
    "combine_where_clauses",
    "build_query",
    "PageParams",
    "validate_params",
    "generate_metadata",
]
