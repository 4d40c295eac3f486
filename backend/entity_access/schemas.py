"""
Response envelopes returned by the generic entity service.

Serialize with ``model_dump(by_alias=True)`` for the camelCase wire format.
"""

from typing import Any

from pydantic import BaseModel, Field


class PaginationMeta(BaseModel):
    """Pagination block of a list response."""

    page: int
    limit: int
    total: int
    total_pages: int = Field(alias="totalPages")
    has_next: bool = Field(alias="hasNext")
    has_prev: bool = Field(alias="hasPrev")

    class Config:
        populate_by_name = True
        frozen = True


class QueryEnvelope(BaseModel):
    """
    List response.

    ``applied_filters`` echoes only the filters that were actually used;
    ``rls_applied`` is True when a row-level predicate restricted the query.
    """

    data: list[dict[str, Any]]
    pagination: PaginationMeta
    applied_filters: dict[str, Any] = Field(default_factory=dict, alias="appliedFilters")
    rls_applied: bool = Field(default=False, alias="rlsApplied")

    class Config:
        populate_by_name = True


class BatchOperationResult(BaseModel):
    """Outcome of one operation inside a batch."""

    index: int
    operation: str
    success: bool
    record: dict[str, Any] | None = None
    deleted: bool | None = None
    error: str | None = None
    status_code: int | None = Field(default=None, alias="statusCode")

    class Config:
        populate_by_name = True


class BatchResult(BaseModel):
    """Outcome of a batch request."""

    results: list[BatchOperationResult]
    succeeded: int = 0
    failed: int = 0
    committed: bool = False

    class Config:
        populate_by_name = True
