"""
Pagination calculator.

Clamps caller-supplied page/limit and computes response metadata.
Nothing here raises: non-numeric input takes the same clamp path as
out-of-range input.

Usage:
    params = validate_params({"page": "2", "limit": 25})
    rows = execute(..., limit=params.limit, offset=params.offset)
    meta = generate_metadata(params.page, params.limit, total)
"""

import math
from dataclasses import dataclass
from typing import Any, Mapping

from shared.config.constants import Limits

from entity_access.schemas import PaginationMeta


@dataclass(frozen=True)
class PageParams:
    """
    Normalized pagination parameters.

    Attributes:
        page: 1-indexed page number (>= 1)
        limit: Items per page (1 to max_limit)
        offset: Rows to skip, (page - 1) * limit
    """

    page: int
    limit: int
    offset: int


def _coerce_int(value: Any) -> int | None:
    """Best-effort integer conversion; None when the value is unusable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return int(number) if math.isfinite(number) else None
    return None


def validate_params(
    params: Mapping[str, Any] | None = None,
    max_limit: int = Limits.MAX_PAGE_SIZE,
    default_limit: int = Limits.DEFAULT_PAGE_SIZE,
) -> PageParams:
    """
    Clamp page and limit.

    - page < 1 or unusable -> 1
    - page whose offset would overflow a 64-bit OFFSET -> last representable page
    - limit > max_limit -> max_limit
    - limit < 1 or unusable -> default_limit
    """
    params = params or {}
    if not isinstance(max_limit, int) or isinstance(max_limit, bool) or max_limit < 1:
        max_limit = Limits.MAX_PAGE_SIZE
    default_limit = min(max(1, default_limit), max_limit)

    page = _coerce_int(params.get("page"))
    if page is None or page < 1:
        page = Limits.DEFAULT_PAGE

    limit = _coerce_int(params.get("limit"))
    if limit is None or limit < 1:
        limit = default_limit
    elif limit > max_limit:
        limit = max_limit

    page = min(page, Limits.MAX_OFFSET // limit + 1)

    return PageParams(page=page, limit=limit, offset=(page - 1) * limit)


def generate_metadata(page: int, limit: int, total: int) -> PaginationMeta:
    """Build the pagination block for a response."""
    total = max(0, total or 0)
    total_pages = math.ceil(total / limit) if limit and limit > 0 else 0
    return PaginationMeta(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )
