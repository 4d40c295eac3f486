"""
List query options.

Values are kept exactly as the caller sent them; the clause builder and
the pagination calculator decide what is usable.
"""

from typing import Any, Mapping

from pydantic import BaseModel, Field, ValidationError, field_validator


class QueryOptions(BaseModel):
    page: Any = None
    limit: Any = None
    search: Any = None
    filters: Any = None
    sort_by: Any = Field(default=None, alias="sortBy")
    sort_order: Any = Field(default=None, alias="sortOrder")
    include_inactive: bool = Field(default=False, alias="includeInactive")

    model_config = {"populate_by_name": True, "extra": "ignore", "frozen": True}

    @field_validator("filters", mode="before")
    @classmethod
    def _filters_must_be_mapping(cls, value: Any) -> Any:
        return value if isinstance(value, Mapping) else None

    @field_validator("include_inactive", mode="wrap")
    @classmethod
    def _unreadable_flag_is_false(cls, value: Any, handler) -> bool:
        # Query strings carry junk; anything pydantic cannot read as a bool is off
        try:
            return handler(value)
        except ValidationError:
            return False

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "QueryOptions":
        """
        Build options from a query-string style mapping.

        Accepts both snake_case and camelCase keys; unknown keys are ignored.
        """
        if not isinstance(raw, Mapping) or not raw:
            return cls()
        return cls.model_validate({str(key): value for key, value in raw.items()})
