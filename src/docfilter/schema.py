"""Pydantic schemas for query options and results."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .constants import SORT_ORDER_MAP
from .exceptions import InvalidFieldError
from .settings import settings


class Pagination(BaseModel):
    """Window, ordering and direction of a paginated aggregation."""

    offset: int = Field(0, description="Number of matching rows to skip.")
    limit: int = Field(
        default_factory=lambda: settings.PAGINATION_DEFAULT_LIMIT,
        description="Maximum rows in the returned page. Zero returns only the count.",
    )
    order_by: str = Field(
        default_factory=lambda: settings.PAGINATION_DEFAULT_ORDER_BY,
        description="Field the filtered set is sorted by.",
    )
    sort_order: Literal["asc", "desc"] = Field(
        default_factory=lambda: settings.PAGINATION_DEFAULT_SORT_ORDER,
        description="Sort direction.",
    )

    @model_validator(mode="after")
    def check_window(self) -> "Pagination":
        if self.offset < 0:
            raise InvalidFieldError("Must be a non-negative integer", field="offset", value=self.offset)
        if self.limit < 0:
            raise InvalidFieldError("Must be a non-negative integer", field="limit", value=self.limit)
        return self

    @property
    def sort_direction(self) -> int:
        """MongoDB sort direction (1 ascending, -1 descending)."""
        return SORT_ORDER_MAP[self.sort_order]

    @classmethod
    def from_page(cls, page: int, limit: int, **kwargs: Any) -> "Pagination":
        """Build a pagination window from a zero-based page number.

        Examples:
            Pagination.from_page(2, 10)  # offset=20, limit=10
        """
        if page < 0:
            raise InvalidFieldError("Must be a non-negative integer", field="page", value=page)
        return cls(offset=page * limit, limit=limit, **kwargs)


class FacetedResult(BaseModel):
    """A page of results together with the total number of matching rows."""

    count: int = Field(0, ge=0, description="Rows matching the filter before skip/limit.")
    results: List[Any] = Field(default_factory=list, description="Rows in the requested window.")


class RelationConfig(BaseModel):
    """How a nested-field alias maps onto a related collection."""

    model_config = ConfigDict(frozen=True)

    collection_name: str = Field(..., description="Collection joined for this alias.")
    foreign_field: Optional[str] = Field(
        None,
        description="Field in the related collection holding the owner id. "
        "Defaults to '<owner_collection>_id' when resolved.",
    )


class LookupConfig(BaseModel):
    """Explicit join supplied by the caller.

    Accepts both the Python field names and the MongoDB-style keys:

        LookupConfig(from_collection="invoices", alias="invoice")
        LookupConfig.model_validate({"from": "invoices", "as": "invoice"})
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    from_collection: str = Field(..., alias="from")
    alias: str = Field(..., alias="as")
    local_field: Optional[str] = Field(None, alias="localField")
    foreign_field: Optional[str] = Field(None, alias="foreignField")
    unwind: bool = Field(True, description="Collapse the joined array to its first element.")


class FilterOptions(BaseModel):
    """Extra inputs for `FilterTranslator.compile_with_joins`."""

    search_text: Optional[str] = Field(None, description="Case-insensitive substring searched across fields.")
    search_fields: List[str] = Field(default_factory=list, description="Fields searched; may be nested.")
    lookups: Optional[List[LookupConfig]] = Field(None, description="Explicit joins emitted before inferred ones.")
    additional_stages: List[Dict[str, Any]] = Field(
        default_factory=list, description="Raw stages appended after all generated ones."
    )
