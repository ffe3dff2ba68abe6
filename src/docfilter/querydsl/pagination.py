"""Pagination stages.

A filtered pipeline is paginated with a sort followed by a single ``$facet``
whose two branches read the same sorted set: one skips/limits to the page,
the other counts every row. Count and page therefore always describe the
same filter state.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterable, Optional, Union

from ..constants import COUNT_FIELD, FACET_COUNT, FACET_DATA, Stage
from ..schema import FacetedResult, Pagination
from ..types import StageSequence

__all__ = (
    "coerce_pagination",
    "build_pagination_stages",
    "build_paginated_pipeline",
    "unpack_faceted",
)

PaginationInput = Union[Pagination, Mapping[str, Any], None]


def coerce_pagination(pagination: PaginationInput) -> Pagination:
    """Accept a Pagination model, a plain mapping or None (all defaults)."""
    if isinstance(pagination, Pagination):
        return pagination
    return Pagination.model_validate(dict(pagination or {}))


def build_pagination_stages(pagination: PaginationInput) -> StageSequence:
    """Sort and facet stages for a pagination window.

    ``_id`` is added as a secondary sort key so rows sharing an ``order_by``
    value keep the same order from one page to the next.
    """
    page = coerce_pagination(pagination)

    sort = {page.order_by: page.sort_direction}
    if page.order_by != "_id":
        sort["_id"] = page.sort_direction

    if page.limit > 0:
        data = [{Stage.SKIP: page.offset}, {Stage.LIMIT: page.limit}]
    else:
        # $limit must be positive; an always-false match yields an empty page
        data = [{Stage.MATCH: {"$expr": False}}]

    return [
        {Stage.SORT: sort},
        {
            Stage.FACET: {
                FACET_DATA: data,
                FACET_COUNT: [{Stage.COUNT: COUNT_FIELD}],
            }
        },
    ]


def build_paginated_pipeline(stages: Optional[StageSequence], pagination: PaginationInput) -> StageSequence:
    """Append pagination to a compiled stage sequence without mutating it."""
    return [*(stages or []), *build_pagination_stages(pagination)]


def unpack_faceted(raw: Iterable[Mapping[str, Any]]) -> FacetedResult:
    """Turn the single ``$facet`` output document into a FacetedResult."""
    first: Mapping[str, Any] = next(iter(raw), None) or {}
    count_rows = first.get(FACET_COUNT) or []
    count = count_rows[0].get(COUNT_FIELD, 0) if count_rows else 0
    return FacetedResult(count=count, results=list(first.get(FACET_DATA) or []))
