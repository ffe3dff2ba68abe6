"""Query DSL module.

Exports the `FilterTranslator` that compiles developer-facing filter
expressions into MongoDB aggregation stages, together with the condition
parser, relation resolver and pagination helpers it is built from.
"""

from .compiler import FilterTranslator
from .conditions import parse_condition, parse_value
from .pagination import build_paginated_pipeline, unpack_faceted
from .relations import RelationResolver, pluralize

__all__ = (
    "FilterTranslator",
    "RelationResolver",
    "build_paginated_pipeline",
    "parse_condition",
    "parse_value",
    "pluralize",
    "unpack_faceted",
)
