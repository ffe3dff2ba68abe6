"""
This __init__.py file makes the docfilter directory a Python package
and exposes the filter translator, repository and schema classes for easy access.
"""

from .querydsl import FilterTranslator, RelationResolver
from .repository import MongoRepository
from .schema import FacetedResult, FilterOptions, LookupConfig, Pagination, RelationConfig
from .types import UNSET, FilterExpression, StageSequence

__version__ = "0.1.0"

__all__ = [
    "FilterTranslator",
    "RelationResolver",
    "MongoRepository",
    "Pagination",
    "FacetedResult",
    "FilterOptions",
    "LookupConfig",
    "RelationConfig",
    "UNSET",
    "FilterExpression",
    "StageSequence",
]
