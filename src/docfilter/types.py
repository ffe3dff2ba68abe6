"""Type aliases for docfilter package.

This module provides reusable type definitions to ensure consistency
across the codebase and improve code readability.
"""

from typing import Any, Dict, List, Mapping


class _Unset:
    """Marker for a filter value the caller did not supply."""

    _instance = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


# Field value that drops the field from the compiled filter (JS `undefined`)
UNSET = _Unset()

# Caller-facing filter: field name -> literal, list of literals or condition mapping
FilterExpression = Mapping[str, Any]

# A single aggregation stage and an ordered pipeline of them
PipelineStage = Dict[str, Any]
StageSequence = List[PipelineStage]

# Compiled MongoDB match clause
MatchClause = Dict[str, Any]
