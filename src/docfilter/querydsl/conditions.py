"""Per-field condition kinds.

A raw field value from a filter expression is parsed into exactly one
`Condition` variant. Recognized variants render the MongoDB clause for their
field through `to_mongo()`; `Unrecognized` carries the raw value so the
caller can report it.

Raw shapes:

- scalar, `None`, date/datetime -> `Equals`
- list / tuple / set -> `In`
- mapping -> resolved by key, in order: `isNull`, `notNull`, `exists`,
  `equals`, `notEquals`, `in`, `notIn`, range keys (`gt`, `gte`, `lt`,
  `lte`, `between`, accumulated into one `Range`), then `contains`,
  `startsWith`, `endsWith`.

Keys left over after a variant is chosen are kept in `ignored`.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

from ..types import UNSET

__all__ = (
    "Condition",
    "Equals",
    "NotEquals",
    "IsNull",
    "NotNull",
    "Exists",
    "In",
    "NotIn",
    "Range",
    "Contains",
    "StartsWith",
    "EndsWith",
    "Unrecognized",
    "AnyCondition",
    "parse_value",
    "parse_condition",
    "is_skipped",
)

_SEQUENCE_TYPES = (list, tuple, set, frozenset)
_RANGE_KEYS = ("gt", "gte", "lt", "lte")


class Condition(BaseModel, ABC):
    """Abstract base class for all condition variants."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: str
    ignored: Tuple[str, ...] = ()

    @abstractmethod
    def to_mongo(self) -> Any:
        """Return the MongoDB clause for the field this condition applies to."""
        raise NotImplementedError


class Equals(Condition):
    kind: Literal["equals"] = "equals"
    value: Any = None

    def to_mongo(self) -> Any:
        return self.value


class NotEquals(Condition):
    kind: Literal["notEquals"] = "notEquals"
    value: Any = None

    def to_mongo(self) -> Dict[str, Any]:
        return {"$ne": self.value}


class IsNull(Condition):
    kind: Literal["isNull"] = "isNull"
    flag: bool = True

    def to_mongo(self) -> Any:
        # Mongo's `field: null` matches both null and missing fields
        if self.flag:
            return None
        return {"$ne": None, "$exists": True}


class NotNull(Condition):
    kind: Literal["notNull"] = "notNull"
    flag: bool = True

    def to_mongo(self) -> Any:
        if self.flag:
            return {"$ne": None, "$exists": True}
        return None


class Exists(Condition):
    kind: Literal["exists"] = "exists"
    flag: bool = True

    def to_mongo(self) -> Dict[str, Any]:
        return {"$exists": self.flag}


class In(Condition):
    kind: Literal["in"] = "in"
    values: List[Any] = []

    def to_mongo(self) -> Dict[str, Any]:
        return {"$in": list(self.values)}


class NotIn(Condition):
    kind: Literal["notIn"] = "notIn"
    values: List[Any] = []

    def to_mongo(self) -> Dict[str, Any]:
        return {"$nin": list(self.values)}


class Range(Condition):
    """Ordering comparison; any combination of bounds forms one clause."""

    kind: Literal["range"] = "range"
    gt: Any = UNSET
    gte: Any = UNSET
    lt: Any = UNSET
    lte: Any = UNSET

    def to_mongo(self) -> Dict[str, Any]:
        clause: Dict[str, Any] = {}
        for op in _RANGE_KEYS:
            bound = getattr(self, op)
            if bound is not UNSET:
                clause[f"${op}"] = bound
        return clause


class Contains(Condition):
    kind: Literal["contains"] = "contains"
    text: str

    def to_mongo(self) -> Dict[str, Any]:
        return {"$regex": re.escape(self.text), "$options": "i"}


class StartsWith(Condition):
    kind: Literal["startsWith"] = "startsWith"
    text: str

    def to_mongo(self) -> Dict[str, Any]:
        return {"$regex": f"^{re.escape(self.text)}", "$options": "i"}


class EndsWith(Condition):
    kind: Literal["endsWith"] = "endsWith"
    text: str

    def to_mongo(self) -> Dict[str, Any]:
        return {"$regex": f"{re.escape(self.text)}$", "$options": "i"}


class Unrecognized(Condition):
    """A condition object with no supported key; never rendered."""

    kind: Literal["unrecognized"] = "unrecognized"
    raw: Any = None

    def to_mongo(self) -> Any:
        raise TypeError(f"Unrecognized condition has no MongoDB form: {self.raw!r}")


AnyCondition = Union[
    Equals,
    NotEquals,
    IsNull,
    NotNull,
    Exists,
    In,
    NotIn,
    Range,
    Contains,
    StartsWith,
    EndsWith,
    Unrecognized,
]


def is_skipped(value: Any) -> bool:
    """True for values meaning "no filter supplied" (UNSET or empty string)."""
    return value is UNSET or (isinstance(value, str) and value == "")


def parse_value(value: Any) -> AnyCondition:
    """Parse any field value from a filter expression into a condition."""
    if isinstance(value, Mapping):
        return parse_condition(value)
    if isinstance(value, _SEQUENCE_TYPES):
        return In(values=list(value))
    return Equals(value=value)


def parse_condition(raw: Mapping[str, Any]) -> AnyCondition:
    """Parse a condition mapping into the first variant its keys select.

    Args:
        raw: Condition object such as ``{"gte": 10, "lte": 20}``

    Returns:
        The selected variant; `ignored` lists keys that played no part.
    """
    present = {k: v for k, v in raw.items() if v is not UNSET}

    condition, consumed = _select(present)
    if condition is None:
        return Unrecognized(raw=dict(raw))

    ignored = tuple(k for k in present if k not in consumed)
    if ignored:
        condition = condition.model_copy(update={"ignored": ignored})
    return condition


def _select(present: Dict[str, Any]) -> Tuple[Optional[Condition], Tuple[str, ...]]:
    if isinstance(present.get("isNull"), bool):
        return IsNull(flag=present["isNull"]), ("isNull",)
    if isinstance(present.get("notNull"), bool):
        return NotNull(flag=present["notNull"]), ("notNull",)
    if isinstance(present.get("exists"), bool):
        return Exists(flag=present["exists"]), ("exists",)

    if "equals" in present:
        return Equals(value=present["equals"]), ("equals",)
    if "notEquals" in present:
        return NotEquals(value=present["notEquals"]), ("notEquals",)

    if isinstance(present.get("in"), _SEQUENCE_TYPES):
        return In(values=list(present["in"])), ("in",)
    if isinstance(present.get("notIn"), _SEQUENCE_TYPES):
        return NotIn(values=list(present["notIn"])), ("notIn",)

    bounds: Dict[str, Any] = {op: present[op] for op in _RANGE_KEYS if op in present}
    consumed = list(bounds)
    between = present.get("between")
    if isinstance(between, Mapping) and ("min" in between or "max" in between):
        # between is inclusive and takes precedence over gte/lte
        if between.get("min", UNSET) is not UNSET:
            bounds["gte"] = between["min"]
        if between.get("max", UNSET) is not UNSET:
            bounds["lte"] = between["max"]
        consumed.append("between")
    if bounds:
        return Range(**bounds), tuple(consumed)

    for key, variant in (("contains", Contains), ("startsWith", StartsWith), ("endsWith", EndsWith)):
        text = present.get(key)
        if text is not None and not isinstance(text, (Mapping,) + _SEQUENCE_TYPES):
            return variant(text=str(text)), (key,)

    return None, ()
