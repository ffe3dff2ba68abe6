"""Pytest configuration and fixtures for docfilter tests."""

import copy
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

import pytest
from dotenv import load_dotenv

from docfilter.querydsl.compiler import FilterTranslator
from docfilter.repository import MongoRepository

# Load environment variables
load_dotenv()

_MISSING = object()


# In-memory aggregation evaluator for pipeline testing
class InMemoryCollection:
    """Executes the subset of the aggregation language docfilter emits.

    Supported stages: $match, $lookup (localField/foreignField and
    let/pipeline with $match sub-stages), $addFields ($arrayElemAt),
    $sort, $skip, $limit, $count, $facet.
    """

    def __init__(self, name: str, docs: Iterable[Dict[str, Any]], database: Optional[Dict[str, list]] = None):
        self.name = name
        self.docs: List[Dict[str, Any]] = list(docs)
        self.database: Dict[str, list] = database if database is not None else {}
        self.database.setdefault(name, self.docs)
        self.pipelines: List[list] = []

    def aggregate(self, pipeline: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        self.pipelines.append(copy.deepcopy(pipeline))
        return run_pipeline(copy.deepcopy(self.docs), pipeline, self.database)


def resolve_path(doc: Any, path: str) -> Any:
    value = doc
    for part in path.split("."):
        if isinstance(value, dict) and part in value:
            value = value[part]
        else:
            return _MISSING
    return value


def _eq(value: Any, expected: Any) -> bool:
    if expected is None:
        return value is None or value is _MISSING
    return value is not _MISSING and value == expected


def _ordered(value: Any, bound: Any, op) -> bool:
    if value is _MISSING or value is None:
        return False
    try:
        return op(value, bound)
    except TypeError:
        return False


def match_value(value: Any, cond: Any) -> bool:
    if isinstance(cond, dict) and cond and all(k.startswith("$") for k in cond):
        flags = re.IGNORECASE if "i" in cond.get("$options", "") else 0
        for op, arg in cond.items():
            if op == "$eq" and not _eq(value, arg):
                return False
            if op == "$ne" and _eq(value, arg):
                return False
            if op == "$exists" and (value is not _MISSING) != arg:
                return False
            if op == "$in" and not any(_eq(value, a) for a in arg):
                return False
            if op == "$nin" and any(_eq(value, a) for a in arg):
                return False
            if op == "$gt" and not _ordered(value, arg, lambda a, b: a > b):
                return False
            if op == "$gte" and not _ordered(value, arg, lambda a, b: a >= b):
                return False
            if op == "$lt" and not _ordered(value, arg, lambda a, b: a < b):
                return False
            if op == "$lte" and not _ordered(value, arg, lambda a, b: a <= b):
                return False
            if op == "$regex" and not (isinstance(value, str) and re.search(arg, value, flags)):
                return False
        return True
    return _eq(value, cond)


def eval_operand(doc: Dict[str, Any], expr: Any, variables: Dict[str, Any]) -> Any:
    if isinstance(expr, str) and expr.startswith("$$"):
        return variables.get(expr[2:], _MISSING)
    if isinstance(expr, str) and expr.startswith("$"):
        return resolve_path(doc, expr[1:])
    if isinstance(expr, dict) and "$toString" in expr:
        value = eval_operand(doc, expr["$toString"], variables)
        return _MISSING if value is _MISSING else str(value)
    if isinstance(expr, dict) and "$eq" in expr:
        left, right = (eval_operand(doc, e, variables) for e in expr["$eq"])
        return left is not _MISSING and left == right
    if isinstance(expr, dict) and "$arrayElemAt" in expr:
        array, index = expr["$arrayElemAt"]
        items = eval_operand(doc, array, variables)
        if isinstance(items, list) and -len(items) <= index < len(items):
            return items[index]
        return _MISSING
    return expr


def match_doc(doc: Dict[str, Any], query: Dict[str, Any], variables: Optional[Dict[str, Any]] = None) -> bool:
    variables = variables or {}
    for key, cond in query.items():
        if key == "$or":
            if not any(match_doc(doc, q, variables) for q in cond):
                return False
        elif key == "$and":
            if not all(match_doc(doc, q, variables) for q in cond):
                return False
        elif key == "$expr":
            if not eval_operand(doc, cond, variables):
                return False
        elif not match_value(resolve_path(doc, key), cond):
            return False
    return True


def _sort_key(value: Any):
    if value is _MISSING or value is None:
        return (0, 0)
    return (1, value)


def run_pipeline(docs: List[Dict[str, Any]], pipeline: List[Dict[str, Any]], database: Dict[str, list]) -> list:
    for stage in pipeline:
        (name, spec), = stage.items()
        if name == "$match":
            docs = [d for d in docs if match_doc(d, spec)]
        elif name == "$lookup":
            foreign = database.get(spec["from"], [])
            for d in docs:
                if "localField" in spec:
                    local = resolve_path(d, spec["localField"])
                    joined = [f for f in foreign if _eq(resolve_path(f, spec["foreignField"]), local)]
                else:
                    variables = {k: eval_operand(d, v, {}) for k, v in spec.get("let", {}).items()}
                    joined = [
                        f
                        for f in foreign
                        if all(match_doc(f, sub["$match"], variables) for sub in spec.get("pipeline", []))
                    ]
                d[spec["as"]] = copy.deepcopy(joined)
        elif name == "$addFields":
            for d in docs:
                for field, expr in spec.items():
                    value = eval_operand(d, expr, {})
                    if value is _MISSING:
                        d.pop(field, None)
                    else:
                        d[field] = value
        elif name == "$sort":
            for field, direction in reversed(list(spec.items())):
                docs.sort(key=lambda d: _sort_key(resolve_path(d, field)), reverse=direction < 0)
        elif name == "$skip":
            docs = docs[spec:]
        elif name == "$limit":
            docs = docs[:spec]
        elif name == "$count":
            docs = [{spec: len(docs)}] if docs else []
        elif name == "$facet":
            docs = [{branch: run_pipeline(copy.deepcopy(docs), sub, database) for branch, sub in spec.items()}]
        else:
            raise NotImplementedError(f"Stage {name} not supported by InMemoryCollection")
    return docs


def _tracker(i: int, base: datetime) -> Dict[str, Any]:
    return {
        "_id": f"pt{i:03d}",
        "folio": f"F-{i:03d}" if i % 5 else f"HUE-{i:03d}",
        "status": ("PAID", "INVOICED", "PENDING")[i % 3],
        "amount": 100 * (i + 1),
        "series": None if i % 4 == 0 else f"S{i % 4}",
        "created_at": base + timedelta(days=i),
    }


@pytest.fixture
def trackers() -> List[Dict[str, Any]]:
    """25 payment trackers with deterministic field values."""
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return [_tracker(i, base) for i in range(25)]


@pytest.fixture
def invoices() -> List[Dict[str, Any]]:
    """One invoice for every third tracker; every sixth one is cancelled."""
    return [
        {
            "_id": f"inv{i:03d}",
            "payment_tracker_id": f"pt{i:03d}",
            "status": "CANCELLED" if i % 6 == 0 else "ACTIVE",
            "rfc": "HUEX800101ABC" if i % 2 == 0 else "XAXX010101000",
        }
        for i in range(0, 25, 3)
    ]


@pytest.fixture
def memory_collection(trackers, invoices) -> InMemoryCollection:
    database: Dict[str, list] = {"invoices": invoices}
    return InMemoryCollection("payment_trackers", trackers, database)


@pytest.fixture
def translator() -> FilterTranslator:
    return FilterTranslator(
        relations={"invoice": {"collection_name": "invoices", "foreign_field": "payment_tracker_id"}},
        owner_collection="payment_tracker",
    )


@pytest.fixture
def repository(memory_collection) -> MongoRepository:
    """Repository bound to the in-memory payment tracker collection."""
    return MongoRepository(
        memory_collection,
        collection_name="payment_trackers",
        owner_name="payment_tracker",
        relations={"invoice": {"collection_name": "invoices", "foreign_field": "payment_tracker_id"}},
    )
