"""Filter translator.

Compiles developer-facing filter expressions into MongoDB aggregation
stages. Callers never write MongoDB operators:

    translator = FilterTranslator(owner_collection="payment_tracker")
    translator.compile_with_joins(
        {
            "status": ["PAID", "INVOICED"],
            "amount": {"between": {"min": 100, "max": 500}},
            "invoice.status": {"notIn": ["CANCELLED"]},
            "$or": [{"series": {"notNull": True}}, {"folio": {"startsWith": "A"}}],
        },
        search_text="hue",
        search_fields=["folio", "invoice.rfc"],
    )

Malformed conditions never raise: the field is dropped and a warning is
written to the translator's logger.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ..constants import CONDITION_KEYS, Stage
from ..logger import Logger
from ..schema import FilterOptions, LookupConfig, RelationConfig
from ..settings import settings
from ..types import FilterExpression, MatchClause, StageSequence
from .conditions import Unrecognized, is_skipped, parse_value
from .relations import RelationResolver, unique_aliases

__all__ = ("FilterTranslator",)

_SEQUENCE_TYPES = (list, tuple)


class FilterTranslator:
    """Compile filter expressions into aggregation stage sequences.

    The translator holds configuration only; every call works on local
    state, so a single instance can serve concurrent requests.

    Attributes:
        resolver: Alias -> related collection resolver used for joins
        separator: Character marking a nested (related-collection) field
        or_key: Filter key holding an OR-group
        logger: Diagnostic sink for ignored conditions
    """

    def __init__(
        self,
        relations: Optional[Mapping[str, Union[RelationConfig, Mapping[str, Any], str]]] = None,
        owner_collection: str = "",
        *,
        default_collections: Optional[Mapping[str, str]] = None,
        separator: Optional[str] = None,
        or_key: Optional[str] = None,
        logger: Optional[Any] = None,
    ) -> None:
        """Initialize the translator.

        Args:
            relations: Alias -> RelationConfig (or collection name) overrides
            owner_collection: Collection the pipeline runs on; default foreign
                fields are ``<owner_collection>_id``
            default_collections: Fallback alias -> collection table
            separator: Nested field separator (default from settings)
            or_key: OR-group key (default from settings)
            logger: Object with ``warning`` and ``debug`` methods; defaults to a docfilter Logger
        """
        self.resolver = RelationResolver(relations, owner_collection, default_collections)
        self.separator = separator or settings.FILTER_NESTED_SEPARATOR
        self.or_key = or_key or settings.FILTER_OR_KEY
        self.logger = logger or Logger(self.__class__.__name__)

    # ------------------------------------------------------------------
    # Filter splitting
    # ------------------------------------------------------------------

    def is_nested(self, field: str) -> bool:
        return self.separator in field

    def split_filters(
        self, filters: Optional[FilterExpression]
    ) -> Tuple[Dict[str, Any], Dict[str, Any], List[Any]]:
        """Separate root fields, nested fields and the OR-group.

        Returns:
            ``(root_filters, nested_filters, or_group)``
        """
        root: Dict[str, Any] = {}
        nested: Dict[str, Any] = {}
        or_group: List[Any] = []

        for key, value in (filters or {}).items():
            if key == self.or_key:
                if isinstance(value, _SEQUENCE_TYPES):
                    or_group.extend(value)
                elif not is_skipped(value):
                    self.logger.warning("Ignoring %s: expected a list of filters, got %r", key, value)
            elif self.is_nested(key):
                nested[key] = value
            else:
                root[key] = value

        return root, nested, or_group

    # ------------------------------------------------------------------
    # Clause building
    # ------------------------------------------------------------------

    def build_match(self, filters: Optional[FilterExpression]) -> MatchClause:
        """Compile every field of ``filters`` into a single match clause.

        Nested keys are kept verbatim as dotted paths; resolving them is the
        job of the join stages emitted before this clause.
        """
        match: MatchClause = {}

        for field, value in (filters or {}).items():
            if is_skipped(value):
                continue
            if field.startswith("$"):
                self.logger.warning("Ignoring operator key %r: only flat filters are supported here", field)
                continue

            condition = parse_value(value)
            if isinstance(condition, Unrecognized):
                self.logger.warning("Unsupported filter condition for field %r: %r", field, condition.raw)
                continue
            unknown = [key for key in condition.ignored if key not in CONDITION_KEYS]
            shadowed = [key for key in condition.ignored if key in CONDITION_KEYS]
            if unknown:
                self.logger.warning("Unknown condition keys for field %r: %s", field, ", ".join(unknown))
            if shadowed:
                self.logger.warning(
                    "Filter for field %r uses %r; ignoring keys %s",
                    field,
                    condition.kind,
                    ", ".join(shadowed),
                )
            _merge_clause(match, field, condition.to_mongo())

        return match

    def build_or_filter(self, conditions: Optional[Sequence[Any]]) -> MatchClause:
        """Compile an OR-group into ``{"$or": [...]}``.

        Branches that compile to an empty clause (only skipped values or
        unsupported shapes) are dropped; the remaining branches still
        alternate. An empty dict is returned when no branch is left.
        """
        if not conditions:
            return {}

        clauses: List[MatchClause] = []
        for branch in conditions:
            if not isinstance(branch, Mapping):
                self.logger.warning("Ignoring OR branch %r: expected a filter mapping", branch)
                continue
            clause = self.build_match(branch)
            if not clause:
                self.logger.debug("Dropping empty OR branch %r", branch)
                continue
            clauses.append(clause)

        if not clauses:
            return {}
        return {"$or": clauses}

    @staticmethod
    def build_text_search(search_text: Optional[str], fields: Optional[Sequence[str]]) -> MatchClause:
        """Case-insensitive substring search alternated across ``fields``."""
        text = (search_text or "").strip()
        if not text or not fields:
            return {}

        pattern = re.escape(text)
        return {"$or": [{field: {"$regex": pattern, "$options": "i"}} for field in fields]}

    @staticmethod
    def combine_filters(*clauses: Optional[MatchClause]) -> MatchClause:
        """AND-combine compiled match clauses.

        Operator clauses on the same field are merged; conflicting literal
        values and multiple OR-groups are kept side by side under ``$and``.
        """
        combined: MatchClause = {}
        conjuncts: List[MatchClause] = []
        or_groups: List[List[Any]] = []

        for clause in clauses:
            if not clause:
                continue
            for field, value in clause.items():
                if field == "$or":
                    or_groups.append(list(value))
                elif field == "$and":
                    conjuncts.extend(value)
                elif field in combined and not _mergeable(combined[field], value):
                    conjuncts.append({field: value})
                else:
                    _merge_clause(combined, field, value)

        if len(or_groups) == 1:
            combined["$or"] = or_groups[0]
        else:
            conjuncts.extend({"$or": group} for group in or_groups)
        if conjuncts:
            combined["$and"] = conjuncts
        return combined

    # ------------------------------------------------------------------
    # Stage compilation
    # ------------------------------------------------------------------

    def compile(self, filters: Optional[FilterExpression]) -> StageSequence:
        """Compile the root fields of ``filters`` into at most one match stage.

        Nested fields and the OR-group are set aside; use
        `compile_with_joins` to apply them.

        Examples:
            >>> FilterTranslator(owner_collection="tenant").compile({"status": "active", "amount": {"gt": 100}})
            [{'$match': {'status': 'active', 'amount': {'$gt': 100}}}]
        """
        root, _, _ = self.split_filters(filters)
        match = self.build_match(root)
        if not match:
            return []
        return [{Stage.MATCH: match}]

    def compile_with_joins(
        self,
        filters: Optional[FilterExpression],
        search_text: Optional[str] = None,
        search_fields: Optional[Sequence[str]] = None,
        joins: Optional[Sequence[Union[LookupConfig, Mapping[str, Any]]]] = None,
        additional_stages: Optional[Iterable[Dict[str, Any]]] = None,
    ) -> StageSequence:
        """Compile filters, OR-group, joins and text search into one pipeline.

        Stage order: root match, joins, nested match, OR-group match, text
        search match, then ``additional_stages`` verbatim. Joins always
        precede every stage that reads a joined alias.

        Args:
            filters: Filter expression, may contain nested keys and the OR key
            search_text: Text searched case-insensitively across ``search_fields``
            search_fields: Fields to search; nested ones trigger joins
            joins: Explicit joins emitted before inferred ones
            additional_stages: Raw stages appended after generated ones

        Returns:
            Ordered stage sequence (empty when nothing filters)
        """
        root, nested, or_group = self.split_filters(filters)
        stages: StageSequence = []

        root_match = self.build_match(root)
        if root_match:
            stages.append({Stage.MATCH: root_match})

        search_fields = list(search_fields or [])
        has_search = bool((search_text or "").strip()) and bool(search_fields)

        alias_keys: List[str] = [key for key, value in nested.items() if not is_skipped(value)]
        for branch in or_group:
            if isinstance(branch, Mapping):
                alias_keys.extend(key for key, value in branch.items() if not is_skipped(value))
        if has_search:
            alias_keys.extend(search_fields)

        aliases = unique_aliases(alias_keys, self.separator)
        if aliases or joins:
            stages.extend(self.resolver.build_lookup_stages(aliases, joins))

        nested_match = self.build_match(nested)
        if nested_match:
            stages.append({Stage.MATCH: nested_match})

        or_match = self.build_or_filter(or_group)
        if or_match:
            stages.append({Stage.MATCH: or_match})

        if has_search:
            stages.append({Stage.MATCH: self.build_text_search(search_text, search_fields)})

        if additional_stages:
            stages.extend(additional_stages)

        return stages

    def compile_options(self, filters: Optional[FilterExpression], options: Optional[FilterOptions]) -> StageSequence:
        """`compile_with_joins` driven by a `FilterOptions` model."""
        options = options or FilterOptions()
        return self.compile_with_joins(
            filters,
            search_text=options.search_text,
            search_fields=options.search_fields,
            joins=options.lookups,
            additional_stages=options.additional_stages,
        )


def _is_operator_dict(value: Any) -> bool:
    return isinstance(value, dict) and bool(value) and all(str(k).startswith("$") for k in value)


def _mergeable(existing: Any, value: Any) -> bool:
    # Same operator twice cannot share one dict without losing a bound
    return _is_operator_dict(existing) and _is_operator_dict(value) and not (existing.keys() & value.keys())


def _merge_clause(match: MatchClause, field: str, clause: Any) -> None:
    """Set ``field`` in ``match``, merging operator dicts instead of overwriting."""
    existing = match.get(field)
    if field in match and _mergeable(existing, clause):
        merged = dict(existing)
        merged.update(clause)
        match[field] = merged
    else:
        match[field] = clause
