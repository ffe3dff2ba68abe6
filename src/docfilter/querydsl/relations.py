"""Alias resolution and join-stage generation for nested field filters.

A nested field such as ``invoice.status`` names a related collection by its
alias (``invoice``). The `RelationResolver` maps each alias onto the
collection to join and the field in that collection that stores the owning
document's id:

1. an entry in the injected ``relations`` mapping wins;
2. otherwise the collection comes from ``default_collections`` or, failing
   that, `pluralize(alias)`;
3. the foreign field defaults to ``<owner_collection>_id``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ..constants import DEFAULT_COLLECTION_MAP, Stage
from ..exceptions import MissingConfigError
from ..schema import LookupConfig, RelationConfig
from ..types import StageSequence

__all__ = (
    "RelationResolver",
    "pluralize",
    "split_nested",
    "unique_aliases",
)

_ES_SUFFIXES = ("s", "x", "z", "ch", "sh")
_VOWELS = "aeiou"


def pluralize(word: str) -> str:
    """Naive English plural used to derive a collection name from an alias."""
    if not word:
        return word
    lower = word.lower()
    if lower.endswith("y") and len(word) > 1 and lower[-2] not in _VOWELS:
        return word[:-1] + "ies"
    if lower.endswith(_ES_SUFFIXES):
        return word + "es"
    return word + "s"


def split_nested(key: str, separator: str = ".") -> Tuple[str, str]:
    """Split ``alias<sep>path`` into ``(alias, path)``."""
    alias, _, path = key.partition(separator)
    return alias, path


class RelationResolver:
    """Resolve nested-field aliases into joins against related collections.

    Attributes:
        relations: Explicit alias -> RelationConfig entries
        owner_collection: Collection the pipeline runs on; names the default foreign field
        default_collections: Fallback alias -> collection table
    """

    def __init__(
        self,
        relations: Optional[Mapping[str, Union[RelationConfig, Mapping[str, Any], str]]] = None,
        owner_collection: str = "",
        default_collections: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.relations: Dict[str, RelationConfig] = {
            alias: self._coerce(cfg) for alias, cfg in (relations or {}).items()
        }
        self.owner_collection = owner_collection
        self.default_collections: Dict[str, str] = dict(
            DEFAULT_COLLECTION_MAP if default_collections is None else default_collections
        )

    @staticmethod
    def _coerce(cfg: Union[RelationConfig, Mapping[str, Any], str]) -> RelationConfig:
        if isinstance(cfg, RelationConfig):
            return cfg
        if isinstance(cfg, str):
            return RelationConfig(collection_name=cfg)
        return RelationConfig.model_validate(dict(cfg))

    @property
    def default_foreign_field(self) -> str:
        if not self.owner_collection:
            raise MissingConfigError(
                "owner_collection is required to derive a foreign field",
                config_key="owner_collection",
            )
        return f"{self.owner_collection.lower()}_id"

    def resolve(self, alias: str) -> RelationConfig:
        """Return the join target for an alias with the foreign field filled in."""
        cfg = self.relations.get(alias)
        if cfg is None:
            collection = self.default_collections.get(alias) or pluralize(alias)
            return RelationConfig(collection_name=collection, foreign_field=self.default_foreign_field)
        if cfg.foreign_field is None:
            return cfg.model_copy(update={"foreign_field": self.default_foreign_field})
        return cfg

    # ------------------------------------------------------------------
    # Stage generation
    # ------------------------------------------------------------------

    def lookup_stages(self, alias: str) -> StageSequence:
        """Join stage for an alias followed by its flatten stage."""
        relation = self.resolve(alias)
        return [
            _id_lookup(relation.collection_name, relation.foreign_field, alias),
            _flatten(alias),
        ]

    def explicit_lookup_stages(self, lookup: LookupConfig) -> StageSequence:
        """Stages for a caller-supplied join."""
        if lookup.local_field and lookup.foreign_field:
            stage = {
                Stage.LOOKUP: {
                    "from": lookup.from_collection,
                    "localField": lookup.local_field,
                    "foreignField": lookup.foreign_field,
                    "as": lookup.alias,
                }
            }
        else:
            foreign_field = lookup.foreign_field or self.resolve(lookup.alias).foreign_field
            stage = _id_lookup(lookup.from_collection, foreign_field, lookup.alias)

        stages: StageSequence = [stage]
        if lookup.unwind:
            stages.append(_flatten(lookup.alias))
        return stages

    def build_lookup_stages(
        self,
        aliases: Iterable[str],
        explicit_joins: Optional[Sequence[Union[LookupConfig, Mapping[str, Any]]]] = None,
    ) -> StageSequence:
        """Generate joins: explicit ones first, then one per uncovered alias.

        Args:
            aliases: Aliases referenced by nested fields (duplicates allowed)
            explicit_joins: Caller-supplied joins; their aliases are not re-joined

        Returns:
            Ordered join and flatten stages
        """
        stages: StageSequence = []
        covered: set[str] = set()

        for item in explicit_joins or ():
            lookup = item if isinstance(item, LookupConfig) else LookupConfig.model_validate(dict(item))
            stages.extend(self.explicit_lookup_stages(lookup))
            covered.add(lookup.alias)

        for alias in aliases:
            if alias in covered:
                continue
            stages.extend(self.lookup_stages(alias))
            covered.add(alias)

        return stages


def _id_lookup(collection: str, foreign_field: Optional[str], alias: str) -> Dict[str, Any]:
    # Owner ids are compared as strings so ObjectId and string foreign keys both join
    return {
        Stage.LOOKUP: {
            "from": collection,
            "let": {"localId": {"$toString": "$_id"}},
            "pipeline": [{Stage.MATCH: {"$expr": {"$eq": [f"${foreign_field}", "$$localId"]}}}],
            "as": alias,
        }
    }


def _flatten(alias: str) -> Dict[str, Any]:
    return {Stage.ADD_FIELDS: {alias: {"$arrayElemAt": [f"${alias}", 0]}}}


def unique_aliases(keys: Iterable[str], separator: str = ".") -> List[str]:
    """Aliases of the nested keys, first-seen order, no duplicates."""
    seen: Dict[str, None] = {}
    for key in keys:
        if separator in key:
            seen.setdefault(split_nested(key, separator)[0], None)
    return list(seen)
