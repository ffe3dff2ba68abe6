"""MongoDB repository with filter-driven pagination.

`MongoRepository` wraps one pymongo collection. It provides the basic CRUD
helpers every back-office repository needs and the two paginated
aggregation entry points built on the query DSL:

- `paginate(stages, pagination)` runs any stage sequence with a sort and a
  ``$facet`` that returns the page and the total count in one round-trip.
- `get_paginated_with_filters(filters, pagination, options)` compiles a
  filter expression (nested fields, OR-groups, text search) and paginates it.

The client, database and collection are created lazily from settings unless
a collection is injected.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from bson import ObjectId
from pymongo import DESCENDING, MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database

from .exceptions import CollectionNotInitializedError, InvalidFieldError, MissingConfigError
from .logger import Logger
from .querydsl.compiler import FilterTranslator
from .querydsl.pagination import PaginationInput, build_paginated_pipeline, unpack_faceted
from .schema import FacetedResult, FilterOptions, RelationConfig
from .settings import settings as api_settings
from .types import FilterExpression, StageSequence


class MongoRepository:
    """Repository over a single MongoDB collection.

    Subclasses usually only set class attributes:

        class PaymentTrackerRepository(MongoRepository):
            collection_name = "payment_trackers"
            owner_name = "payment_tracker"
            relations = {"invoice": {"collection_name": "invoices", "foreign_field": "payment_tracker_id"}}

    Attributes:
        collection_name: Collection this repository reads and writes
        owner_name: Name used for default foreign fields (``<owner_name>_id``)
        relations: Alias -> related collection configuration for nested filters
        database_name: Database holding the collection (default from settings)
    """

    collection_name: Optional[str] = None
    owner_name: Optional[str] = None
    relations: Mapping[str, Union[RelationConfig, Mapping[str, Any], str]] = {}
    database_name: str = api_settings.MONGO_DATABASE

    def __init__(
        self,
        collection: Optional[Collection] = None,
        *,
        client: Optional[MongoClient] = None,
        collection_name: Optional[str] = None,
        database_name: Optional[str] = None,
        owner_name: Optional[str] = None,
        relations: Optional[Mapping[str, Union[RelationConfig, Mapping[str, Any], str]]] = None,
        translator: Optional[FilterTranslator] = None,
    ) -> None:
        """Initialize the repository.

        Args:
            collection: Ready collection to use instead of connecting lazily
            client: Shared MongoClient (created from MONGO_URI when omitted)
            collection_name: Overrides the class attribute
            database_name: Overrides the class attribute
            owner_name: Overrides the class attribute
            relations: Overrides the class attribute
            translator: Preconfigured translator (built from relations when omitted)
        """
        self._client = client
        self._db: Optional[Database] = None
        self._collection = collection
        if collection_name is not None:
            self.collection_name = collection_name
        elif self.collection_name is None and collection is not None:
            self.collection_name = collection.name
        if database_name is not None:
            self.database_name = database_name
        if owner_name is not None:
            self.owner_name = owner_name
        if relations is not None:
            self.relations = relations

        self.logger = Logger(self.__class__.__name__)
        self.translator = translator or FilterTranslator(
            self.relations,
            self.owner_name or self.collection_name or "",
            logger=self.logger,
        )

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    @property
    def client(self) -> MongoClient:
        """Lazily initialize and return the MongoClient.

        Raises:
            MissingConfigError: If MONGO_URI is not configured
        """
        if self._client is None:
            if not api_settings.MONGO_URI:
                raise MissingConfigError(
                    "MONGO_URI is not set. Please configure it in your .env file.",
                    config_key="MONGO_URI",
                    env_file=".env",
                )
            self._client = MongoClient(api_settings.MONGO_URI, serverSelectionTimeoutMS=api_settings.MONGO_TIMEOUT_MS)
            self.logger.message("MongoClient initialized.")
        return self._client

    @property
    def db(self) -> Database:
        if self._db is None:
            self._db = self.client[self.database_name]
        return self._db

    @property
    def collection(self) -> Collection:
        """Return the active collection, resolving it from the database on first use.

        Raises:
            CollectionNotInitializedError: If no collection was injected or named
        """
        if self._collection is None:
            if not self.collection_name:
                raise CollectionNotInitializedError(
                    "Collection not initialized", repository=self.__class__.__name__
                )
            self._collection = self.db[self.collection_name]
            self.logger.message(f"Collection '{self.collection_name}' bound.")
        return self._collection

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_all(self, filter: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        return list(self.collection.find(filter or {}))

    def get_all_distinct(self, field: str, filter: Optional[Dict[str, Any]] = None) -> List[Any]:
        return self.collection.distinct(field, filter or {})

    def get_paginated(
        self,
        page: int,
        limit: int,
        order_desc_by: str,
        projection: Optional[Union[Sequence[str], Mapping[str, Any]]] = None,
    ) -> List[Dict[str, Any]]:
        """Plain page of documents sorted descending, without filters or count.

        Args:
            page: Zero-based page number
            limit: Page size
            order_desc_by: Field sorted in descending order
            projection: Optional fields to return
        """
        cursor = (
            self.collection.find({}, projection)
            .sort(order_desc_by, DESCENDING)
            .skip(page * limit)
            .limit(limit)
        )
        return list(cursor)

    def get_by(self, field: str, value: Any) -> Optional[Dict[str, Any]]:
        return self.collection.find_one({field: _coerce_id(field, value)})

    def get_one(self, filter: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self.collection.find_one(filter)

    def count(self, filter: Optional[Dict[str, Any]] = None) -> int:
        return self.collection.count_documents(filter or {})

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, entity: Mapping[str, Any]) -> Dict[str, Any]:
        """Insert one document and return it with its ``_id``."""
        document = dict(entity)
        result = self.collection.insert_one(document)
        document["_id"] = result.inserted_id
        self.logger.message("Insert id=%s", result.inserted_id)
        return document

    def bulk_insert(self, entities: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        """Insert many documents and return them with their ``_id`` values."""
        documents = [dict(entity) for entity in entities]
        if not documents:
            return []
        result = self.collection.insert_many(documents)
        for document, inserted_id in zip(documents, result.inserted_ids):
            document["_id"] = inserted_id
        self.logger.message("Bulk insert count=%d", len(documents))
        return documents

    def update(self, field: str, value: Any, update: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Update the first document where ``field == value`` and return it after the update.

        Plain field mappings are applied with ``$set``; mappings that already
        use update operators are sent unchanged.

        Raises:
            InvalidFieldError: If ``update`` is empty
        """
        if not update:
            raise InvalidFieldError("Update must not be empty", field="update", value=update)
        if not all(str(key).startswith("$") for key in update):
            update = {"$set": dict(update)}
        self.logger.message("Update %s=%s", field, value)
        return self.collection.find_one_and_update(
            {field: _coerce_id(field, value)},
            dict(update),
            return_document=ReturnDocument.AFTER,
        )

    def update_one(self, id: Any, update: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        return self.update("_id", id, update)

    def delete(self, conditions: Dict[str, Any]) -> int:
        self.logger.message("Delete conditions=%s", conditions)
        return self.collection.delete_one(conditions).deleted_count

    def delete_many(self, conditions: Dict[str, Any]) -> int:
        self.logger.message("Delete many conditions=%s", conditions)
        return self.collection.delete_many(conditions).deleted_count

    # ------------------------------------------------------------------
    # Paginated aggregation
    # ------------------------------------------------------------------

    def paginate(self, stages: Optional[StageSequence], pagination: PaginationInput = None) -> FacetedResult:
        """Run ``stages`` with sort, skip/limit and count in one aggregation.

        Args:
            stages: Compiled stage sequence (may be empty)
            pagination: Pagination model or mapping; defaults from settings

        Returns:
            FacetedResult with the total count and the requested page

        Raises:
            InvalidFieldError: If offset or limit is negative
            pymongo.errors.PyMongoError: Propagated unchanged from the server
        """
        pipeline = build_paginated_pipeline(stages, pagination)
        self.logger.debug("Aggregate on %s: %s", self.collection_name, pipeline)
        raw = list(self.collection.aggregate(pipeline))
        result = unpack_faceted(raw)
        self.logger.message("Paginated aggregation count=%d page=%d", result.count, len(result.results))
        return result

    def get_paginated_with_filters(
        self,
        filters: Optional[FilterExpression],
        pagination: PaginationInput = None,
        options: Optional[Union[FilterOptions, Mapping[str, Any]]] = None,
    ) -> FacetedResult:
        """Compile ``filters`` (nested fields, OR-group, text search) and paginate.

        Examples:
            >>> repo.get_paginated_with_filters(
            ...     {"status": ["PAID", "INVOICED"], "invoice.status": {"notIn": ["CANCELLED"]}},
            ...     {"offset": 0, "limit": 10},
            ...     {"search_text": "payment", "search_fields": ["folio", "invoice.rfc"]},
            ... )
        """
        if options is not None and not isinstance(options, FilterOptions):
            options = FilterOptions.model_validate(dict(options))
        stages = self.translator.compile_options(filters, options)
        return self.paginate(stages, pagination)


def _coerce_id(field: str, value: Any) -> Any:
    """Convert a hex string to ObjectId when looking up by ``_id``."""
    if field == "_id" and isinstance(value, str) and len(value) == 24 and ObjectId.is_valid(value):
        return ObjectId(value)
    return value
