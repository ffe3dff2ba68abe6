"""
Aggregation stage keys, sort orders and default alias tables shared by the
query DSL and the repository layer.
"""


class SortOrder:
    ASC = "asc"
    DESC = "desc"


SORT_ORDER_MAP = {
    SortOrder.ASC: 1,
    SortOrder.DESC: -1,
}


class Stage:
    LOOKUP = "$lookup"
    ADD_FIELDS = "$addFields"
    MATCH = "$match"
    SORT = "$sort"
    FACET = "$facet"
    SKIP = "$skip"
    LIMIT = "$limit"
    COUNT = "$count"


# Facet branch names and the count field inside the count branch
FACET_DATA = "data"
FACET_COUNT = "count"
COUNT_FIELD = "total"

# Aliases whose collection name is not the naive plural
DEFAULT_COLLECTION_MAP = {
    "invoice": "invoices",
    "user": "users",
    "payment": "payments",
}

# Condition object keys understood by the query DSL
CONDITION_KEYS = frozenset(
    {
        "equals",
        "notEquals",
        "isNull",
        "notNull",
        "exists",
        "gt",
        "gte",
        "lt",
        "lte",
        "in",
        "notIn",
        "contains",
        "startsWith",
        "endsWith",
        "between",
    }
)
