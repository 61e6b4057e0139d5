"""
tablestorage: paged repository over partitioned table storage

Query strategies, opaque continuation tokens and paged results over a store
that returns entities in bounded segments.
"""

__version__ = "0.1.0"

from .exceptions import (
    TableStorageError,
    InvalidArgumentError,
    EmptyResultError,
    CorruptContinuationTokenError,
    StorageError,
)
from .storage import Entity, TableBackend
from .repository import (
    TableStorageRepository,
    PagedResults,
    Query,
    GetByPartitionKeyAndRowKeyQuery,
    ListByPartitionKeyQuery,
    ListAllQuery,
    PredicateQuery,
)

__all__ = [
    "__version__",
    "TableStorageError",
    "InvalidArgumentError",
    "EmptyResultError",
    "CorruptContinuationTokenError",
    "StorageError",
    "Entity",
    "TableBackend",
    "TableStorageRepository",
    "PagedResults",
    "Query",
    "GetByPartitionKeyAndRowKeyQuery",
    "ListByPartitionKeyQuery",
    "ListAllQuery",
    "PredicateQuery",
]
