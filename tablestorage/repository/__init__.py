"""
Paged repository over table storage.

Query strategies, continuation tokens, paged results and the repository
that ties them to a storage backend.
"""

from tablestorage.repository.continuation import (
    ContinuationToken,
    encode_continuation_token,
    decode_continuation_token,
)
from tablestorage.repository.queries import (
    Query,
    GetByPartitionKeyAndRowKeyQuery,
    ListByPartitionKeyQuery,
    ListAllQuery,
    PredicateQuery,
)
from tablestorage.repository.paging import PagedResults, QueryResults
from tablestorage.repository.batch import BatchWriter, BatchOperation, MAX_BATCH_SIZE
from tablestorage.repository.repository import TableStorageRepository

__all__ = [
    "ContinuationToken",
    "encode_continuation_token",
    "decode_continuation_token",
    "Query",
    "GetByPartitionKeyAndRowKeyQuery",
    "ListByPartitionKeyQuery",
    "ListAllQuery",
    "PredicateQuery",
    "PagedResults",
    "QueryResults",
    "BatchWriter",
    "BatchOperation",
    "MAX_BATCH_SIZE",
    "TableStorageRepository",
]
