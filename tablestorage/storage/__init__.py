"""
Table storage collaborator.

In-memory implementation of a partitioned table store that executes
filtered queries in bounded segments with resumable cursors.
"""

from tablestorage.storage.models import Table, Entity, TableNameValidator
from tablestorage.storage.query import TableQuery, StoreCursor
from tablestorage.storage.backend import TableBackend, Segment, MAX_SEGMENT_SIZE

__all__ = [
    "Table",
    "Entity",
    "TableNameValidator",
    "TableQuery",
    "StoreCursor",
    "TableBackend",
    "Segment",
    "MAX_SEGMENT_SIZE",
]
