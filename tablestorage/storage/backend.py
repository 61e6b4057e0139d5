"""
In-memory Table Storage backend.

Stores tables and their entities in memory with async-safe operations and
executes TableQuery objects one bounded segment at a time.
"""

import asyncio
import bisect
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from collections import defaultdict

from tablestorage.exceptions import (
    EntityAlreadyExistsError,
    EntityNotFoundError,
    ETagMismatchError,
    TableAlreadyExistsError,
    TableNotFoundError,
)
from tablestorage.storage.models import Table, Entity
from tablestorage.storage.query import StoreCursor, TableQuery

logger = logging.getLogger(__name__)

# Maximum number of entities a single segment may return.
MAX_SEGMENT_SIZE = 1000


@dataclass
class Segment:
    """One bounded batch of entities plus the cursor to resume after it."""
    entities: List[Entity] = field(default_factory=list)
    next_cursor: Optional[StoreCursor] = None


class TableBackend:
    """
    In-memory backend for table storage.

    Entities of a table are kept in a dict keyed by (PartitionKey, RowKey)
    alongside a sorted key index, so scans return entities in key order and
    can resume from any cursor position.
    """

    def __init__(self, max_segment_size: int = MAX_SEGMENT_SIZE):
        """
        Initialize the backend with empty storage.

        Args:
            max_segment_size: Hard cap on entities returned per segment
        """
        if max_segment_size <= 0:
            raise ValueError(f"max_segment_size must be greater than zero, got {max_segment_size}")
        self.max_segment_size = max_segment_size
        self._tables: Dict[str, Table] = {}
        # table_name -> {(partition_key, row_key): Entity}
        self._entities: Dict[str, Dict[Tuple[str, str], Entity]] = defaultdict(dict)
        # table_name -> sorted list of (partition_key, row_key)
        self._index: Dict[str, List[Tuple[str, str]]] = defaultdict(list)
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config: Any) -> "TableBackend":
        """Create a backend from a TableStorageConfig."""
        return cls(max_segment_size=config.storage.max_segment_size)

    async def reset(self) -> None:
        """Reset all tables and entities."""
        async with self._lock:
            self._tables.clear()
            self._entities.clear()
            self._index.clear()

    # ========== Tables ==========

    async def create_table(self, table_name: str) -> Table:
        """
        Create a new table.

        Raises:
            TableAlreadyExistsError: If table already exists
        """
        async with self._lock:
            if self._find_table_key(table_name) is not None:
                raise TableAlreadyExistsError(table_name)

            table = Table(table_name=table_name)
            self._tables[table_name] = table
            self._entities[table_name] = {}
            self._index[table_name] = []
            logger.debug(f"Created table '{table_name}'")
            return table

    async def delete_table(self, table_name: str) -> None:
        """
        Delete a table and all its entities.

        Raises:
            TableNotFoundError: If table not found
        """
        async with self._lock:
            existing_key = self._require_table(table_name)
            del self._tables[existing_key]
            del self._entities[existing_key]
            del self._index[existing_key]
            logger.debug(f"Deleted table '{table_name}'")

    async def table_exists(self, table_name: str) -> bool:
        """Check whether a table exists."""
        async with self._lock:
            return self._find_table_key(table_name) is not None

    async def list_tables(self) -> List[Table]:
        """List all tables."""
        async with self._lock:
            return list(self._tables.values())

    # ========== Entities ==========

    async def insert_entity(self, table_name: str, entity: Entity) -> Entity:
        """
        Insert a new entity into a table.

        Returns:
            Inserted entity with generated Timestamp and ETag

        Raises:
            TableNotFoundError: If table not found
            EntityAlreadyExistsError: If entity already exists
        """
        async with self._lock:
            existing_key = self._require_table(table_name)
            if entity.key in self._entities[existing_key]:
                raise EntityAlreadyExistsError(entity.PartitionKey, entity.RowKey)
            return self._store(existing_key, entity)

    async def upsert_entity(self, table_name: str, entity: Entity) -> Entity:
        """
        Insert an entity or replace it if it already exists.

        Raises:
            TableNotFoundError: If table not found
        """
        async with self._lock:
            existing_key = self._require_table(table_name)
            return self._store(existing_key, entity)

    async def get_entity(self, table_name: str, partition_key: str, row_key: str) -> Entity:
        """
        Get an entity by partition and row keys.

        Raises:
            TableNotFoundError: If table not found
            EntityNotFoundError: If entity not found
        """
        async with self._lock:
            existing_key = self._require_table(table_name)
            key = (partition_key, row_key)
            if key not in self._entities[existing_key]:
                raise EntityNotFoundError(partition_key, row_key)
            return self._entities[existing_key][key].model_copy(deep=True)

    async def update_entity(
        self,
        table_name: str,
        entity: Entity,
        if_match: Optional[str] = None
    ) -> Entity:
        """
        Update (replace) an existing entity.

        Args:
            table_name: Name of the table
            entity: New entity data
            if_match: Optional ETag for optimistic concurrency ("*" matches any)

        Raises:
            TableNotFoundError: If table not found
            EntityNotFoundError: If entity not found
            ETagMismatchError: If ETag doesn't match
        """
        async with self._lock:
            existing_key = self._require_table(table_name)
            self._check_etag(existing_key, entity.PartitionKey, entity.RowKey, if_match)
            return self._store(existing_key, entity)

    async def delete_entity(
        self,
        table_name: str,
        partition_key: str,
        row_key: str,
        if_match: Optional[str] = None
    ) -> None:
        """
        Delete an entity.

        Raises:
            TableNotFoundError: If table not found
            EntityNotFoundError: If entity not found
            ETagMismatchError: If ETag doesn't match
        """
        async with self._lock:
            existing_key = self._require_table(table_name)
            self._check_etag(existing_key, partition_key, row_key, if_match)
            key = (partition_key, row_key)
            del self._entities[existing_key][key]
            index = self._index[existing_key]
            del index[bisect.bisect_left(index, key)]

    # ========== Queries ==========

    def create_query(self, table_name: str) -> TableQuery:
        """Create an unfiltered query over a table."""
        return TableQuery(table_name=table_name)

    async def execute_segment(
        self,
        query: TableQuery,
        cursor: Optional[StoreCursor] = None,
    ) -> Segment:
        """
        Execute one segment of a query.

        Entities are scanned in (PartitionKey, RowKey) order starting at the
        cursor. The segment holds at most min(query.limit, max_segment_size)
        entities. A next cursor is returned whenever the segment filled up
        and keys remain in the scanned range; it does not guarantee that any
        of the remaining keys match.

        Args:
            query: Query to execute
            cursor: Position to resume from (None starts at the beginning)

        Returns:
            Segment with matching entities and the next cursor, if any

        Raises:
            TableNotFoundError: If table not found
        """
        async with self._lock:
            existing_key = self._require_table(query.table_name)
            entities = self._entities[existing_key]
            index = self._index[existing_key]

            limit = self.max_segment_size
            if query.limit is not None:
                limit = min(limit, query.limit)

            if query.is_unsatisfiable:
                return Segment()

            start, end = self._scan_range(index, query)
            if cursor is not None and cursor.next_partition_key is not None:
                resume_key = (cursor.next_partition_key, cursor.next_row_key or "")
                start = max(start, bisect.bisect_left(index, resume_key))

            results: List[Entity] = []
            position = start
            while position < end and len(results) < limit:
                entity = entities[index[position]]
                if query.matches(entity):
                    results.append(entity.model_copy(deep=True))
                position += 1

            next_cursor = None
            if len(results) >= limit and position < end:
                next_cursor = StoreCursor(*index[position])

            logger.debug(
                f"Segment on '{query.table_name}' returned {len(results)} entities "
                f"(limit={limit}, more={next_cursor is not None})"
            )
            return Segment(entities=results, next_cursor=next_cursor)

    # ========== Helpers ==========

    def _scan_range(self, index: List[Tuple[str, str]], query: TableQuery) -> Tuple[int, int]:
        """Narrow the index range to the partition (and row) the query is pinned to."""
        partition_key = query.partition_key
        if partition_key is None:
            return 0, len(index)

        row_key = query.row_key
        if row_key is not None:
            start = bisect.bisect_left(index, (partition_key, row_key))
            end = start + 1 if start < len(index) and index[start] == (partition_key, row_key) else start
            return start, end

        start = bisect.bisect_left(index, (partition_key, ""))
        end = start
        while end < len(index) and index[end][0] == partition_key:
            end += 1
        return start, end

    def _store(self, table_key: str, entity: Entity) -> Entity:
        """Stamp system properties and write the entity. Caller holds the lock."""
        stored = entity.model_copy(deep=True)
        stored.Timestamp = datetime.now(timezone.utc)
        stored.etag = Entity.generate_etag(stored.Timestamp)

        key = stored.key
        if key not in self._entities[table_key]:
            bisect.insort(self._index[table_key], key)
        self._entities[table_key][key] = stored

        entity.Timestamp = stored.Timestamp
        entity.etag = stored.etag
        return stored.model_copy(deep=True)

    def _check_etag(
        self,
        table_key: str,
        partition_key: str,
        row_key: str,
        if_match: Optional[str]
    ) -> None:
        key = (partition_key, row_key)
        if key not in self._entities[table_key]:
            raise EntityNotFoundError(partition_key, row_key)
        existing = self._entities[table_key][key]
        if if_match and if_match != "*" and existing.etag != if_match:
            raise ETagMismatchError(if_match, existing.etag)

    def _require_table(self, table_name: str) -> str:
        existing_key = self._find_table_key(table_name)
        if existing_key is None:
            raise TableNotFoundError(table_name)
        return existing_key

    def _find_table_key(self, table_name: str) -> Optional[str]:
        """
        Find table key with case-insensitive comparison.

        Args:
            table_name: Table name to find

        Returns:
            Actual key in storage, or None if not found
        """
        table_name_lower = table_name.lower()
        for key in self._tables.keys():
            if key.lower() == table_name_lower:
                return key
        return None
