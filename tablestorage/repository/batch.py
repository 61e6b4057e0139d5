"""
Batched entity writes.

BatchWriter queues entity operations and applies them when executed. Queued
operations are grouped by partition and sent in chunks of at most
MAX_BATCH_SIZE, which is the largest batch a table accepts. Batches are not
transactional: a failure part-way leaves earlier operations applied.
"""

import logging
from enum import Enum
from typing import Dict, List, Tuple, TYPE_CHECKING

from tablestorage.exceptions import InvalidArgumentError
from tablestorage.storage.models import Entity

if TYPE_CHECKING:
    from tablestorage.storage.backend import TableBackend

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 100


class BatchOperation(str, Enum):
    """Kinds of queued entity operations."""
    INSERT = "insert"
    UPDATE = "update"
    UPSERT = "upsert"
    DELETE = "delete"


class BatchWriter:
    """Queues entity operations against one table and applies them on execute()."""

    def __init__(self, backend: "TableBackend", table_name: str):
        self._backend = backend
        self._table_name = table_name
        self._operations: List[Tuple[BatchOperation, Entity]] = []

    def __len__(self) -> int:
        return len(self._operations)

    def insert(self, entity: Entity) -> None:
        self._queue(BatchOperation.INSERT, entity)

    def update(self, entity: Entity) -> None:
        self._queue(BatchOperation.UPDATE, entity)

    def upsert(self, entity: Entity) -> None:
        self._queue(BatchOperation.UPSERT, entity)

    def delete(self, entity: Entity) -> None:
        self._queue(BatchOperation.DELETE, entity)

    def clear(self) -> None:
        """Drop every queued operation."""
        self._operations.clear()

    def batches(self) -> List[List[Tuple[BatchOperation, Entity]]]:
        """
        Group queued operations into per-partition batches.

        Partitions appear in the order they were first queued; operations keep
        their queued order within a partition.
        """
        by_partition: Dict[str, List[Tuple[BatchOperation, Entity]]] = {}
        for operation, entity in self._operations:
            by_partition.setdefault(entity.PartitionKey, []).append((operation, entity))

        batches = []
        for operations in by_partition.values():
            for start in range(0, len(operations), MAX_BATCH_SIZE):
                batches.append(operations[start:start + MAX_BATCH_SIZE])
        return batches

    async def execute(self) -> int:
        """
        Apply queued operations and clear the queue.

        Returns:
            Number of operations applied

        Raises:
            StorageError: If the backend rejects an operation
        """
        batches = self.batches()
        self._operations = []
        applied = 0
        for batch in batches:
            for operation, entity in batch:
                await self._apply(operation, entity)
                applied += 1
            logger.debug(
                f"Applied batch of {len(batch)} operations to "
                f"'{self._table_name}' partition '{batch[0][1].PartitionKey}'"
            )
        return applied

    async def _apply(self, operation: BatchOperation, entity: Entity) -> None:
        if operation is BatchOperation.INSERT:
            await self._backend.insert_entity(self._table_name, entity)
        elif operation is BatchOperation.UPDATE:
            await self._backend.update_entity(self._table_name, entity, if_match="*")
        elif operation is BatchOperation.UPSERT:
            await self._backend.upsert_entity(self._table_name, entity)
        else:
            await self._backend.delete_entity(
                self._table_name, entity.PartitionKey, entity.RowKey, if_match="*"
            )

    def _queue(self, operation: BatchOperation, entity: Entity) -> None:
        if entity is None:
            raise InvalidArgumentError("entity", "entity is null.")
        self._operations.append((operation, entity))
