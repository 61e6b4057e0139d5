"""
Lazy query descriptions for Table Storage.

A TableQuery describes which entities of one table to return: key equality
conditions, arbitrary predicates, and an optional $top-style limit. It is
immutable and performs no I/O; the backend executes it one segment at a time.
"""

from dataclasses import dataclass, replace
from typing import Callable, NamedTuple, Optional, Tuple

from tablestorage.storage.models import Entity


EntityPredicate = Callable[[Entity], bool]


class StoreCursor(NamedTuple):
    """Native resume position of a scan: the first key not yet returned."""
    next_partition_key: Optional[str]
    next_row_key: Optional[str]


@dataclass(frozen=True)
class TableQuery:
    """
    Filtered, optionally bounded view over one table.

    Every builder method returns a new TableQuery; the original is left
    untouched so a query can be shared and extended freely.
    """

    table_name: str
    partition_keys: Tuple[str, ...] = ()
    row_keys: Tuple[str, ...] = ()
    predicates: Tuple[EntityPredicate, ...] = ()
    limit: Optional[int] = None

    def where_partition_key(self, partition_key: str) -> "TableQuery":
        """Restrict to entities with the given PartitionKey."""
        return replace(self, partition_keys=self.partition_keys + (partition_key,))

    def where_row_key(self, row_key: str) -> "TableQuery":
        """Restrict to entities with the given RowKey."""
        return replace(self, row_keys=self.row_keys + (row_key,))

    def where(self, predicate: EntityPredicate) -> "TableQuery":
        """Restrict to entities for which predicate returns True."""
        if not callable(predicate):
            raise TypeError("predicate must be callable")
        return replace(self, predicates=self.predicates + (predicate,))

    def take(self, count: int) -> "TableQuery":
        """
        Request at most count entities per segment.

        Chained calls keep the smallest limit.
        """
        if count <= 0:
            raise ValueError(f"take count must be greater than zero, got {count}")
        if self.limit is not None:
            count = min(count, self.limit)
        return replace(self, limit=count)

    @property
    def partition_key(self) -> Optional[str]:
        """The single PartitionKey this query is pinned to, if any."""
        if self.partition_keys and len(set(self.partition_keys)) == 1:
            return self.partition_keys[0]
        return None

    @property
    def row_key(self) -> Optional[str]:
        """The single RowKey this query is pinned to, if any."""
        if self.row_keys and len(set(self.row_keys)) == 1:
            return self.row_keys[0]
        return None

    @property
    def is_unsatisfiable(self) -> bool:
        """True when conflicting key conditions rule out every entity."""
        return len(set(self.partition_keys)) > 1 or len(set(self.row_keys)) > 1

    def matches(self, entity: Entity) -> bool:
        """
        Check if entity satisfies every condition of the query.

        Args:
            entity: Entity to test

        Returns:
            True if entity matches
        """
        if any(entity.PartitionKey != pk for pk in self.partition_keys):
            return False
        if any(entity.RowKey != rk for rk in self.row_keys):
            return False
        return all(predicate(entity) for predicate in self.predicates)
