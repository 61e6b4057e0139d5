"""
Query strategies for the table storage repository.

A Query turns an unfiltered TableQuery into a filtered one, either unbounded
or bounded to a number of results per page. Custom queries subclass Query
and override execute().
"""

from abc import ABC, abstractmethod

from tablestorage.storage.query import EntityPredicate, TableQuery


class Query(ABC):
    """Base class for repository queries."""

    @abstractmethod
    def execute(self, query: TableQuery) -> TableQuery:
        """
        Apply this query's filter without a result limit.

        Args:
            query: Unfiltered query over the repository's table

        Returns:
            Filtered query
        """

    def execute_bounded(self, query: TableQuery, results_per_page: int) -> TableQuery:
        """
        Apply this query's filter and request at most results_per_page entities.

        Args:
            query: Unfiltered query over the repository's table
            results_per_page: Maximum number of entities per page (> 0)

        Returns:
            Filtered, bounded query
        """
        return self.execute(query).take(results_per_page)


class GetByPartitionKeyAndRowKeyQuery(Query):
    """Exact lookup of one entity by its composite key."""

    def __init__(self, partition_key: str, row_key: str):
        self.partition_key = partition_key
        self.row_key = row_key

    def execute(self, query: TableQuery) -> TableQuery:
        return query.where_partition_key(self.partition_key).where_row_key(self.row_key)

    def execute_bounded(self, query: TableQuery, results_per_page: int) -> TableQuery:
        # A full composite key matches at most one entity, so the bound is ignored.
        return self.execute(query)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.partition_key!r}, {self.row_key!r})"


class ListByPartitionKeyQuery(Query):
    """All entities within one partition."""

    def __init__(self, partition_key: str):
        self.partition_key = partition_key

    def execute(self, query: TableQuery) -> TableQuery:
        return query.where_partition_key(self.partition_key)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.partition_key!r})"


class ListAllQuery(Query):
    """All entities of the table."""

    def execute(self, query: TableQuery) -> TableQuery:
        return query

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class PredicateQuery(Query):
    """Entities for which a caller-supplied test returns True."""

    def __init__(self, predicate: EntityPredicate):
        if not callable(predicate):
            raise TypeError("predicate must be callable")
        self.predicate = predicate

    def execute(self, query: TableQuery) -> TableQuery:
        return query.where(self.predicate)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.predicate!r})"
