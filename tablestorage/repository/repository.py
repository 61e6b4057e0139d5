"""
Table storage repository.

Paged access to the entities of one table. Every read goes through a Query
strategy; paged reads return PagedResults carrying an opaque continuation
token that resumes the scan exactly where the previous page stopped.
"""

import logging
from typing import Any, Callable, List, Optional, Union

from tablestorage.core.logging_config import log_with_context
from tablestorage.exceptions import (
    CorruptContinuationTokenError,
    EmptyResultError,
    InvalidArgumentError,
    TableAlreadyExistsError,
    TableNotFoundError,
)
from tablestorage.repository.batch import BatchWriter
from tablestorage.repository.continuation import decode_continuation_token
from tablestorage.repository.paging import PagedResults, QueryResults, create_paged_results
from tablestorage.repository.queries import (
    GetByPartitionKeyAndRowKeyQuery,
    ListAllQuery,
    ListByPartitionKeyQuery,
    PredicateQuery,
    Query,
)
from tablestorage.storage.backend import TableBackend
from tablestorage.storage.models import Entity, TableNameValidator
from tablestorage.storage.query import StoreCursor, TableQuery

logger = logging.getLogger(__name__)


def _require_non_blank(value: Optional[str], argument: str) -> None:
    if value is None or not str(value).strip():
        raise InvalidArgumentError(argument, f"{argument} is null or blank.")


def _require_not_none(value: Any, argument: str) -> None:
    if value is None:
        raise InvalidArgumentError(argument, f"{argument} is null.")


def _require_positive(results_per_page: Optional[int]) -> None:
    if results_per_page is None:
        return
    if isinstance(results_per_page, bool) or not isinstance(results_per_page, int):
        raise InvalidArgumentError("results_per_page", "results_per_page must be an integer.")
    if results_per_page <= 0:
        raise InvalidArgumentError("results_per_page", "results_per_page is zero or less.")


class TableStorageRepository:
    """
    Repository over the entities of a single table.

    The repository owns no connection state; it holds a reference to a
    backend and builds queries against its table. Each call is independent
    apart from the continuation token the caller passes back in, so pages
    must be fetched in order but distinct scans may run concurrently.

    Example:
        ```python
        backend = TableBackend()
        repository = TableStorageRepository(backend, "customers")
        await repository.create_table_if_not_exists()

        page = await repository.list_by_partition_key("EU", results_per_page=50)
        while page.has_more_results:
            page = await repository.list_by_partition_key(
                "EU", results_per_page=50, continuation_token=page.continuation_token
            )
        ```
    """

    def __init__(self, backend: TableBackend, table_name: str):
        """
        Args:
            backend: Storage backend to read from and write to
            table_name: Table this repository is bound to

        Raises:
            InvalidArgumentError: If backend is None or table_name is invalid
        """
        _require_not_none(backend, "backend")
        is_valid, error = TableNameValidator.validate(table_name)
        if not is_valid:
            raise InvalidArgumentError("table_name", error)

        self.backend = backend
        self.table_name = table_name
        self.batch_writer = BatchWriter(backend, table_name)

    @classmethod
    def from_config(cls, config: Any, backend: Optional[TableBackend] = None) -> "TableStorageRepository":
        """
        Create a repository from a TableStorageConfig.

        Args:
            config: Loaded configuration
            backend: Backend to use; one is created from config when omitted
        """
        if backend is None:
            backend = TableBackend.from_config(config)
        return cls(backend, config.repository.table_name)

    # ========== Paged queries ==========

    async def query(
        self,
        query: Query,
        results_per_page: Optional[int] = None,
        continuation_token: Optional[str] = None,
    ) -> PagedResults:
        """
        Fetch one page of results for a query.

        Args:
            query: Query strategy to execute
            results_per_page: Maximum entities on the page; None leaves only
                the store's segment cap
            continuation_token: Token from a previous page, or None to start

        Returns:
            PagedResults for this page

        Raises:
            InvalidArgumentError: If query is None or results_per_page <= 0
            CorruptContinuationTokenError: If continuation_token is malformed
                or belongs to another table
            StorageError: If the backend fails
        """
        _require_not_none(query, "query")
        _require_positive(results_per_page)
        cursor = self._decode_cursor(continuation_token)

        table_query = self._filter(query, results_per_page)
        segment = await self.backend.execute_segment(table_query, cursor)
        log_with_context(
            logger, logging.DEBUG, f"Fetched page of {query!r}",
            table_name=self.table_name, entities=len(segment.entities),
            results_per_page=results_per_page, resumed=cursor is not None,
            more=segment.next_cursor is not None,
        )
        return create_paged_results(self.table_name, segment)

    async def list_by_partition_key(
        self,
        partition_key: str,
        results_per_page: Optional[int] = None,
        continuation_token: Optional[str] = None,
    ) -> PagedResults:
        """
        Return a page of entities within one partition.

        Raises:
            InvalidArgumentError: If partition_key is blank or results_per_page <= 0
        """
        _require_non_blank(partition_key, "partition_key")
        _require_positive(results_per_page)
        return await self.query(
            ListByPartitionKeyQuery(partition_key), results_per_page, continuation_token
        )

    async def list_all(
        self,
        results_per_page: Optional[int] = None,
        continuation_token: Optional[str] = None,
    ) -> PagedResults:
        """
        Return a page of entities across the whole table.

        Raises:
            InvalidArgumentError: If results_per_page <= 0
        """
        _require_positive(results_per_page)
        return await self.query(ListAllQuery(), results_per_page, continuation_token)

    # ========== Single-entity lookups ==========

    async def first_or_default(self, query: Query) -> Optional[Entity]:
        """
        Return the first entity matching the query, or None if there is none.

        Raises:
            InvalidArgumentError: If query is None
        """
        _require_not_none(query, "query")
        return await QueryResults(self.backend, self._filter(query)).first_or_none()

    async def first(self, query: Query) -> Entity:
        """
        Return the first entity matching the query.

        Raises:
            InvalidArgumentError: If query is None
            EmptyResultError: If no entity matches
        """
        _require_not_none(query, "query")
        entity = await QueryResults(self.backend, self._filter(query)).first_or_none()
        if entity is None:
            raise EmptyResultError(self.table_name)
        return entity

    async def get_by_partition_key_and_row_key(
        self,
        partition_key: str,
        row_key: str,
    ) -> Optional[Entity]:
        """
        Return the entity with the given composite key, or None if absent.

        Raises:
            InvalidArgumentError: If either key is blank
        """
        _require_non_blank(partition_key, "partition_key")
        _require_non_blank(row_key, "row_key")
        return await self.first_or_default(GetByPartitionKeyAndRowKeyQuery(partition_key, row_key))

    # ========== Lazy search ==========

    def find(
        self,
        query: Union[Query, Callable[[Entity], bool]],
        results_per_page: Optional[int] = None,
    ) -> QueryResults:
        """
        Return the filtered collection as a lazy async sequence.

        Without results_per_page the sequence covers every matching entity,
        following store cursors across segments. With it, at most that many
        entities are produced.

        Args:
            query: Query strategy, or a predicate taking an Entity

        Raises:
            InvalidArgumentError: If query is None or results_per_page <= 0
        """
        _require_not_none(query, "query")
        _require_positive(results_per_page)
        if not isinstance(query, Query):
            if not callable(query):
                raise InvalidArgumentError("query", "query must be a Query or a predicate.")
            query = PredicateQuery(query)
        return QueryResults(self.backend, self._filter(query, results_per_page))

    # ========== Full listings ==========

    async def list_all_by_partition_key(self, partition_key: str) -> List[Entity]:
        """
        Return every entity within a partition.

        Caution: all pages are loaded into memory; there is no upper bound.

        Raises:
            InvalidArgumentError: If partition_key is blank
        """
        _require_non_blank(partition_key, "partition_key")
        return await self._collect(
            lambda token: self.list_by_partition_key(partition_key, continuation_token=token),
            partition_key=partition_key,
        )

    async def get_all(self) -> List[Entity]:
        """
        Return every entity in the table.

        Caution: all pages are loaded into memory; there is no upper bound.
        """
        return await self._collect(lambda token: self.list_all(continuation_token=token))

    async def _collect(self, fetch_page, **context: Any) -> List[Entity]:
        entities: List[Entity] = []
        continuation_token: Optional[str] = None
        pages = 0
        while True:
            page = await fetch_page(continuation_token)
            entities.extend(page.results)
            pages += 1
            if not page.has_more_results:
                break
            continuation_token = page.continuation_token
        log_with_context(
            logger, logging.DEBUG, "Collected full listing",
            table_name=self.table_name, entities=len(entities), pages=pages, **context,
        )
        return entities

    # ========== Writes ==========

    async def add(self, entity: Entity) -> Entity:
        """Insert a new entity."""
        _require_not_none(entity, "entity")
        return await self.backend.insert_entity(self.table_name, entity)

    async def update(self, entity: Entity) -> Entity:
        """Replace an existing entity, checking its ETag when it carries one."""
        _require_not_none(entity, "entity")
        return await self.backend.update_entity(self.table_name, entity, if_match=entity.etag or "*")

    async def upsert(self, entity: Entity) -> Entity:
        """Insert an entity or replace it if present."""
        _require_not_none(entity, "entity")
        return await self.backend.upsert_entity(self.table_name, entity)

    async def delete(self, entity: Entity) -> None:
        """Delete an entity, checking its ETag when it carries one."""
        _require_not_none(entity, "entity")
        await self.backend.delete_entity(
            self.table_name, entity.PartitionKey, entity.RowKey, if_match=entity.etag or "*"
        )

    # ========== Table lifecycle ==========

    async def create_table_if_not_exists(self) -> bool:
        """
        Create the table unless it already exists.

        Returns:
            True if the table was created
        """
        try:
            await self.backend.create_table(self.table_name)
        except TableAlreadyExistsError:
            return False
        return True

    async def delete_table(self) -> bool:
        """
        Delete the table if it exists.

        Returns:
            True if the table was deleted
        """
        try:
            await self.backend.delete_table(self.table_name)
        except TableNotFoundError:
            return False
        return True

    # ========== Helpers ==========

    def _filter(self, query: Query, results_per_page: Optional[int] = None) -> TableQuery:
        collection = self.backend.create_query(self.table_name)
        if results_per_page is None:
            return query.execute(collection)
        return query.execute_bounded(collection, results_per_page)

    def _decode_cursor(self, continuation_token: Optional[str]) -> Optional[StoreCursor]:
        token = decode_continuation_token(continuation_token)
        if token is None:
            return None
        if token.table.lower() != self.table_name.lower():
            raise CorruptContinuationTokenError(
                f"token belongs to table '{token.table}', not '{self.table_name}'",
                continuation_token,
            )
        return token.to_cursor()
