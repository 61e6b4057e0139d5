"""
Paged results for the table storage repository.

PagedResults wraps one store segment for callers; QueryResults exposes a
whole filtered scan as a single lazy async sequence.
"""

import logging
from typing import AsyncIterator, List, Optional, TYPE_CHECKING

from pydantic import BaseModel, Field, computed_field

from tablestorage.repository.continuation import ContinuationToken
from tablestorage.storage.backend import Segment
from tablestorage.storage.models import Entity
from tablestorage.storage.query import StoreCursor, TableQuery

if TYPE_CHECKING:
    from tablestorage.storage.backend import TableBackend

logger = logging.getLogger(__name__)


class PagedResults(BaseModel):
    """
    One page of entities plus the token to fetch the next page.

    has_more_results is derived from continuation_token, so the two can
    never disagree. A token may still lead to an empty page: it means more
    data may exist, not that it does.
    """

    results: List[Entity] = Field(default_factory=list)
    continuation_token: Optional[str] = None

    @computed_field
    @property
    def has_more_results(self) -> bool:
        return self.continuation_token is not None


def create_paged_results(table_name: str, segment: Segment) -> PagedResults:
    """
    Build a page from a raw store segment.

    Args:
        table_name: Table the segment was read from
        segment: Segment returned by the backend

    Returns:
        PagedResults with entities in store order and the encoded next cursor
    """
    continuation_token = None
    if segment.next_cursor is not None:
        continuation_token = ContinuationToken.from_cursor(table_name, segment.next_cursor).encode()
    return PagedResults(results=list(segment.entities), continuation_token=continuation_token)


class QueryResults:
    """
    Lazy async sequence over every entity matching a query.

    Segments are fetched one at a time as iteration proceeds, following the
    store's cursor until it runs out. When the query carries a limit, at most
    that many entities are produced in total.

    Example:
        ```python
        async for entity in repository.find(lambda e: e.PartitionKey.startswith("EU")):
            ...
        entities = await repository.find(query, results_per_page=10).to_list()
        ```
    """

    def __init__(self, backend: "TableBackend", query: TableQuery):
        self._backend = backend
        self.query = query

    async def __aiter__(self) -> AsyncIterator[Entity]:
        cursor: Optional[StoreCursor] = None
        produced = 0
        segments = 0
        while True:
            segment = await self._backend.execute_segment(self.query, cursor)
            segments += 1
            for entity in segment.entities:
                yield entity
                produced += 1
                if self.query.limit is not None and produced >= self.query.limit:
                    return
            if segment.next_cursor is None:
                logger.debug(
                    f"Query on '{self.query.table_name}' exhausted after "
                    f"{segments} segments, {produced} entities"
                )
                return
            cursor = segment.next_cursor

    async def first_or_none(self) -> Optional[Entity]:
        """Return the first matching entity, or None."""
        entities = self.__aiter__()
        try:
            async for entity in entities:
                return entity
            return None
        finally:
            await entities.aclose()

    async def to_list(self) -> List[Entity]:
        """Materialize every matching entity."""
        return [entity async for entity in self]
