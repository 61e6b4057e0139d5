"""
Unit tests for paged results and lazy query results.
"""

import pytest

from tablestorage.repository.continuation import ContinuationToken, decode_continuation_token
from tablestorage.repository.paging import PagedResults, QueryResults, create_paged_results
from tablestorage.storage.backend import Segment, TableBackend
from tablestorage.storage.models import Entity
from tablestorage.storage.query import StoreCursor


@pytest.fixture
async def backend():
    """Backend with a segment cap of 4 and ten entities in one table."""
    backend_instance = TableBackend(max_segment_size=4)
    await backend_instance.create_table("people")
    for i in range(10):
        await backend_instance.insert_entity("people", Entity(PartitionKey="pk", RowKey=f"{i:02d}"))
    return backend_instance


class TestPagedResults:
    """Tests for PagedResults."""

    def test_defaults(self):
        page = PagedResults()

        assert page.results == []
        assert page.continuation_token is None
        assert page.has_more_results is False

    def test_has_more_results_follows_token(self):
        page = PagedResults(continuation_token="token")
        assert page.has_more_results is True

    def test_dump_includes_has_more_results(self):
        dumped = PagedResults(continuation_token="token").model_dump()
        assert dumped["has_more_results"] is True

    def test_create_from_final_segment(self):
        entities = [Entity(PartitionKey="pk", RowKey="1"), Entity(PartitionKey="pk", RowKey="2")]
        page = create_paged_results("people", Segment(entities=entities))

        assert [e.RowKey for e in page.results] == ["1", "2"]
        assert page.continuation_token is None
        assert not page.has_more_results

    def test_create_from_partial_segment(self):
        segment = Segment(entities=[Entity(PartitionKey="pk", RowKey="1")], next_cursor=StoreCursor("pk", "2"))
        page = create_paged_results("people", segment)

        assert page.has_more_results
        assert decode_continuation_token(page.continuation_token) == ContinuationToken("people", "pk", "2")


class TestQueryResults:
    """Tests for QueryResults iteration across segments."""

    @pytest.mark.asyncio
    async def test_iterates_across_segments(self, backend):
        results = QueryResults(backend, backend.create_query("people"))

        entities = await results.to_list()
        assert [e.RowKey for e in entities] == [f"{i:02d}" for i in range(10)]

    @pytest.mark.asyncio
    async def test_limit_bounds_total(self, backend):
        results = QueryResults(backend, backend.create_query("people").take(6))

        entities = [entity async for entity in results]
        assert [e.RowKey for e in entities] == ["00", "01", "02", "03", "04", "05"]

    @pytest.mark.asyncio
    async def test_first_or_none(self, backend):
        first = await QueryResults(backend, backend.create_query("people")).first_or_none()
        assert first.RowKey == "00"

        missing = await QueryResults(
            backend, backend.create_query("people").where_partition_key("other")
        ).first_or_none()
        assert missing is None

    @pytest.mark.asyncio
    async def test_is_reiterable(self, backend):
        results = QueryResults(backend, backend.create_query("people").where(lambda e: e.RowKey < "03"))

        assert len(await results.to_list()) == 3
        assert len(await results.to_list()) == 3
