"""
Unit tests for repository query strategies.
"""

import pytest

from tablestorage.repository.queries import (
    GetByPartitionKeyAndRowKeyQuery,
    ListAllQuery,
    ListByPartitionKeyQuery,
    PredicateQuery,
    Query,
)
from tablestorage.storage.models import Entity
from tablestorage.storage.query import TableQuery


@pytest.fixture
def collection():
    return TableQuery(table_name="people")


class TestStrategies:
    """Tests for the filters each strategy applies."""

    def test_exact_key(self, collection):
        query = GetByPartitionKeyAndRowKeyQuery("pk", "rk").execute(collection)

        assert query.partition_key == "pk"
        assert query.row_key == "rk"
        assert query.limit is None

    def test_exact_key_ignores_bound(self, collection):
        query = GetByPartitionKeyAndRowKeyQuery("pk", "rk").execute_bounded(collection, 5)

        assert query.limit is None
        assert query.partition_key == "pk"

    def test_partition_scan(self, collection):
        query = ListByPartitionKeyQuery("pk").execute_bounded(collection, 5)

        assert query.partition_key == "pk"
        assert query.row_key is None
        assert query.limit == 5

    def test_full_scan(self, collection):
        assert ListAllQuery().execute(collection) == collection
        assert ListAllQuery().execute_bounded(collection, 7).limit == 7

    def test_predicate(self, collection):
        query = PredicateQuery(lambda e: e.RowKey.startswith("a")).execute(collection)

        assert query.matches(Entity(PartitionKey="pk", RowKey="abc"))
        assert not query.matches(Entity(PartitionKey="pk", RowKey="xyz"))

    def test_predicate_requires_callable(self):
        with pytest.raises(TypeError):
            PredicateQuery("RowKey eq 'a'")

    def test_strategies_do_not_mutate_collection(self, collection):
        ListByPartitionKeyQuery("pk").execute_bounded(collection, 5)
        assert collection == TableQuery(table_name="people")


class TestCustomQuery:
    """Tests for caller-defined queries."""

    def test_subclass_with_own_bound(self, collection):
        class FirstFiveQuery(Query):
            def execute(self, query):
                return query.take(5)

        assert FirstFiveQuery().execute(collection).limit == 5
        assert FirstFiveQuery().execute_bounded(collection, 3).limit == 3

    def test_query_is_abstract(self):
        with pytest.raises(TypeError):
            Query()
