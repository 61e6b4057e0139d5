"""
Unit tests for TableQuery.
"""

import pytest

from tablestorage.storage.models import Entity
from tablestorage.storage.query import TableQuery


@pytest.fixture
def entity():
    return Entity(PartitionKey="EU", RowKey="001", City="Paris")


class TestTableQueryBuilders:
    """Tests for the builder methods."""

    def test_builders_return_new_queries(self):
        """Test that builders never mutate the original query."""
        base = TableQuery(table_name="people")
        filtered = base.where_partition_key("EU").where_row_key("001").take(5)

        assert base.partition_keys == ()
        assert base.limit is None
        assert filtered.partition_key == "EU"
        assert filtered.row_key == "001"
        assert filtered.limit == 5

    def test_take_keeps_smallest_limit(self):
        """Test chained take calls."""
        query = TableQuery(table_name="people").take(10).take(20)
        assert query.limit == 10

    @pytest.mark.parametrize("count", [0, -1])
    def test_take_rejects_non_positive(self, count):
        """Test take with a non-positive count."""
        with pytest.raises(ValueError):
            TableQuery(table_name="people").take(count)

    def test_where_requires_callable(self):
        """Test where with a non-callable."""
        with pytest.raises(TypeError):
            TableQuery(table_name="people").where("City eq 'Paris'")


class TestTableQueryMatching:
    """Tests for matches()."""

    def test_unfiltered_matches_everything(self, entity):
        assert TableQuery(table_name="people").matches(entity)

    def test_key_equality(self, entity):
        """Test key conditions."""
        query = TableQuery(table_name="people")
        assert query.where_partition_key("EU").matches(entity)
        assert not query.where_partition_key("US").matches(entity)
        assert query.where_partition_key("EU").where_row_key("001").matches(entity)
        assert not query.where_partition_key("EU").where_row_key("002").matches(entity)

    def test_predicates(self, entity):
        """Test predicate conditions are combined with AND."""
        query = TableQuery(table_name="people").where(
            lambda e: e.get_custom_properties().get("City") == "Paris"
        )
        assert query.matches(entity)
        assert not query.where(lambda e: e.RowKey > "500").matches(entity)

    def test_conflicting_keys_are_unsatisfiable(self, entity):
        """Test two different partition keys rule out every entity."""
        query = TableQuery(table_name="people").where_partition_key("EU").where_partition_key("US")

        assert query.is_unsatisfiable
        assert query.partition_key is None
        assert not query.matches(entity)
