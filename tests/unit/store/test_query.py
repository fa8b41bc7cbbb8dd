"""
Unit tests for SQL query parsing and evaluation.
"""

import pytest

from cosmos_quickstart.store.errors import StoreErrorKind, StoreServiceError
from cosmos_quickstart.store.query import (
    _MISSING,
    execute_query,
    get_path_value,
    parse_query,
    partition_key_value,
)


@pytest.fixture
def documents():
    return [
        {
            "id": "Andersen.1",
            "LastName": "Andersen",
            "IsRegistered": False,
            "Address": {"State": "WA", "City": "Seattle"},
            "Children": [{"FirstName": "Henriette Thaulow", "Grade": 5}],
        },
        {
            "id": "Wakefield.7",
            "LastName": "Wakefield",
            "IsRegistered": True,
            "Address": {"State": "NY", "City": "NY"},
            "Children": [
                {"FirstName": "Jesse", "Grade": 8},
                {"FirstName": "Lisa", "Grade": 1},
            ],
        },
    ]


def run(documents, query, parameters=None):
    return execute_query(documents, parse_query(query, parameters))


def ids(results):
    return [doc["id"] for doc in results]


class TestParseQuery:
    """Test query parsing."""

    def test_parse_select_star_with_where(self):
        parsed = parse_query("SELECT * FROM c WHERE c.LastName = 'Andersen'")

        assert parsed.alias == "c"
        assert parsed.select == ["*"]
        assert parsed.where == "c.LastName = 'Andersen'"
        assert parsed.top is None

    def test_parse_top_and_order_by(self):
        parsed = parse_query("SELECT TOP 1 * FROM f ORDER BY f.id DESC")

        assert parsed.alias == "f"
        assert parsed.top == 1
        assert parsed.order_by == [("f.id", "DESC")]

    def test_parse_parameters_normalizes_names(self):
        parsed = parse_query("SELECT * FROM c", [{"name": "lastName", "value": "Andersen"}])

        assert parsed.parameters == {"@lastName": "Andersen"}

    def test_parse_rejects_non_select(self):
        with pytest.raises(StoreServiceError) as exc_info:
            parse_query("UPDATE c SET c.x = 1")

        assert exc_info.value.kind is StoreErrorKind.BAD_REQUEST


class TestWhere:
    """Test WHERE clause evaluation."""

    def test_string_equality(self, documents):
        assert ids(run(documents, "SELECT * FROM c WHERE c.LastName = 'Andersen'")) == ["Andersen.1"]

    def test_string_equality_double_quotes(self, documents):
        assert ids(run(documents, 'SELECT * FROM c WHERE c.LastName = "Wakefield"')) == ["Wakefield.7"]

    def test_quoted_number_is_a_string(self, documents):
        assert run(documents, "SELECT * FROM c WHERE c.Children[0].Grade = '5'") == []

    def test_not_equal(self, documents):
        assert ids(run(documents, "SELECT * FROM c WHERE c.LastName != 'Andersen'")) == ["Wakefield.7"]

    def test_boolean(self, documents):
        assert ids(run(documents, "SELECT * FROM c WHERE c.IsRegistered = true")) == ["Wakefield.7"]

    def test_bare_boolean(self, documents):
        assert ids(run(documents, "SELECT * FROM c WHERE c.IsRegistered")) == ["Wakefield.7"]

    def test_nested_property(self, documents):
        assert ids(run(documents, "SELECT * FROM c WHERE c.Address.State = 'WA'")) == ["Andersen.1"]

    def test_array_index(self, documents):
        assert ids(run(documents, "SELECT * FROM c WHERE c.Children[0].Grade > 6")) == ["Wakefield.7"]

    def test_and_or(self, documents):
        query = (
            "SELECT * FROM c WHERE (c.LastName = 'Andersen' AND c.IsRegistered = true) "
            "OR c.Address.City = 'NY'"
        )
        assert ids(run(documents, query)) == ["Wakefield.7"]

    def test_not(self, documents):
        assert ids(run(documents, "SELECT * FROM c WHERE NOT (c.LastName = 'Andersen')")) == ["Wakefield.7"]

    def test_in(self, documents):
        query = "SELECT * FROM c WHERE c.LastName IN ('Andersen', 'Smith')"
        assert ids(run(documents, query)) == ["Andersen.1"]

    def test_between_with_and(self, documents):
        query = "SELECT * FROM c WHERE c.Children[0].Grade BETWEEN 4 AND 6 AND c.IsRegistered = false"
        assert ids(run(documents, query)) == ["Andersen.1"]

    def test_keyword_inside_string_literal(self, documents):
        assert run(documents, "SELECT * FROM c WHERE c.LastName = 'Andersen AND Sons'") == []

    def test_parameter(self, documents):
        results = run(
            documents,
            "SELECT * FROM c WHERE c.LastName = @lastName",
            [{"name": "@lastName", "value": "Wakefield"}],
        )
        assert ids(results) == ["Wakefield.7"]

    def test_missing_parameter(self, documents):
        with pytest.raises(StoreServiceError) as exc_info:
            run(documents, "SELECT * FROM c WHERE c.LastName = @lastName")

        assert exc_info.value.kind is StoreErrorKind.BAD_REQUEST

    def test_undefined_property_never_matches(self, documents):
        assert run(documents, "SELECT * FROM c WHERE c.Missing = 'x'") == []
        assert run(documents, "SELECT * FROM c WHERE c.Missing != 'x'") == []


class TestShape:
    """Test ordering, TOP and projection."""

    def test_order_by_desc(self, documents):
        assert ids(run(documents, "SELECT * FROM c ORDER BY c.LastName DESC")) == ["Wakefield.7", "Andersen.1"]

    def test_top(self, documents):
        assert ids(run(documents, "SELECT TOP 1 * FROM c ORDER BY c.id")) == ["Andersen.1"]

    def test_projection_with_alias(self, documents):
        results = run(documents, "SELECT c.id, c.Address.City AS city FROM c WHERE c.LastName = 'Andersen'")

        assert results == [{"id": "Andersen.1", "city": "Seattle"}]


class TestGetPathValue:
    """Test property path resolution."""

    def test_nested(self, documents):
        assert get_path_value(documents[1], "Children[1].FirstName") == "Lisa"

    def test_out_of_range_is_missing(self, documents):
        assert get_path_value(documents[0], "Children[3].FirstName") is _MISSING


class TestPartitionKeyValue:
    """Test partition key extraction from container paths."""

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/LastName", "Andersen"),
            ("/id", "Andersen.1"),
            ("/Address/State", "WA"),
            ('/"Address"/"City"', "Seattle"),
        ],
    )
    def test_resolves_path(self, documents, path, expected):
        assert partition_key_value(documents[0], path) == expected

    @pytest.mark.parametrize("path", ["/Missing", "/Address/Zip", "/Address", "/Children"])
    def test_missing_or_not_scalar(self, documents, path):
        assert partition_key_value(documents[0], path) is None

    def test_non_string_value(self, documents):
        assert partition_key_value(documents[0], "/IsRegistered") == "False"
