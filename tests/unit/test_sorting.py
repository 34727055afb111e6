"""
Unit tests for sort mode resolution.
"""

import pytest

from catalog_search.sorting import SortKey, SortResolver


NAME_ASC = {"name.untouched": {"order": "asc"}}
NAME_DESC = {"name.untouched": {"order": "desc"}}
PRICE_ASC = {"price": {"order": "asc"}}
PRICE_DESC = {"price": {"order": "desc"}}


@pytest.fixture
def resolver():
    return SortResolver()


class TestSortTable:
    """Every sort key maps to its fixed clause list."""

    @pytest.mark.parametrize("sort_key,expected", [
        ("name_asc", [NAME_ASC, PRICE_ASC, "_score"]),
        ("name_desc", [NAME_DESC, PRICE_ASC, "_score"]),
        ("price_asc", [PRICE_ASC, NAME_ASC, "_score"]),
        ("price_desc", [PRICE_DESC, NAME_ASC, "_score"]),
        ("score", ["_score", NAME_ASC, PRICE_ASC]),
    ])
    def test_fixed_modes(self, resolver, sort_key, expected):
        assert resolver.resolve(sort_key) == expected

    @pytest.mark.parametrize("sort_key", [None, "", "popularity", "NAME_ASC"])
    def test_absent_or_unknown_uses_default(self, resolver, sort_key):
        assert resolver.resolve(sort_key) == [NAME_ASC, PRICE_ASC, "_score"]

    def test_enum_values_accepted(self, resolver):
        assert resolver.resolve(SortKey.PRICE_DESC) == [PRICE_DESC, NAME_ASC, "_score"]

    def test_taxons_position(self, resolver):
        clauses = resolver.resolve("taxons_position", taxon_ids=[3, 9])
        assert clauses == [
            {
                "taxons_position.position": {
                    "order": "asc",
                    "nested": {
                        "path": "taxons_position",
                        "filter": {"term": {"taxons_position.id": 3}},
                    },
                }
            },
            {
                "taxons_position.position": {
                    "order": "asc",
                    "nested": {
                        "path": "taxons_position",
                        "filter": {"term": {"taxons_position.id": 9}},
                    },
                }
            },
            {"_id": {"order": "asc"}},
        ]

    def test_taxons_position_without_taxons(self, resolver):
        assert resolver.resolve("taxons_position") == [{"_id": {"order": "asc"}}]

    def test_resolved_clauses_are_copies(self, resolver):
        first = resolver.resolve("name_asc")
        first[0]["name.untouched"]["order"] = "desc"
        assert resolver.resolve("name_asc")[0] == NAME_ASC
