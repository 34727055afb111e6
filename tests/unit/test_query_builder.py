"""
Unit tests for query document construction.

Tests cover:
1. Text clause (match_all vs. weighted AND query_string)
2. In-query filters (taxons, properties, brands, availability, visibility)
3. Post-query price filter
4. Facets, sort and pagination sections
5. Browse mode
6. Idempotence

Run with: python -m pytest tests/unit/test_query_builder.py -v
"""

from datetime import datetime, timedelta, timezone

import pytest

from catalog_search.config.constants import SearchConfig
from catalog_search.models import SearchParameters
from catalog_search.query_builder import QueryBuilder, QueryDocument


def _in_query_filters(body: dict) -> list:
    return body["query"]["bool"]["filter"]


def _filters_on(body: dict, field: str) -> list:
    """In-query terms clauses targeting a field."""
    return [
        clause for clause in _in_query_filters(body)
        if "terms" in clause and field in clause["terms"]
    ]


# =============================================================================
# 1. Text Clause
# =============================================================================

class TestTextQuery:

    def test_blank_keywords_match_everything(self, builder, fixed_now):
        for keywords in (None, "", "   "):
            body = builder.build(SearchParameters(keywords=keywords), now=fixed_now).to_dict()
            assert body["query"]["bool"]["must"] == {"match_all": {}}

    def test_keywords_require_all_terms(self, builder, fixed_now):
        """Scenario: "blue shirt" requires both terms across the weighted fields."""
        params = SearchParameters(keywords="blue shirt", page=1, per_page=20)
        body = builder.build(params, now=fixed_now).to_dict()

        query_string = body["query"]["bool"]["must"]["query_string"]
        assert query_string["query"] == "blue shirt"
        assert query_string["default_operator"] == "AND"
        assert query_string["fields"] == ["name^5", "description", "brand", "sku"]
        assert body["from"] == 0
        assert body["size"] == 20

    def test_whitespace_name_field(self, taxonomy, fixed_now):
        builder = QueryBuilder(config=SearchConfig(search_all_keywords_in_name=True), taxonomy=taxonomy)
        body = builder.build(SearchParameters(keywords="polo"), now=fixed_now).to_dict()
        fields = body["query"]["bool"]["must"]["query_string"]["fields"]
        assert fields[0] == "name.whitespace^5"

    def test_custom_fields_override_defaults(self, taxonomy, fixed_now):
        config = SearchConfig(custom_fields=("name", "description^2", "brand"))
        builder = QueryBuilder(config=config, taxonomy=taxonomy)
        body = builder.build(SearchParameters(keywords="polo"), now=fixed_now).to_dict()
        assert body["query"]["bool"]["must"]["query_string"]["fields"] == [
            "name", "description^2", "brand",
        ]

    def test_min_score_from_config(self, taxonomy, fixed_now):
        builder = QueryBuilder(config=SearchConfig(min_score=0.25), taxonomy=taxonomy)
        body = builder.build(SearchParameters(), now=fixed_now).to_dict()
        assert body["min_score"] == 0.25


# =============================================================================
# 2. In-query Filters
# =============================================================================

class TestInQueryFilters:

    def test_taxons_and_properties(self, builder, fixed_now):
        """Scenario: taxon 5 (descendant 12) and color red/blue."""
        params = SearchParameters(
            property_filters={"color": ["red", "blue"]},
            taxon_ids=[5],
        )
        body = builder.build(params, now=fixed_now).to_dict()

        assert _filters_on(body, "taxon_ids") == [{"terms": {"taxon_ids": [5, 12]}}]
        assert _filters_on(body, "properties") == [
            {"terms": {"properties": ["color||red", "color||blue"]}}
        ]

    def test_one_clause_per_property(self, builder, fixed_now):
        params = SearchParameters(property_filters={
            "color": ["red", "blue"],
            "material": ["cotton"],
        })
        body = builder.build(params, now=fixed_now).to_dict()
        assert _filters_on(body, "properties") == [
            {"terms": {"properties": ["color||red", "color||blue"]}},
            {"terms": {"properties": ["material||cotton"]}},
        ]

    def test_property_with_no_values_is_omitted(self, builder, fixed_now):
        params = SearchParameters(property_filters={"color": ["", "  "], "size": ["M"]})
        body = builder.build(params, now=fixed_now).to_dict()
        assert _filters_on(body, "properties") == [{"terms": {"properties": ["size||M"]}}]

    def test_leaf_taxon_filters_on_itself(self, builder, fixed_now):
        body = builder.build(SearchParameters(taxon_ids=[2]), now=fixed_now).to_dict()
        assert _filters_on(body, "taxon_ids") == [{"terms": {"taxon_ids": [2]}}]

    def test_brand_filter(self, builder, fixed_now):
        body = builder.build(SearchParameters(brand_ids=["acme", "globex"]), now=fixed_now).to_dict()
        assert _filters_on(body, "brand") == [{"terms": {"brand": ["acme", "globex"]}}]

    def test_no_optional_filters_when_not_requested(self, builder, fixed_now):
        body = builder.build(SearchParameters(), now=fixed_now).to_dict()
        assert _filters_on(body, "taxon_ids") == []
        assert _filters_on(body, "properties") == []
        assert _filters_on(body, "brand") == []

    def test_availability_and_visibility_always_applied(self, builder, fixed_now):
        filters = _in_query_filters(builder.build(SearchParameters(), now=fixed_now).to_dict())

        assert {"term": {"visible": True}} in filters
        availability = filters[0]["bool"]["should"]
        assert {"range": {"available_on": {"lte": fixed_now.isoformat()}}} in availability
        assert {"bool": {"must_not": {"exists": {"field": "available_on"}}}} in availability

    def test_sellable_filter_when_required(self, taxonomy, fixed_now):
        builder = QueryBuilder(config=SearchConfig(require_sellable=True), taxonomy=taxonomy)
        filters = _in_query_filters(builder.build(SearchParameters(), now=fixed_now).to_dict())
        assert {"term": {"sellable": True}} in filters

    def test_without_filters_query_is_text_clause(self):
        document = QueryDocument(text_query={"match_all": {}})
        assert document.to_dict()["query"] == {"match_all": {}}

    def test_unknown_taxon_propagates(self, builder, fixed_now):
        with pytest.raises(KeyError):
            builder.build(SearchParameters(taxon_ids=[999]), now=fixed_now)


# =============================================================================
# 3. Post-query Price Filter
# =============================================================================

class TestPriceFilter:

    def test_price_ranges_are_ored_after_facets(self, builder, fixed_now):
        """Scenario: [(10, 20), (50, None)] -> [10, 20] OR >= 50, outside the query."""
        params = SearchParameters(price_ranges=[(10, 20), (50, None)])
        body = builder.build(params, now=fixed_now).to_dict()

        assert body["post_filter"] == {
            "bool": {
                "should": [
                    {"range": {"price": {"gte": 10.0, "lte": 20.0}}},
                    {"range": {"price": {"gte": 50.0}}},
                ],
                "minimum_should_match": 1,
            }
        }
        assert "price" not in str(body["query"])

    def test_no_post_filter_without_valid_ranges(self, builder, fixed_now):
        params = SearchParameters(price_ranges=[(30, 10), ("abc", 5)])
        body = builder.build(params, now=fixed_now).to_dict()
        assert "post_filter" not in body

    def test_inverted_range_does_not_affect_others(self, builder, fixed_now):
        params = SearchParameters(price_ranges=[(30, 10), (5, 15)])
        body = builder.build(params, now=fixed_now).to_dict()
        assert body["post_filter"]["bool"]["should"] == [
            {"range": {"price": {"gte": 5.0, "lte": 15.0}}},
        ]


# =============================================================================
# 4. Facets, Sort and Pagination
# =============================================================================

class TestSections:

    def test_facets(self, builder, fixed_now):
        aggs = builder.build(SearchParameters(), now=fixed_now).to_dict()["aggs"]
        assert aggs["price"] == {"stats": {"field": "price"}}
        assert aggs["properties"]["terms"]["field"] == "properties"
        assert aggs["properties"]["terms"]["size"] == 10000
        assert aggs["taxon_ids"]["terms"] == {"field": "taxon_ids", "size": 10000}

    def test_default_sort(self, builder, fixed_now):
        body = builder.build(SearchParameters(), now=fixed_now).to_dict()
        assert body["sort"] == [
            {"name.untouched": {"order": "asc"}},
            {"price": {"order": "asc"}},
            "_score",
        ]

    def test_taxon_position_sort_uses_expanded_taxons(self, builder, fixed_now):
        params = SearchParameters(taxon_ids=[5], sort_key="taxons_position")
        sort = builder.build(params, now=fixed_now).to_dict()["sort"]
        scoped = [
            clause["taxons_position.position"]["nested"]["filter"]["term"]["taxons_position.id"]
            for clause in sort[:-1]
        ]
        assert scoped == [5, 12]
        assert sort[-1] == {"_id": {"order": "asc"}}

    def test_pagination_window(self, builder, fixed_now):
        body = builder.build(SearchParameters(page=3, per_page=10), now=fixed_now).to_dict()
        assert body["from"] == 20
        assert body["size"] == 10

    def test_default_page_size(self, builder, fixed_now):
        body = builder.build(SearchParameters(page="x", per_page="-4"), now=fixed_now).to_dict()
        assert body["from"] == 0
        assert body["size"] == 12

    def test_exact_totals_are_tracked(self, builder, fixed_now):
        assert builder.build(SearchParameters(), now=fixed_now).to_dict()["track_total_hits"] is True


# =============================================================================
# 5. Browse Mode
# =============================================================================

class TestBrowseMode:

    def test_taxon_filter_moves_after_facets(self, builder, fixed_now):
        params = SearchParameters(taxon_ids=[5], browse_mode=True)
        body = builder.build(params, now=fixed_now).to_dict()

        assert _filters_on(body, "taxon_ids") == []
        assert body["post_filter"] == {"terms": {"taxon_ids": [5, 12]}}

    def test_browse_mode_combines_with_price(self, builder, fixed_now):
        params = SearchParameters(taxon_ids=[5], browse_mode=True, price_ranges=["10#20"])
        post_filter = builder.build(params, now=fixed_now).to_dict()["post_filter"]

        clauses = post_filter["bool"]["filter"]
        assert clauses[0] == {"terms": {"taxon_ids": [5, 12]}}
        assert clauses[1]["bool"]["should"] == [{"range": {"price": {"gte": 10.0, "lte": 20.0}}}]


# =============================================================================
# 6. Idempotence
# =============================================================================

class TestIdempotence:

    def test_same_params_same_document(self, builder, fixed_now):
        params = SearchParameters(
            keywords="polo",
            taxon_ids=[1],
            brand_ids=["acme"],
            property_filters={"color": ["red"]},
            price_ranges=[(10, 20)],
            sort_key="price_desc",
            page=2,
        )
        first = builder.build(params, now=fixed_now)
        second = builder.build(params, now=fixed_now)
        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_reference_time_only_changes_availability(self, builder, fixed_now):
        params = SearchParameters(keywords="polo")
        first = builder.build(params, now=fixed_now).to_dict()
        later = builder.build(params, now=fixed_now + timedelta(hours=1)).to_dict()
        assert first != later
        assert first["aggs"] == later["aggs"]
        assert first["sort"] == later["sort"]

    def test_default_reference_time_is_utc_now(self, builder):
        before = datetime.now(timezone.utc)
        filters = _in_query_filters(builder.build(SearchParameters()).to_dict())
        lte = filters[0]["bool"]["should"][0]["range"]["available_on"]["lte"]
        assert datetime.fromisoformat(lte) >= before

    def test_documents_do_not_share_match_all(self, builder, fixed_now):
        from catalog_search.query_builder import MATCH_ALL

        first = builder.build(SearchParameters(), now=fixed_now)
        second = builder.build(SearchParameters(), now=fixed_now)
        first.text_query["match_all"]["boost"] = 2.0

        assert MATCH_ALL == {"match_all": {}}
        assert second.text_query == {"match_all": {}}
        assert QueryDocument().text_query == {"match_all": {}}

    def test_with_window_does_not_mutate(self, builder, fixed_now):
        document = builder.build(SearchParameters(), now=fixed_now)
        probe = document.with_window(0, 0)
        assert probe.size == 0
        assert document.size == 12
