"""
Query Builder: SearchParameters -> Elasticsearch request body.

The body always follows the same schema, with sections filled in or left
out depending on the request:

    {
      "query": {
        "bool": {
          "must": <match_all | query_string over the text fields>,
          "filter": [taxons, properties..., brands, available_on, visible]
        }
      },
      "post_filter": {"bool": {"should": [price ranges], "minimum_should_match": 1}},
      "aggs": {"price": stats, "properties": terms, "taxon_ids": terms},
      "sort": [...],
      "from": 0, "size": 12,
      "min_score": 0.0,
      "track_total_hits": true
    }

Filters inside the query narrow both hits and facet counts. The price
filter goes to post_filter so it narrows hits without distorting facets.

In browse mode the taxon filter moves to post_filter as well: results stay
inside the taxon but facets are computed over the whole catalog.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from catalog_search.config.constants import (
    AVAILABLE_ON_FIELD,
    BRAND_FIELD,
    DEFAULT_SEARCH_CONFIG,
    PRICE_FIELD,
    PROPERTIES_FIELD,
    SELLABLE_FIELD,
    TAXON_IDS_FIELD,
    VISIBLE_FIELD,
    SearchConfig,
)
from catalog_search.core.logging import get_logger
from catalog_search.filters import PriceRangeFilter, PropertyEncoder
from catalog_search.models import SearchParameters
from catalog_search.sorting import SortResolver
from catalog_search.taxonomy import TaxonExpander, Taxonomy

logger = get_logger(__name__)


MATCH_ALL: Dict[str, Any] = {"match_all": {}}


@dataclass
class QueryDocument:
    """
    A structured search request.

    Every section is optional on its own; to_dict() omits empty ones.
    in_query_filters are ANDed and affect facets, price_filters are ORed
    and applied after faceting, post_query_filters are ANDed with the
    price group after faceting.
    """
    text_query: Dict[str, Any] = field(default_factory=lambda: copy.deepcopy(MATCH_ALL))
    in_query_filters: List[Dict[str, Any]] = field(default_factory=list)
    price_filters: List[Dict[str, Any]] = field(default_factory=list)
    post_query_filters: List[Dict[str, Any]] = field(default_factory=list)
    facets: Dict[str, Any] = field(default_factory=dict)
    sort: List[Any] = field(default_factory=list)
    from_: int = 0
    size: Optional[int] = None
    min_score: Optional[float] = None

    @property
    def query(self) -> Dict[str, Any]:
        if not self.in_query_filters:
            return copy.deepcopy(self.text_query)
        return {
            "bool": {
                "must": copy.deepcopy(self.text_query),
                "filter": copy.deepcopy(self.in_query_filters),
            }
        }

    @property
    def post_filter(self) -> Optional[Dict[str, Any]]:
        clauses = copy.deepcopy(self.post_query_filters)
        if self.price_filters:
            clauses.append({
                "bool": {
                    "should": copy.deepcopy(self.price_filters),
                    "minimum_should_match": 1,
                }
            })
        if not clauses:
            return None
        if len(clauses) == 1:
            return clauses[0]
        return {"bool": {"filter": clauses}}

    def with_window(self, from_: int, size: int) -> "QueryDocument":
        """Copy of this document with a different result window."""
        document = copy.deepcopy(self)
        document.from_ = from_
        document.size = size
        return document

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"query": self.query}
        post_filter = self.post_filter
        if post_filter is not None:
            body["post_filter"] = post_filter
        if self.facets:
            body["aggs"] = copy.deepcopy(self.facets)
        if self.sort:
            body["sort"] = copy.deepcopy(self.sort)
        body["from"] = self.from_
        if self.size is not None:
            body["size"] = self.size
        if self.min_score is not None:
            body["min_score"] = self.min_score
        body["track_total_hits"] = True
        return body


class QueryBuilder:
    """
    Builds QueryDocuments from SearchParameters.

    Pure apart from the reference time used for the availability filter,
    which callers may pin by passing `now`.
    """

    def __init__(
        self,
        config: SearchConfig = DEFAULT_SEARCH_CONFIG,
        taxonomy: Optional[Taxonomy] = None,
        property_encoder: Optional[PropertyEncoder] = None,
        price_filter: Optional[PriceRangeFilter] = None,
        sort_resolver: Optional[SortResolver] = None,
    ):
        self.config = config
        self.taxon_expander = TaxonExpander(taxonomy)
        self.property_encoder = property_encoder or PropertyEncoder()
        self.price_filter = price_filter or PriceRangeFilter()
        self.sort_resolver = sort_resolver or SortResolver()

    def build(self, params: SearchParameters, now: Optional[datetime] = None) -> QueryDocument:
        now = now or datetime.now(timezone.utc)
        taxon_ids = self.taxon_expander.expand(params.taxon_ids)
        taxon_filter = self.build_taxon_filter(taxon_ids)

        in_query_filters: List[Dict[str, Any]] = []
        post_query_filters: List[Dict[str, Any]] = []
        if taxon_filter is not None:
            if params.browse_mode:
                post_query_filters.append(taxon_filter)
            else:
                in_query_filters.append(taxon_filter)
        in_query_filters.extend(self.property_encoder.build_clauses(params.property_filters))
        if params.brand_ids:
            in_query_filters.append({"terms": {BRAND_FIELD: list(params.brand_ids)}})
        in_query_filters.extend(self.build_availability_filters(now))

        per_page = params.resolved_per_page(self.config.per_page)
        document = QueryDocument(
            text_query=self.build_text_query(params.keywords),
            in_query_filters=in_query_filters,
            price_filters=self.price_filter.build_clauses(params.price_ranges),
            post_query_filters=post_query_filters,
            facets=self.build_facets(),
            sort=self.sort_resolver.resolve(params.sort_key, taxon_ids),
            from_=params.from_offset(self.config.per_page),
            size=per_page,
            min_score=self.config.min_score,
        )
        logger.debug(
            "Built search query",
            keywords=params.keywords,
            taxon_ids=taxon_ids,
            filters=len(in_query_filters),
            price_ranges=len(document.price_filters),
            sort_key=params.sort_key,
        )
        return document

    # =========================================================================
    # Sections
    # =========================================================================

    def build_text_query(self, keywords: Optional[str]) -> Dict[str, Any]:
        """match_all for blank keywords, else every term must match."""
        if keywords is None or not keywords.strip():
            return copy.deepcopy(MATCH_ALL)
        return {
            "query_string": {
                "query": keywords,
                "fields": list(self.config.text_fields),
                "default_operator": "AND",
                "type": "best_fields",
            }
        }

    @staticmethod
    def build_taxon_filter(taxon_ids: List[int]) -> Optional[Dict[str, Any]]:
        if not taxon_ids:
            return None
        return {"terms": {TAXON_IDS_FIELD: list(taxon_ids)}}

    def build_availability_filters(self, now: datetime) -> List[Dict[str, Any]]:
        """Products available on or before now (or undated) and visible."""
        filters: List[Dict[str, Any]] = [
            {
                "bool": {
                    "should": [
                        {"range": {AVAILABLE_ON_FIELD: {"lte": now.isoformat()}}},
                        {"bool": {"must_not": {"exists": {"field": AVAILABLE_ON_FIELD}}}},
                    ],
                    "minimum_should_match": 1,
                }
            },
            {"term": {VISIBLE_FIELD: True}},
        ]
        if self.config.require_sellable:
            filters.append({"term": {SELLABLE_FIELD: True}})
        return filters

    def build_facets(self) -> Dict[str, Any]:
        size = self.config.facet_term_size
        return {
            "price": {"stats": {"field": PRICE_FIELD}},
            "properties": {
                "terms": {"field": PROPERTIES_FIELD, "size": size, "order": {"_count": "desc"}},
            },
            "taxon_ids": {"terms": {"field": TAXON_IDS_FIELD, "size": size}},
        }
