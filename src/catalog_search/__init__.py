"""
Catalog Search: faceted product search on Elasticsearch.

Provides:
- SearchParameters / ResultSet: request and result models
- QueryBuilder: SearchParameters -> query document (text, filters, facets, sort)
- SearchExecutor: paged and bulk retrieval with empty-result fallback
- AutocompleteService: name autocomplete and did-you-mean suggestions
- SortResolver, PropertyEncoder, PriceRangeFilter, TaxonExpander: query parts
"""

from catalog_search.autocomplete import AutocompleteService, get_autocomplete_service
from catalog_search.config import DEFAULT_SEARCH_CONFIG, SearchConfig, Settings, get_settings
from catalog_search.es_client import Err, Ok, SearchClient, get_search_client
from catalog_search.executor import SearchExecutor, get_search_executor
from catalog_search.filters import PriceRangeFilter, PropertyEncoder
from catalog_search.models import PriceRange, ResultSet, SearchHit, SearchParameters
from catalog_search.query_builder import QueryBuilder, QueryDocument
from catalog_search.sorting import SortKey, SortResolver
from catalog_search.taxonomy import InMemoryTaxonomy, TaxonExpander, Taxonomy

__all__ = [
    "AutocompleteService",
    "DEFAULT_SEARCH_CONFIG",
    "Err",
    "InMemoryTaxonomy",
    "Ok",
    "PriceRange",
    "PriceRangeFilter",
    "PropertyEncoder",
    "QueryBuilder",
    "QueryDocument",
    "ResultSet",
    "SearchClient",
    "SearchConfig",
    "SearchExecutor",
    "SearchHit",
    "SearchParameters",
    "Settings",
    "SortKey",
    "SortResolver",
    "TaxonExpander",
    "Taxonomy",
    "get_autocomplete_service",
    "get_search_client",
    "get_search_executor",
    "get_settings",
]
