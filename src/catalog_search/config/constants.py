"""
Search configuration and tuning constants.

SearchConfig is an immutable value object handed to QueryBuilder,
SearchExecutor and AutocompleteService at construction time, so none of
them read global settings while serving a request.
"""

from dataclasses import dataclass, field
from typing import Tuple

from catalog_search.config.settings import Settings


# =============================================================================
# Index Field Names
# =============================================================================

NAME_FIELD = "name"
NAME_WHITESPACE_FIELD = "name.whitespace"
NAME_SORT_FIELD = "name.untouched"
NAME_SUGGEST_FIELD = "name.did_you_mean"
DESCRIPTION_FIELD = "description"
BRAND_FIELD = "brand"
SKU_FIELD = "sku"
PRICE_FIELD = "price"
PROPERTIES_FIELD = "properties"
TAXON_IDS_FIELD = "taxon_ids"
AVAILABLE_ON_FIELD = "available_on"
VISIBLE_FIELD = "visible"
SELLABLE_FIELD = "sellable"
TAXONS_POSITION_PATH = "taxons_position"


# =============================================================================
# Search Configuration
# =============================================================================

@dataclass(frozen=True)
class SearchConfig:
    """Configuration for query building and result retrieval."""

    # Pagination
    per_page: int = 12

    # Text matching
    custom_fields: Tuple[str, ...] = field(default_factory=tuple)
    min_score: float = 0.0
    search_all_keywords_in_name: bool = False
    name_boost: int = 5

    # Implicit filters
    require_sellable: bool = False

    # Facets
    facet_term_size: int = 10000

    # Bulk (unpaged) retrieval
    bulk_hard_cap: int = 5000
    bulk_probe_fallback: int = 1000

    # Did-you-mean suggestions
    suggestion_limit: int = 5
    suggestion_max_errors: int = 2
    suggestion_min_word_length: int = 1

    # Error reporting (production only when built from settings)
    report_errors: bool = True

    @property
    def text_fields(self) -> Tuple[str, ...]:
        """Fields searched by free text, primary name field boosted first."""
        if self.custom_fields:
            return self.custom_fields
        main_field = NAME_WHITESPACE_FIELD if self.search_all_keywords_in_name else NAME_FIELD
        return (f"{main_field}^{self.name_boost}", DESCRIPTION_FIELD, BRAND_FIELD, SKU_FIELD)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SearchConfig":
        return cls(
            per_page=settings.products_per_page,
            custom_fields=tuple(settings.custom_fields),
            min_score=settings.elasticsearch_min_score,
            search_all_keywords_in_name=settings.search_all_keywords_in_name,
            require_sellable=settings.require_sellable,
            report_errors=settings.is_production,
        )


DEFAULT_SEARCH_CONFIG = SearchConfig()
