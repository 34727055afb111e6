"""
Configuration module for catalog search.

Settings come from the environment via pydantic-settings; SearchConfig is
the immutable value object the search components are built with.

Usage:
    from catalog_search.config import SearchConfig, get_settings

    config = SearchConfig.from_settings(get_settings())
"""

from catalog_search.config.constants import DEFAULT_SEARCH_CONFIG, SearchConfig
from catalog_search.config.settings import Settings, get_settings

__all__ = ["DEFAULT_SEARCH_CONFIG", "SearchConfig", "Settings", "get_settings"]
