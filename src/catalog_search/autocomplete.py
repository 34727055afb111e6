"""
Autocomplete and did-you-mean suggestions.

Two narrow request shapes on the same backend client:
- autocomplete(): name-only text match, no filters, one page of hits
- suggestions(): phrase suggester on the name.did_you_mean field
"""

import threading
from typing import Any, Dict, List, Optional

from catalog_search.config.constants import (
    DEFAULT_SEARCH_CONFIG,
    NAME_FIELD,
    NAME_SUGGEST_FIELD,
    SearchConfig,
)
from catalog_search.config.settings import get_settings
from catalog_search.core.logging import configure_logging_from_settings, get_logger
from catalog_search.es_client import Err, SearchClient, SearchResult, get_search_client
from catalog_search.models import ResultSet, SearchHit

logger = get_logger(__name__)


SUGGESTION_GROUP = "did_you_mean"


class AutocompleteService:
    """
    Product-name autocomplete and phrase correction.
    """

    def __init__(
        self,
        client: Optional[SearchClient] = None,
        config: SearchConfig = DEFAULT_SEARCH_CONFIG,
    ):
        self._client = client
        self.config = config

    @property
    def client(self) -> SearchClient:
        if self._client is None:
            self._client = get_search_client()
        return self._client

    def autocomplete(self, prefix: str, per_page: Optional[int] = None) -> ResultSet:
        """
        Products whose name matches the typed text.

        Args:
            prefix: Partial search text.
            per_page: Max hits (defaults to the configured page size).

        Returns:
            ResultSet of matching products, empty on blank input or failure.
        """
        limit = per_page or self.config.per_page
        if not prefix or not prefix.strip():
            return ResultSet.empty(per_page=limit)

        result = self._search({
            "query": {
                "query_string": {
                    "query": prefix,
                    "fields": [NAME_FIELD],
                }
            },
            "size": limit,
        })
        if isinstance(result, Err):
            return ResultSet.empty(per_page=limit, error=result.reason)

        try:
            hits_section = result.response["hits"]
            hits = [
                SearchHit(id=str(hit["_id"]), score=hit.get("_score"), source=hit.get("_source") or {})
                for hit in hits_section.get("hits") or []
            ]
            total = hits_section.get("total", len(hits))
            if isinstance(total, dict):
                total = total.get("value", len(hits))
            total = int(total)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.error("Autocomplete response malformed", error=str(e))
            return ResultSet.empty(per_page=limit, error=str(e) or type(e).__name__)

        return ResultSet(hits=hits, total=total, page=1, per_page=limit)

    def suggestions(self, text: str) -> List[str]:
        """
        Corrected phrases for possibly misspelled search text.

        Returns up to suggestion_limit candidates from the first suggestion
        group; an empty list when there is nothing to suggest or the backend
        failed.
        """
        if not text or not text.strip():
            return []

        result = self._search({
            "suggest": {
                "text": text,
                SUGGESTION_GROUP: {
                    "phrase": {
                        "field": NAME_SUGGEST_FIELD,
                        "size": self.config.suggestion_limit,
                        "max_errors": self.config.suggestion_max_errors,
                        "direct_generator": [
                            {
                                "field": NAME_SUGGEST_FIELD,
                                "min_word_length": self.config.suggestion_min_word_length,
                            }
                        ],
                    }
                },
            },
            "size": 0,
        })
        if isinstance(result, Err):
            return []
        return self._suggestion_texts(result.response)

    def _search(self, body: Dict[str, Any]) -> SearchResult:
        try:
            client = self.client
        except Exception as e:
            logger.error("Search client unavailable", error_type=type(e).__name__, error=str(e))
            return Err(reason=str(e) or type(e).__name__, exception=e)
        return client.search(body)

    def _suggestion_texts(self, response: Dict[str, Any]) -> List[str]:
        groups = (response.get("suggest") or {}).get(SUGGESTION_GROUP) or []
        if not groups or not isinstance(groups, list):
            logger.debug("No suggestion group returned")
            return []
        first = groups[0] if isinstance(groups[0], dict) else {}
        options = first.get("options") or []
        texts = [option["text"] for option in options if isinstance(option, dict) and option.get("text")]
        return texts[: self.config.suggestion_limit]


# =============================================================================
# Singleton
# =============================================================================

_autocomplete: Optional[AutocompleteService] = None
_autocomplete_lock = threading.Lock()


def get_autocomplete_service() -> AutocompleteService:
    """Get or create the AutocompleteService singleton (thread-safe)."""
    global _autocomplete
    if _autocomplete is None:
        with _autocomplete_lock:
            if _autocomplete is None:
                settings = get_settings()
                configure_logging_from_settings(settings)
                _autocomplete = AutocompleteService(config=SearchConfig.from_settings(settings))
    return _autocomplete
