"""
Elasticsearch Client Singleton.

Wraps the official elasticsearch client for the product index. Search
calls never raise: they return Ok(response) or Err(reason, exception) so
callers decide how to degrade.

API used (elasticsearch>=8):
- Elasticsearch(url, request_timeout=..., verify_certs=..., basic_auth=...)
- search(index=..., **body)
- cluster.health()
- indices.exists(index=...)

Responses are ObjectApiResponse; .body is the plain dict.
"""

import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from elasticsearch import Elasticsearch

from catalog_search.config.settings import Settings, get_settings
from catalog_search.core.logging import get_logger

logger = get_logger(__name__)


HEALTHY_CLUSTER_STATUSES = ("green", "yellow")


@dataclass(frozen=True)
class Ok:
    """Successful backend call."""
    response: Dict[str, Any]


@dataclass(frozen=True)
class Err:
    """Failed backend call."""
    reason: str
    exception: Optional[BaseException] = None


SearchResult = Union[Ok, Err]


def _as_dict(response: Any) -> Dict[str, Any]:
    body = getattr(response, "body", response)
    if not isinstance(body, dict):
        raise TypeError(f"Unexpected response type: {type(body).__name__}")
    return body


def _request_body(body: Dict[str, Any]) -> Dict[str, Any]:
    """Map the JSON body onto client keyword arguments ("from" is reserved)."""
    kwargs = dict(body)
    if "from" in kwargs:
        kwargs["from_"] = kwargs.pop("from")
    return kwargs


class SearchClient:
    """
    Wrapper around the Elasticsearch client for one product index.

    Pass `client` to reuse an existing Elasticsearch instance (or a mock).
    """

    def __init__(
        self,
        client: Optional[Elasticsearch] = None,
        index_name: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.index_name = index_name or settings.elasticsearch_index
        self._client = client if client is not None else self._connect(settings)

    @staticmethod
    def _connect(settings: Settings) -> Elasticsearch:
        if not settings.elasticsearch_url:
            raise ValueError("ELASTICSEARCH_URL is required")
        kwargs: Dict[str, Any] = {
            "request_timeout": settings.elasticsearch_timeout_seconds,
            "verify_certs": settings.elasticsearch_verify_certs,
        }
        if settings.elasticsearch_username and settings.elasticsearch_password:
            kwargs["basic_auth"] = (settings.elasticsearch_username, settings.elasticsearch_password)
        return Elasticsearch(settings.elasticsearch_url, **kwargs)

    def close(self):
        """Close the underlying transport."""
        self._client.close()

    # =========================================================================
    # Search
    # =========================================================================

    def search(self, body: Dict[str, Any]) -> SearchResult:
        """
        Run a search request against the product index.

        Args:
            body: Request body (query, post_filter, aggs, sort, from, size,
                  min_score, suggest, ...).

        Returns:
            Ok with the response dict, or Err if the call or the response
            failed in any way (connection, timeout, HTTP error, bad payload).
        """
        try:
            response = self._client.search(index=self.index_name, **_request_body(body))
            return Ok(_as_dict(response))
        except Exception as e:
            logger.error(
                "Search backend call failed",
                index=self.index_name,
                error_type=type(e).__name__,
                error=str(e),
            )
            return Err(reason=str(e) or type(e).__name__, exception=e)

    # =========================================================================
    # Health
    # =========================================================================

    def cluster_status(self) -> Optional[str]:
        """Cluster health status (green/yellow/red), None if unreachable."""
        try:
            return _as_dict(self._client.cluster.health()).get("status")
        except Exception as e:
            logger.warning("Cluster health check failed", error=str(e))
            return None

    def index_exists(self) -> bool:
        """Check if the product index exists."""
        try:
            return bool(self._client.indices.exists(index=self.index_name))
        except Exception as e:
            logger.warning("Index existence check failed", index=self.index_name, error=str(e))
            return False

    def is_available(self) -> bool:
        """True when the cluster is green or yellow and the index exists."""
        status = self.cluster_status()
        if status not in HEALTHY_CLUSTER_STATUSES:
            logger.info("Search backend unavailable", status=status)
            return False
        return self.index_exists()


# =============================================================================
# Singleton
# =============================================================================

_search_client: Optional[SearchClient] = None
_search_client_lock = threading.Lock()


def get_search_client() -> SearchClient:
    """Get or create the SearchClient singleton (thread-safe)."""
    global _search_client
    if _search_client is None:
        with _search_client_lock:
            if _search_client is None:
                _search_client = SearchClient()
    return _search_client
