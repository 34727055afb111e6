"""
Search Executor.

Pipeline:
1. Build the query document (taxonomy errors propagate to the caller)
2. Paged: fetch the requested page window
   Bulk: probe the total with a zero-size request, then fetch
   min(max(total, 1), bulk_hard_cap) hits in one call; if the probe
   itself fails use bulk_probe_fallback instead
3. Parse hits, totals and facets into a ResultSet
4. Resolve records through the optional record loader

Any backend failure (including a client that cannot be constructed),
malformed response or record loader error yields an empty ResultSet
(with `error` set) instead of an exception.
"""

import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from catalog_search.config.constants import DEFAULT_SEARCH_CONFIG, SearchConfig
from catalog_search.config.settings import get_settings
from catalog_search.core.logging import bind_context, configure_logging_from_settings, get_logger, unbind_context
from catalog_search.es_client import Err, SearchClient, SearchResult, get_search_client
from catalog_search.filters import PropertyEncoder
from catalog_search.models import Facets, FacetValue, PriceStats, ResultSet, SearchHit, SearchParameters
from catalog_search.query_builder import QueryBuilder, QueryDocument
from catalog_search.taxonomy import Taxonomy

logger = get_logger(__name__)


RecordLoader = Callable[[List[str]], Sequence[Any]]
ErrorReporter = Callable[[BaseException], None]


class MalformedResponse(ValueError):
    """The backend answered with something that is not a search response."""


class SearchExecutor:
    """
    Runs catalog searches against the search backend.
    """

    def __init__(
        self,
        client: Optional[SearchClient] = None,
        taxonomy: Optional[Taxonomy] = None,
        config: SearchConfig = DEFAULT_SEARCH_CONFIG,
        builder: Optional[QueryBuilder] = None,
        record_loader: Optional[RecordLoader] = None,
        error_reporter: Optional[ErrorReporter] = None,
    ):
        self._client = client
        self.config = config
        self.builder = builder or QueryBuilder(config=config, taxonomy=taxonomy)
        self.record_loader = record_loader
        self.error_reporter = error_reporter
        self._property_encoder = PropertyEncoder()

    @property
    def client(self) -> SearchClient:
        if self._client is None:
            self._client = get_search_client()
        return self._client

    # =========================================================================
    # Retrieval
    # =========================================================================

    def retrieve(
        self,
        params: SearchParameters,
        paged: bool = True,
        now: Optional[datetime] = None,
    ) -> ResultSet:
        """
        Search the catalog.

        Args:
            params: Search request.
            paged: True returns the requested page; False returns every
                   match up to the bulk cap in one result set.
            now: Reference time for the availability filter.

        Returns:
            ResultSet, empty with `error` set if the backend failed.
        """
        document = self.builder.build(params, now=now)
        per_page = params.resolved_per_page(self.config.per_page)

        bind_context(search_mode="paged" if paged else "bulk")
        try:
            if paged:
                window = document.with_window(params.from_offset(self.config.per_page), per_page)
                return self._execute(window, page=params.page, per_page=per_page)

            limit = self.bulk_limit(document)
            return self._execute(document.with_window(0, limit), page=1, per_page=limit)
        finally:
            unbind_context("search_mode")

    def bulk_limit(self, document: QueryDocument) -> int:
        """How many hits an unpaged retrieval fetches."""
        probe = document.with_window(0, 0)
        result = self._search(probe.to_dict())
        if isinstance(result, Err):
            logger.warning(
                "Total count probe failed, using fallback limit",
                limit=self.config.bulk_probe_fallback,
                error=result.reason,
            )
            return self.config.bulk_probe_fallback
        try:
            total = self._parse_total(result.response)
        except (MalformedResponse, KeyError, TypeError, ValueError) as e:
            logger.warning("Total count probe returned no total", error=str(e))
            return self.config.bulk_probe_fallback
        return min(max(total, 1), self.config.bulk_hard_cap)

    def _execute(self, document: QueryDocument, page: int, per_page: int) -> ResultSet:
        result = self._search(document.to_dict())
        if isinstance(result, Err):
            self._report(result.exception)
            return ResultSet.empty(page=page, per_page=per_page, error=result.reason)

        try:
            result_set = self.parse_response(result.response, page=page, per_page=per_page)
            if self.record_loader is not None and result_set.hits:
                result_set.records = list(self.record_loader(result_set.ids))
        except Exception as e:
            logger.error("Failed to process search response", error_type=type(e).__name__, error=str(e))
            self._report(e)
            return ResultSet.empty(page=page, per_page=per_page, error=str(e) or type(e).__name__)

        logger.info(
            "Search executed",
            total=result_set.total,
            returned=len(result_set.hits),
            page=page,
            per_page=per_page,
        )
        return result_set

    def _search(self, body: Dict[str, Any]) -> SearchResult:
        try:
            client = self.client
        except Exception as e:
            logger.error("Search client unavailable", error_type=type(e).__name__, error=str(e))
            return Err(reason=str(e) or type(e).__name__, exception=e)
        return client.search(body)

    def _report(self, exception: Optional[BaseException]) -> None:
        if self.error_reporter is None or exception is None or not self.config.report_errors:
            return
        try:
            self.error_reporter(exception)
        except Exception as e:
            logger.warning("Error reporter failed", error=str(e))

    # =========================================================================
    # Health
    # =========================================================================

    def available(self) -> bool:
        """True if the backend is healthy and the index exists; never raises."""
        try:
            return self.client.is_available()
        except Exception as e:
            logger.warning("Search availability check failed", error=str(e))
            return False

    # =========================================================================
    # Response Parsing
    # =========================================================================

    def parse_response(self, response: Dict[str, Any], page: int, per_page: int) -> ResultSet:
        hits_section = response.get("hits")
        if not isinstance(hits_section, dict):
            raise MalformedResponse("response has no hits section")

        hits = [
            SearchHit(
                id=str(hit["_id"]),
                score=hit.get("_score"),
                source=hit.get("_source") or {},
            )
            for hit in hits_section.get("hits") or []
        ]
        return ResultSet(
            hits=hits,
            total=self._parse_total(response),
            page=page,
            per_page=per_page,
            facets=self.parse_facets(response.get("aggregations") or {}),
        )

    @staticmethod
    def _parse_total(response: Dict[str, Any]) -> int:
        hits_section = response.get("hits")
        if not isinstance(hits_section, dict) or "total" not in hits_section:
            raise MalformedResponse("response has no hit total")
        total = hits_section["total"]
        # Older clusters return a bare number instead of {"value": n, "relation": ..}
        if isinstance(total, dict):
            total = total["value"]
        return int(total)

    def parse_facets(self, aggregations: Dict[str, Any]) -> Facets:
        price = None
        price_agg = aggregations.get("price")
        if price_agg:
            price = PriceStats(
                count=price_agg.get("count") or 0,
                min=price_agg.get("min"),
                max=price_agg.get("max"),
                avg=price_agg.get("avg"),
                sum=price_agg.get("sum") or 0.0,
            )

        properties: Dict[str, List[FacetValue]] = {}
        for bucket in (aggregations.get("properties") or {}).get("buckets", []):
            decoded = self._property_encoder.decode_term(str(bucket["key"]))
            if decoded is None:
                continue
            name, value = decoded
            properties.setdefault(name, []).append(FacetValue(value=value, count=bucket["doc_count"]))

        taxon_ids = [
            FacetValue(value=str(bucket["key"]), count=bucket["doc_count"])
            for bucket in (aggregations.get("taxon_ids") or {}).get("buckets", [])
        ]
        return Facets(price=price, properties=properties, taxon_ids=taxon_ids)


# =============================================================================
# Singleton
# =============================================================================

_executor: Optional[SearchExecutor] = None
_executor_lock = threading.Lock()


def get_search_executor() -> SearchExecutor:
    """Get or create a SearchExecutor configured from settings (thread-safe)."""
    global _executor
    if _executor is None:
        with _executor_lock:
            if _executor is None:
                settings = get_settings()
                configure_logging_from_settings(settings)
                _executor = SearchExecutor(config=SearchConfig.from_settings(settings))
    return _executor
