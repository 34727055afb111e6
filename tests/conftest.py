"""
Pytest configuration and shared fixtures for the catalog search tests.
"""
import os
import sys
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(__file__)), "src"))


# ============================================================================
# Fixtures: Reference Data
# ============================================================================

@pytest.fixture
def fixed_now() -> datetime:
    """Pinned reference time for the availability filter."""
    return datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def taxonomy():
    """
    Small catalog tree:

        1 Clothing
        ├── 5 Shirts
        │   └── 12 Polo Shirts
        └── 6 Trousers
            └── 7 Chinos
                └── 8 Slim Chinos
        2 Brands (no children)
    """
    from catalog_search.taxonomy import InMemoryTaxonomy
    return InMemoryTaxonomy({1: None, 2: None, 5: 1, 12: 5, 6: 1, 7: 6, 8: 7})


@pytest.fixture
def search_config():
    from catalog_search.config.constants import SearchConfig
    return SearchConfig(per_page=12)


@pytest.fixture
def builder(search_config, taxonomy):
    from catalog_search.query_builder import QueryBuilder
    return QueryBuilder(config=search_config, taxonomy=taxonomy)


# ============================================================================
# Fixtures: Backend Responses
# ============================================================================

def make_es_response(
    ids=("1", "2", "3"),
    total=None,
    aggregations=None,
) -> dict:
    """Build an Elasticsearch search response body."""
    hits = [
        {
            "_index": "products",
            "_id": product_id,
            "_score": 1.0 - i * 0.1,
            "_source": {"name": f"Product {product_id}", "price": 10.0 + i},
        }
        for i, product_id in enumerate(ids)
    ]
    return {
        "took": 3,
        "timed_out": False,
        "hits": {
            "total": {"value": len(ids) if total is None else total, "relation": "eq"},
            "max_score": 1.0,
            "hits": hits,
        },
        "aggregations": aggregations or {},
    }


@pytest.fixture
def es_response():
    return make_es_response


@pytest.fixture
def sample_aggregations() -> dict:
    return {
        "price": {"count": 3, "min": 10.0, "max": 12.0, "avg": 11.0, "sum": 33.0},
        "properties": {
            "buckets": [
                {"key": "color||red", "doc_count": 2},
                {"key": "color||blue", "doc_count": 1},
                {"key": "material||cotton", "doc_count": 3},
            ]
        },
        "taxon_ids": {
            "buckets": [
                {"key": "5", "doc_count": 3},
                {"key": "12", "doc_count": 1},
            ]
        },
    }


# ============================================================================
# Fixtures: Mock Services
# ============================================================================

@pytest.fixture
def mock_es():
    """Mock Elasticsearch client (the raw library client)."""
    mock_client = MagicMock()
    mock_client.search.return_value = make_es_response()
    mock_client.cluster.health.return_value = {"status": "green"}
    mock_client.indices.exists.return_value = True
    return mock_client


@pytest.fixture
def search_client(mock_es):
    """SearchClient wrapping the mocked Elasticsearch client."""
    from catalog_search.config.settings import get_settings_for_testing
    from catalog_search.es_client import SearchClient
    return SearchClient(
        client=mock_es,
        settings=get_settings_for_testing(elasticsearch_index="products"),
    )


@pytest.fixture
def executor(search_client, taxonomy, search_config):
    from catalog_search.executor import SearchExecutor
    return SearchExecutor(client=search_client, taxonomy=taxonomy, config=search_config)


# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")


def pytest_collection_modifyitems(config, items):
    """Auto-skip integration tests if no cluster URL is configured."""
    skip_integration = pytest.mark.skip(reason="Integration tests require ELASTICSEARCH_TEST_URL")
    if os.getenv("ELASTICSEARCH_TEST_URL"):
        return
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)
