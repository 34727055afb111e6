"""
Centralized settings management using pydantic-settings.

All environment variables and configuration values are defined here.
Use get_settings() to access the singleton settings instance.
"""

from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Optional environment variables:
        - ELASTICSEARCH_URL: Search backend URL (default: http://localhost:9200)
        - ELASTICSEARCH_INDEX: Product index name (default: products)
        - PRODUCTS_PER_PAGE: Default page size (default: 12)
        - ELASTICSEARCH_CUSTOM_FIELDS: Comma-separated searchable fields,
          e.g. "name^5,description,brand". Overrides the weighted default list.
        - ELASTICSEARCH_MIN_SCORE: Minimum relevance score (default: 0.0)
        - ENVIRONMENT: Environment name (development, staging, production)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Minimum log level")
    json_logs: bool = Field(default=False, description="Render logs as JSON")

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ("development", "dev", "local")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in ("production", "prod")

    # ==========================================================================
    # Elasticsearch Connection
    # ==========================================================================
    elasticsearch_url: str = Field(
        default="http://localhost:9200",
        description="Elasticsearch cluster URL"
    )
    elasticsearch_index: str = Field(default="products", description="Product index name")
    elasticsearch_username: str = Field(default="", description="Basic auth username (optional)")
    elasticsearch_password: str = Field(default="", description="Basic auth password (optional)")
    elasticsearch_timeout_seconds: float = Field(
        default=5.0,
        description="Request timeout enforced by the client (seconds)"
    )
    elasticsearch_verify_certs: bool = Field(default=True, description="Verify TLS certificates")

    # ==========================================================================
    # Search Tuning
    # ==========================================================================
    products_per_page: int = Field(default=12, ge=1, description="Default page size")
    elasticsearch_custom_fields: str = Field(
        default="",
        description="Comma-separated searchable fields overriding the default weighted list"
    )
    elasticsearch_min_score: float = Field(
        default=0.0,
        ge=0.0,
        description="Hits scoring below this are dropped (0 disables)"
    )
    search_all_keywords_in_name: bool = Field(
        default=False,
        description="Match free text against the whitespace-analyzed name field"
    )
    require_sellable: bool = Field(
        default=False,
        description="Only return products flagged as sellable"
    )

    @field_validator("elasticsearch_custom_fields", mode="before")
    @classmethod
    def join_custom_fields(cls, v):
        if v is None:
            return ""
        if isinstance(v, (list, tuple)):
            return ",".join(str(field) for field in v)
        return v

    @property
    def custom_fields(self) -> List[str]:
        return [field.strip() for field in self.elasticsearch_custom_fields.split(",") if field.strip()]


@lru_cache
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Uses lru_cache to ensure only one instance is created.
    Settings are loaded from environment variables and .env file.

    Returns:
        Settings: The application settings instance
    """
    env_file = Path(__file__).parent.parent.parent.parent / ".env"
    return Settings(_env_file=env_file if env_file.exists() else None)


def get_settings_for_testing(**overrides) -> Settings:
    """
    Create a settings instance for testing with optional overrides.

    This bypasses the cache to allow different settings in tests.

    Args:
        **overrides: Setting values to override

    Returns:
        Settings: A new settings instance with overrides applied
    """
    test_defaults = {
        "environment": "testing",
        "debug": True,
    }
    test_defaults.update(overrides)

    return Settings(_env_file=None, **test_defaults)

