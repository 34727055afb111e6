"""
Pydantic models for catalog search.

SearchParameters is the immutable per-request input; ResultSet is what a
search call hands back (possibly empty when the backend is unavailable).
"""

import math
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator


PRICE_RANGE_SEPARATOR = "#"


# ============================================================================
# Coercion helpers
# ============================================================================

def _price_bound(value: Any, blank: Optional[float]) -> Optional[float]:
    """Convert a price bound to float; ValueError if it is not a finite number."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return blank
    if isinstance(value, bool):
        raise ValueError(f"not a price: {value!r}")
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"not a finite price: {value!r}")
    return number


def _to_positive_int(value: Any) -> Optional[int]:
    """Return value as a positive int, or None if it is non-numeric or <= 0."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = int(float(value)) if isinstance(value, (str, float)) else int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if number > 0 else None


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (str, bytes, int, float)):
        return [value]
    return list(value)


# ============================================================================
# Request Models
# ============================================================================

class PriceRange(BaseModel):
    """An acceptable price band; max=None means no upper bound."""
    model_config = ConfigDict(frozen=True)

    min: float
    max: Optional[float] = None

    @property
    def is_valid(self) -> bool:
        return self.max is None or self.min <= self.max

    @classmethod
    def parse(cls, raw: Any) -> Optional["PriceRange"]:
        """
        Coerce a raw price range into a PriceRange.

        Accepts a PriceRange, a {"min": .., "max": ..} mapping, a "min#max"
        string or a (min, max) / (min,) sequence. A blank min means 0, a
        blank max means open-ended. Returns None when either bound is
        present but not numeric.
        """
        if isinstance(raw, PriceRange):
            return raw
        if isinstance(raw, Mapping):
            low, high = raw.get("min"), raw.get("max")
        else:
            if isinstance(raw, str):
                parts: Sequence[Any] = raw.split(PRICE_RANGE_SEPARATOR)
            elif isinstance(raw, Sequence):
                parts = raw
            else:
                return None
            if not parts or len(parts) > 2:
                return None
            low = parts[0]
            high = parts[1] if len(parts) > 1 else None

        try:
            low_value = _price_bound(low, blank=0.0)
            high_value = _price_bound(high, blank=None)
        except (TypeError, ValueError):
            return None
        return cls(min=low_value, max=high_value)


class SearchParameters(BaseModel):
    """
    A single catalog search request.

    per_page=None means "use the configured default page size". Invalid
    page/per_page input falls back to the defaults rather than failing, and
    unparseable price ranges or blank property values are dropped.
    """
    model_config = ConfigDict(frozen=True)

    keywords: Optional[str] = Field(None, description="Free text; blank matches everything")
    taxon_ids: List[int] = Field(default_factory=list, description="Catalog category filter")
    brand_ids: List[str] = Field(default_factory=list, description="Brand filter")
    property_filters: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="Property name -> allowed values (OR within, AND across)",
    )
    price_ranges: List[PriceRange] = Field(default_factory=list, description="Union of price bands")
    browse_mode: bool = Field(False, description="Apply the taxon filter after facet computation")
    sort_key: Optional[str] = Field(None, description="One of the SortKey values")
    page: int = Field(1, ge=1, description="Page number (1-indexed)")
    per_page: Optional[int] = Field(None, ge=1, description="Results per page")

    @field_validator("taxon_ids", mode="before")
    @classmethod
    def parse_taxon_ids(cls, v):
        return _as_list(v)

    @field_validator("brand_ids", mode="before")
    @classmethod
    def parse_brand_ids(cls, v):
        return [str(b) for b in _as_list(v) if b is not None and str(b).strip()]

    @field_validator("property_filters", mode="before")
    @classmethod
    def parse_property_filters(cls, v):
        if not v:
            return {}
        parsed: Dict[str, List[str]] = {}
        for name, values in dict(v).items():
            cleaned: List[str] = []
            for value in _as_list(values):
                if value is None:
                    continue
                text = str(value).strip()
                if text and text not in cleaned:
                    cleaned.append(text)
            parsed[str(name)] = cleaned
        return parsed

    @field_validator("price_ranges", mode="before")
    @classmethod
    def parse_price_ranges(cls, v):
        if v is None:
            return []
        if isinstance(v, (str, Mapping, PriceRange)):
            v = [v]
        parsed = (PriceRange.parse(raw) for raw in v)
        return [price_range for price_range in parsed if price_range is not None]

    @field_validator("browse_mode", mode="before")
    @classmethod
    def parse_browse_mode(cls, v):
        return False if v is None or v == "" else v

    @field_validator("sort_key", mode="before")
    @classmethod
    def parse_sort_key(cls, v):
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    @field_validator("page", mode="before")
    @classmethod
    def parse_page(cls, v):
        return _to_positive_int(v) or 1

    @field_validator("per_page", mode="before")
    @classmethod
    def parse_per_page(cls, v):
        return _to_positive_int(v)

    def resolved_per_page(self, default: int) -> int:
        return self.per_page or default

    def from_offset(self, default_per_page: int) -> int:
        return (self.page - 1) * self.resolved_per_page(default_per_page)

    @classmethod
    def from_request(cls, params: Mapping[str, Any]) -> "SearchParameters":
        """
        Build parameters from the raw request mapping of a storefront.

        Recognized keys: keywords, sorting, taxon, browse_mode, per_page,
        page and a nested "search" mapping with price {min, max} or
        price_range_any ["min#max", ...], properties and brand_any.
        """
        search = params.get("search")
        if not isinstance(search, Mapping):
            search = {}

        price_ranges: List[Any] = []
        if search.get("price"):
            price_ranges.append(search["price"])
        elif search.get("price_range_any"):
            price_ranges.extend(_as_list(search["price_range_any"]))

        values: Dict[str, Any] = {
            "keywords": params.get("keywords"),
            "sort_key": params.get("sorting"),
            "taxon_ids": params.get("taxon"),
            "brand_ids": search.get("brand_any"),
            "property_filters": search.get("properties"),
            "price_ranges": price_ranges,
            "page": params.get("page"),
            "per_page": params.get("per_page"),
        }
        if params.get("browse_mode") is not None:
            values["browse_mode"] = params["browse_mode"]
        return cls(**values)


# ============================================================================
# Response Models
# ============================================================================

class SearchHit(BaseModel):
    """A matched document reference."""
    id: str
    score: Optional[float] = None
    source: Dict[str, Any] = Field(default_factory=dict)


class FacetValue(BaseModel):
    """A single facet value with its count."""
    value: str
    count: int


class PriceStats(BaseModel):
    """Price statistics over the facet-affecting result set."""
    count: int = 0
    min: Optional[float] = None
    max: Optional[float] = None
    avg: Optional[float] = None
    sum: float = 0.0


class Facets(BaseModel):
    """Facet aggregations; properties are keyed by property name."""
    price: Optional[PriceStats] = None
    properties: Dict[str, List[FacetValue]] = Field(default_factory=dict)
    taxon_ids: List[FacetValue] = Field(default_factory=list)


class ResultSet(BaseModel):
    """Matched hits for one search call, plus totals and facets."""
    hits: List[SearchHit] = Field(default_factory=list)
    records: List[Any] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    per_page: int = 1
    facets: Facets = Field(default_factory=Facets)
    error: Optional[str] = Field(None, description="Why the result is empty, if the backend failed")

    @property
    def ids(self) -> List[str]:
        return [hit.id for hit in self.hits]

    @property
    def total_pages(self) -> int:
        if self.per_page <= 0:
            return 0
        return (self.total + self.per_page - 1) // self.per_page

    @property
    def has_more(self) -> bool:
        return self.page < self.total_pages

    @property
    def is_empty(self) -> bool:
        return not self.hits

    @classmethod
    def empty(cls, page: int = 1, per_page: int = 1, error: Optional[str] = None) -> "ResultSet":
        return cls(page=page, per_page=per_page, error=error)
