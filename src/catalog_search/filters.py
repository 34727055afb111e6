"""
Filter clause builders for property and price filtering.

Product properties are indexed as composite "name||value" terms in a single
exact-match field. One terms clause per property gives OR between values
of the same property; ANDing the clauses gives AND across properties.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from catalog_search.config.constants import PRICE_FIELD, PROPERTIES_FIELD
from catalog_search.core.logging import get_logger
from catalog_search.models import PriceRange

logger = get_logger(__name__)


PROPERTY_SEPARATOR = "||"


class PropertyEncoder:
    """Encodes property-name -> values mappings into composite term filters."""

    def __init__(self, field: str = PROPERTIES_FIELD, separator: str = PROPERTY_SEPARATOR):
        self.field = field
        self.separator = separator

    def encode_term(self, name: str, value: str) -> str:
        return f"{name}{self.separator}{value}"

    def decode_term(self, term: str) -> Optional[Tuple[str, str]]:
        """Split a composite term back into (name, value); None if malformed."""
        name, sep, value = term.partition(self.separator)
        if not sep or not name:
            return None
        return name, value

    def encode(self, property_filters: Mapping[str, Sequence[str]]) -> List[List[str]]:
        """
        Composite terms grouped per property, in input order.

        Properties whose value list is empty are omitted.
        """
        groups = []
        for name, values in property_filters.items():
            terms = [self.encode_term(name, value) for value in values]
            if terms:
                groups.append(terms)
        return groups

    def build_clauses(self, property_filters: Mapping[str, Sequence[str]]) -> List[Dict[str, Any]]:
        """One terms clause per property, meant to be ANDed together."""
        return [
            {"terms": {self.field: terms}}
            for terms in self.encode(property_filters)
        ]


class PriceRangeFilter:
    """Builds post-query price range clauses, ORed together by the caller."""

    def __init__(self, field: str = PRICE_FIELD):
        self.field = field

    def build_clause(self, price_range: PriceRange) -> Optional[Dict[str, Any]]:
        if not price_range.is_valid:
            logger.debug(
                "Dropping inverted price range",
                min=price_range.min,
                max=price_range.max,
            )
            return None
        if price_range.max is None:
            return {"range": {self.field: {"gte": price_range.min}}}
        return {"range": {self.field: {"gte": price_range.min, "lte": price_range.max}}}

    def build_clauses(self, price_ranges: Sequence[Any]) -> List[Dict[str, Any]]:
        """
        Range clauses for every usable price range.

        Raw ranges are coerced with PriceRange.parse; non-numeric ranges and
        ranges with min > max are skipped without affecting the others.
        """
        clauses = []
        for raw in price_ranges:
            price_range = PriceRange.parse(raw)
            if price_range is None:
                logger.debug("Dropping non-numeric price range", price_range=str(raw))
                continue
            clause = self.build_clause(price_range)
            if clause is not None:
                clauses.append(clause)
        return clauses
