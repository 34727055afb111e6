"""
Sort mode resolution.

Each sort key maps to an ordered list of sort clauses; later clauses break
ties of earlier ones. Unknown or missing keys use the name/price default.
"""

import copy
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from catalog_search.config.constants import NAME_SORT_FIELD, PRICE_FIELD, TAXONS_POSITION_PATH


class SortKey(str, Enum):
    """Supported sort modes."""
    NAME_ASC = "name_asc"
    NAME_DESC = "name_desc"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    SCORE = "score"
    TAXONS_POSITION = "taxons_position"


RELEVANCE = "_score"
STABLE_ID_FIELD = "_id"


def _order(field: str, direction: str) -> Dict[str, Any]:
    return {field: {"order": direction}}


DEFAULT_SORT: List[Any] = [
    _order(NAME_SORT_FIELD, "asc"), _order(PRICE_FIELD, "asc"), RELEVANCE,
]

SORT_CLAUSES: Dict[SortKey, List[Any]] = {
    SortKey.NAME_ASC: [_order(NAME_SORT_FIELD, "asc"), _order(PRICE_FIELD, "asc"), RELEVANCE],
    SortKey.NAME_DESC: [_order(NAME_SORT_FIELD, "desc"), _order(PRICE_FIELD, "asc"), RELEVANCE],
    SortKey.PRICE_ASC: [_order(PRICE_FIELD, "asc"), _order(NAME_SORT_FIELD, "asc"), RELEVANCE],
    SortKey.PRICE_DESC: [_order(PRICE_FIELD, "desc"), _order(NAME_SORT_FIELD, "asc"), RELEVANCE],
    SortKey.SCORE: [RELEVANCE, _order(NAME_SORT_FIELD, "asc"), _order(PRICE_FIELD, "asc")],
}


class SortResolver:
    """Maps a sort key to sort clauses."""

    @staticmethod
    def parse_key(sort_key: Optional[str]) -> Optional[SortKey]:
        if sort_key is None:
            return None
        try:
            return SortKey(sort_key)
        except ValueError:
            return None

    def resolve(self, sort_key: Optional[str], taxon_ids: Iterable[int] = ()) -> List[Any]:
        """
        Sort clauses for a sort key.

        taxon_ids is only used by taxons_position, which sorts by the
        product's position inside each taxon in turn and finally by id.
        """
        key = self.parse_key(sort_key)
        if key is SortKey.TAXONS_POSITION:
            return self._taxon_position_clauses(taxon_ids)
        return copy.deepcopy(SORT_CLAUSES.get(key, DEFAULT_SORT))

    @staticmethod
    def _taxon_position_clauses(taxon_ids: Iterable[int]) -> List[Any]:
        clauses: List[Any] = []
        for taxon_id in taxon_ids:
            clauses.append({
                f"{TAXONS_POSITION_PATH}.position": {
                    "order": "asc",
                    "nested": {
                        "path": TAXONS_POSITION_PATH,
                        "filter": {"term": {f"{TAXONS_POSITION_PATH}.id": taxon_id}},
                    },
                }
            })
        clauses.append(_order(STABLE_ID_FIELD, "asc"))
        return clauses
