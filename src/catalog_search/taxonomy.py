"""
Taxonomy expansion.

A taxon filter matches products classified under the taxon itself or any
of its descendants, so requested IDs are expanded through the catalog tree
before they reach the query.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

from catalog_search.core.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class Taxonomy(Protocol):
    """Catalog tree lookup; unknown IDs may raise and are not caught here."""

    def descendant_ids(self, taxon_id: int) -> Sequence[int]:
        """All taxon IDs transitively below taxon_id, excluding itself."""
        ...


class InMemoryTaxonomy:
    """Taxonomy backed by a child -> parent mapping held in memory."""

    def __init__(self, parents: Mapping[int, Optional[int]]):
        self._children: Dict[int, List[int]] = defaultdict(list)
        self._known = set(parents)
        for child, parent in parents.items():
            if parent is not None:
                self._children[parent].append(child)
                self._known.add(parent)

    def descendant_ids(self, taxon_id: int) -> List[int]:
        if taxon_id not in self._known:
            raise KeyError(f"Unknown taxon: {taxon_id}")
        found: List[int] = []
        seen = {taxon_id}
        stack = list(reversed(self._children.get(taxon_id, [])))
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            found.append(current)
            stack.extend(reversed(self._children.get(current, [])))
        return found


class TaxonExpander:
    """Expands taxon IDs to include every descendant, without duplicates."""

    def __init__(self, taxonomy: Optional[Taxonomy] = None):
        self.taxonomy = taxonomy

    def expand(self, taxon_ids: Iterable[int]) -> List[int]:
        """
        Requested IDs plus their descendants, first occurrence order kept.

        Without a taxonomy the requested IDs are used as-is.
        """
        expanded: List[int] = []
        seen = set()

        def _add(taxon_id: int) -> None:
            if taxon_id not in seen:
                seen.add(taxon_id)
                expanded.append(taxon_id)

        requested = list(taxon_ids)
        for taxon_id in requested:
            _add(taxon_id)
            if self.taxonomy is None:
                continue
            for descendant in self.taxonomy.descendant_ids(taxon_id):
                _add(descendant)

        if len(expanded) != len(requested):
            logger.debug("Expanded taxon filter", requested=requested, expanded=expanded)
        return expanded
