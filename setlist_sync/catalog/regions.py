"""
Region catalog.

Regions are replaced wholesale on every refresh from REAPER; lookups
are tolerant of ids arriving as ``"3"`` in one place and ``3`` in
another.
"""

from typing import Any, List, Optional

import structlog

from setlist_sync.catalog.models import Region
from setlist_sync.events import REGIONS_CHANGED, EventBus

logger = structlog.get_logger()


def ids_match(a: Any, b: Any) -> bool:
    """
    Compare two region ids across string/number representations.

    Args:
        a: First id (str, int, float or None)
        b: Second id

    Returns:
        True if both are present and equal as strings or as numbers
    """
    if a is None or b is None:
        return False
    if str(a) == str(b):
        return True
    try:
        return float(a) == float(b)
    except (TypeError, ValueError):
        return False


class RegionCatalog:
    """In-memory list of regions ordered by start time."""

    def __init__(self, events: Optional[EventBus] = None):
        self._events = events
        self._regions: List[Region] = []

    def replace(self, regions: List[Region]) -> bool:
        """
        Swap in a freshly fetched region list.

        Returns:
            True if the list differs from the current one (subscribers
            are only notified then)
        """
        ordered = sorted(regions, key=lambda r: (r.start, r.end))
        if ordered == self._regions:
            return False
        self._regions = ordered
        logger.debug("Region catalog replaced", count=len(self._regions))
        if self._events is not None:
            self._events.emit(REGIONS_CHANGED, self.all())
        return True

    def all(self) -> List[Region]:
        return list(self._regions)

    def __len__(self) -> int:
        return len(self._regions)

    def find(self, region_id: Any) -> Optional[Region]:
        for region in self._regions:
            if ids_match(region.id, region_id):
                return region
        return None

    def region_at(self, position: float) -> Optional[Region]:
        """First region (by start) with ``start <= position < end``."""
        for region in self._regions:
            if region.contains(position):
                return region
        return None

    def _index_of(self, region_id: Any) -> Optional[int]:
        for index, region in enumerate(self._regions):
            if ids_match(region.id, region_id):
                return index
        return None

    def next_after(self, region_id: Any) -> Optional[Region]:
        """Region following ``region_id`` in start order."""
        index = self._index_of(region_id)
        if index is None or index + 1 >= len(self._regions):
            return None
        return self._regions[index + 1]

    def previous_before(self, region_id: Any) -> Optional[Region]:
        index = self._index_of(region_id)
        if index is None or index == 0:
            return None
        return self._regions[index - 1]

    def successor_in_timeline(self, region: Region) -> Optional[Region]:
        """
        The region REAPER will play into when ``region`` ends.

        That is the earliest region starting at or after ``region.end``.
        """
        candidates = [r for r in self._regions if r.start >= region.end and not ids_match(r.id, region.id)]
        return candidates[0] if candidates else None
