"""
Marker catalog and marker-name directives.

Performers steer playback by naming markers inside a region:

- ``!bpm:<float>``     starting tempo of the region
- ``!1008``            hard stop at the region end (no auto-advance)
- ``!length:<float>``  seconds after region start where the hard stop applies
"""

import re
from typing import List, Optional

import structlog

from setlist_sync.catalog.models import Marker, Region
from setlist_sync.events import MARKERS_CHANGED, EventBus

logger = structlog.get_logger()

BPM_PATTERN = re.compile(r"!bpm:(\d+(\.\d+)?)")
LENGTH_PATTERN = re.compile(r"!length:(\d+(\.\d+)?)")
HARD_STOP_TAG = "!1008"

# A marker made only of directives is hidden from marker listings
_DIRECTIVE = r"(!\d+|!length:\d+(\.\d+)?|!bpm:\d+(\.\d+)?)"
COMMAND_ONLY_PATTERN = re.compile(rf"^{_DIRECTIVE}(\s+{_DIRECTIVE})*$")


def extract_bpm(name: str) -> Optional[float]:
    match = BPM_PATTERN.search(name)
    return float(match.group(1)) if match else None


def extract_length(name: str) -> Optional[float]:
    match = LENGTH_PATTERN.search(name)
    return float(match.group(1)) if match else None


def has_hard_stop(name: str) -> bool:
    return HARD_STOP_TAG in name


def is_command_only(name: str) -> bool:
    return bool(COMMAND_ONLY_PATTERN.match(name.strip()))


class MarkerCatalog:
    """Markers of the current project, with per-region directive lookups."""

    def __init__(self, events: Optional[EventBus] = None):
        self._events = events
        self._markers: List[Marker] = []

    def replace(self, markers: List[Marker]) -> bool:
        ordered = sorted(markers, key=lambda m: m.position)
        if ordered == self._markers:
            return False
        self._markers = ordered
        logger.debug("Marker catalog replaced", count=len(self._markers))
        if self._events is not None:
            self._events.emit(MARKERS_CHANGED, self.all())
        return True

    def all(self) -> List[Marker]:
        return list(self._markers)

    def display_markers(self) -> List[Marker]:
        """Markers that carry a real label, directive-only ones removed."""
        return [m for m in self._markers if not is_command_only(m.name)]

    def in_region(self, region: Region) -> List[Marker]:
        """Markers with ``start <= position <= end`` (inclusive at both ends)."""
        return [m for m in self._markers if region.start <= m.position <= region.end]

    def bpm_for_region(self, region: Optional[Region]) -> Optional[float]:
        """
        Starting tempo for a region from its first ``!bpm`` marker.

        Args:
            region: Region to inspect

        Returns:
            BPM value, or None if the region has no ``!bpm`` marker
        """
        if region is None:
            return None
        for marker in self.in_region(region):
            bpm = extract_bpm(marker.name)
            if bpm is not None:
                logger.debug("Found tempo marker", region_id=region.id, bpm=bpm)
                return bpm
        return None

    def is_hard_stop(self, region: Optional[Region]) -> bool:
        if region is None:
            return False
        return any(has_hard_stop(m.name) for m in self.in_region(region))

    def custom_length(self, region: Optional[Region]) -> Optional[float]:
        if region is None:
            return None
        for marker in self.in_region(region):
            length = extract_length(marker.name)
            if length is not None:
                return length
        return None

    def effective_end(self, region: Region) -> float:
        """
        Position at which playback of ``region`` is considered finished.

        A ``!length`` marker only shortens a region that is also a hard
        stop, and never extends it past its real end.
        """
        if self.is_hard_stop(region):
            length = self.custom_length(region)
            if length is not None and length > 0:
                return min(region.start + length, region.end)
        return region.end
