"""
Region, marker and setlist catalogs.

Contains:
- Timeline entities (regions, markers) and setlists
- Marker-name directives (!bpm, !1008, !length)
- Lookup and ordering helpers used by navigation
"""

from .models import Marker, Region, Setlist, SetlistItem, new_id

from .regions import RegionCatalog, ids_match

from .markers import (
    MarkerCatalog,
    extract_bpm,
    extract_length,
    has_hard_stop,
    is_command_only,
)

from .setlists import SetlistCatalog

__all__ = [
    # Models
    "Marker",
    "Region",
    "Setlist",
    "SetlistItem",
    "new_id",
    # Regions
    "RegionCatalog",
    "ids_match",
    # Markers
    "MarkerCatalog",
    "extract_bpm",
    "extract_length",
    "has_hard_stop",
    "is_command_only",
    # Setlists
    "SetlistCatalog",
]
