"""Utility modules"""

from setlist_sync.utils.logging import setup_logging
from setlist_sync.utils.periodic import PeriodicTask

__all__ = [
    "setup_logging",
    "PeriodicTask",
]
