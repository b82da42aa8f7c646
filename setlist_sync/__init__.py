"""
setlist-sync: live setlist control for REAPER over its web interface.
"""

__version__ = "0.1.0"
