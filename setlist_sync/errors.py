"""
Error taxonomy shared by every component.

Internal helpers raise these; public operations (poll ticks, the
transition routine, navigation, MIDI dispatch) catch at their boundary,
log, and degrade to a no-op or a ``False`` result.
"""


class SetlistSyncError(Exception):
    """Base class for setlist-sync errors."""


class TransientIOError(SetlistSyncError):
    """The DAW could not be reached or did not answer in time."""


class NotFoundError(SetlistSyncError):
    """A region, setlist or setlist item does not exist."""


class InvalidStateError(SetlistSyncError):
    """A mutation was rejected before anything changed."""


class CalculationFallbackError(SetlistSyncError):
    """Tempo or time signature was unavailable; defaults apply."""
