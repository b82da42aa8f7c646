"""REAPER transport access and playback state"""

from setlist_sync.transport.state import (
    UNSET,
    PlaybackState,
    PlaybackStatePatch,
    PlaybackStateStore,
    merge,
)
from setlist_sync.transport.parsing import BeatPosition, TransportSnapshot
from setlist_sync.transport.client import ReaperWebClient
from setlist_sync.transport.reconciler import TransportStateReconciler

__all__ = [
    "UNSET",
    "PlaybackState",
    "PlaybackStatePatch",
    "PlaybackStateStore",
    "merge",
    "BeatPosition",
    "TransportSnapshot",
    "ReaperWebClient",
    "TransportStateReconciler",
]
