"""
Canonical playback state and its patch type.

Each poll produces a patch: fields REAPER did report are set, everything
else is left as ``UNSET`` and carried forward from the previous state.
``None`` is a real value ("explicitly cleared"), distinct from ``UNSET``.
"""

from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Dict, Optional

import structlog

from setlist_sync.events import PLAYBACK_STATE_CHANGED, EventBus
from setlist_sync.tempo import TimeSignature

logger = structlog.get_logger()


class _Unset:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass(frozen=True)
class PlaybackState:
    is_playing: bool = False
    position: float = 0.0
    current_region_id: Optional[str] = None
    bpm: float = 120.0
    time_signature: TimeSignature = field(default_factory=TimeSignature)
    autoplay_enabled: bool = True
    count_in_enabled: bool = False
    selected_setlist_id: Optional[str] = None
    is_recording_armed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """camelCase view for notification payloads."""
        return {
            "isPlaying": self.is_playing,
            "position": self.position,
            "currentRegionId": self.current_region_id,
            "bpm": self.bpm,
            "timeSignature": asdict(self.time_signature),
            "autoplayEnabled": self.autoplay_enabled,
            "countInEnabled": self.count_in_enabled,
            "selectedSetlistId": self.selected_setlist_id,
            "isRecordingArmed": self.is_recording_armed,
        }


@dataclass(frozen=True)
class PlaybackStatePatch:
    is_playing: Any = UNSET
    position: Any = UNSET
    current_region_id: Any = UNSET
    bpm: Any = UNSET
    time_signature: Any = UNSET
    autoplay_enabled: Any = UNSET
    count_in_enabled: Any = UNSET
    selected_setlist_id: Any = UNSET
    is_recording_armed: Any = UNSET

    def set_fields(self) -> Dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }


def merge(state: PlaybackState, patch: PlaybackStatePatch) -> PlaybackState:
    """Overwrite the fields set in ``patch``, keep all others."""
    changes = patch.set_fields()
    if not changes:
        return state
    return replace(state, **changes)


class PlaybackStateStore:
    """
    Single owner of the current :class:`PlaybackState`.

    Written by the transport reconciler (polled truth) and by the
    setters below (user toggles that must survive polls).
    """

    def __init__(self, events: Optional[EventBus] = None, initial: Optional[PlaybackState] = None):
        self._events = events
        self._initial = initial or PlaybackState()
        self._state = self._initial

    @property
    def state(self) -> PlaybackState:
        return self._state

    def apply(self, patch: PlaybackStatePatch) -> bool:
        """
        Merge a patch into the current state.

        Returns:
            True if any field changed (subscribers were notified)
        """
        new_state = merge(self._state, patch)
        if new_state == self._state:
            return False
        self._state = new_state
        if self._events is not None:
            self._events.emit(PLAYBACK_STATE_CHANGED, new_state)
        return True

    def set_autoplay(self, enabled: bool) -> bool:
        return self.apply(PlaybackStatePatch(autoplay_enabled=bool(enabled)))

    def set_count_in(self, enabled: bool) -> bool:
        return self.apply(PlaybackStatePatch(count_in_enabled=bool(enabled)))

    def set_selected_setlist(self, setlist_id: Optional[str]) -> bool:
        return self.apply(
            PlaybackStatePatch(selected_setlist_id=str(setlist_id) if setlist_id is not None else None)
        )

    def set_recording_armed(self, armed: bool) -> bool:
        return self.apply(PlaybackStatePatch(is_recording_armed=bool(armed)))

    def set_current_region(self, region_id: Optional[str]) -> bool:
        return self.apply(
            PlaybackStatePatch(current_region_id=str(region_id) if region_id is not None else None)
        )

    def reset(self):
        """Back to defaults (DAW disconnected or reconnected)."""
        logger.info("Playback state reset")
        self._state = self._initial
        if self._events is not None:
            self._events.emit(PLAYBACK_STATE_CHANGED, self._state)
