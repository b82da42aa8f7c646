"""
MIDI note to navigation action dispatch.
"""

from typing import Awaitable, Callable, Dict, Optional

import mido
import structlog

from setlist_sync.midi.debounce import NoteDebouncer
from setlist_sync.playback.navigation import NavigationFacade

logger = structlog.get_logger()


def build_actions(facade: NavigationFacade) -> Dict[str, Callable[[], Awaitable[bool]]]:
    """Map action names (as used in note mappings) to facade calls."""
    return {
        "togglePlay": facade.toggle_play,
        "pause": facade.pause,
        "nextRegion": facade.next,
        "previousRegion": facade.previous,
        "seekToCurrentRegionStart": facade.seek_to_current_region_start,
        "toggleAutoplay": facade.toggle_autoplay,
        "toggleCountIn": facade.toggle_count_in,
    }


class MidiActionDispatcher:
    """
    Turns note-on events into navigation actions.

    Args:
        facade: Navigation facade
        mapping: Note number -> action name
        debouncer: Shared debouncer for all input ports
        channel: Only this channel (0-15) is accepted; None accepts all
    """

    def __init__(
        self,
        facade: NavigationFacade,
        mapping: Dict[int, str],
        debouncer: Optional[NoteDebouncer] = None,
        channel: Optional[int] = None,
    ):
        self.actions = build_actions(facade)
        self.mapping = {int(note): action for note, action in mapping.items()}
        self.debouncer = debouncer or NoteDebouncer()
        self.channel = channel

        unknown = sorted(set(self.mapping.values()) - set(self.actions))
        if unknown:
            logger.warning("Ignoring unknown MIDI actions", actions=unknown)

    async def handle_note_on(self, note: int, velocity: int, channel: int = 0, device: str = "") -> bool:
        """
        Dispatch one note-on.

        Returns:
            True if an action ran and reported success
        """
        if velocity == 0:
            return False
        if self.channel is not None and channel != self.channel:
            return False

        action_name = self.mapping.get(note)
        action = self.actions.get(action_name) if action_name else None
        if action is None:
            logger.debug("Unmapped MIDI note", note=note, device=device)
            return False

        if not self.debouncer.accept(note):
            logger.debug("Debounced MIDI note", note=note, device=device)
            return False

        logger.info("MIDI action triggered", note=note, action=action_name, device=device)
        try:
            return bool(await action())
        except Exception as e:
            logger.error("MIDI action failed", action=action_name, error=str(e))
            return False

    async def handle_message(self, message: mido.Message, device: str = "") -> bool:
        if message.type != "note_on":
            return False
        return await self.handle_note_on(message.note, message.velocity, message.channel, device)
