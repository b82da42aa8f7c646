"""MIDI remote control"""

from setlist_sync.midi.debounce import NoteDebouncer
from setlist_sync.midi.dispatch import MidiActionDispatcher, build_actions
from setlist_sync.midi.bridge import MidiInputBridge

__all__ = [
    "NoteDebouncer",
    "MidiActionDispatcher",
    "build_actions",
    "MidiInputBridge",
]
