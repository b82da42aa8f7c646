"""
MIDI input ports to asyncio.

mido invokes port callbacks on its own thread; messages are handed to
the event loop with ``call_soon_threadsafe``.
"""

import asyncio
from typing import Dict, List, Optional

import mido
import structlog

from setlist_sync.midi.dispatch import MidiActionDispatcher

logger = structlog.get_logger()


class MidiInputBridge:
    """Opens the configured input ports and forwards note-ons to the dispatcher."""

    def __init__(self, dispatcher: MidiActionDispatcher, port_names: List[str]):
        self.dispatcher = dispatcher
        self.port_names = list(port_names)
        self._ports: Dict[str, mido.ports.BaseInput] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pending = set()

    @property
    def open_ports(self) -> List[str]:
        return list(self._ports)

    def start(self):
        """Open every configured port; ports that fail to open are skipped."""
        self._loop = asyncio.get_running_loop()
        for name in self.port_names:
            if name in self._ports:
                continue
            try:
                self._ports[name] = mido.open_input(name, callback=self._make_callback(name))
                logger.info("MIDI input opened", port=name)
            except (IOError, OSError) as e:
                logger.error("Failed to open MIDI input", port=name, error=str(e))

    def stop(self):
        for name, port in list(self._ports.items()):
            try:
                port.close()
            except (IOError, OSError) as e:
                logger.warning("Failed to close MIDI input", port=name, error=str(e))
        self._ports.clear()

    def _make_callback(self, port_name: str):
        def _callback(message):
            if message.type != "note_on" or self._loop is None:
                return
            self._loop.call_soon_threadsafe(self._schedule, message, port_name)
        return _callback

    def _schedule(self, message, port_name: str):
        task = self._loop.create_task(self.dispatcher.handle_message(message, device=port_name))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
