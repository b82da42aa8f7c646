"""
REAPER web-interface client.

Talks to REAPER's built-in web server (``/_/<command>``) with httpx.
Every transport or HTTP failure surfaces as :class:`TransientIOError`
so callers can treat the DAW as "unreachable for now".
"""

from typing import List, Optional
from urllib.parse import quote

import httpx
import structlog

from setlist_sync.catalog.models import Marker, Region
from setlist_sync.errors import CalculationFallbackError, TransientIOError
from setlist_sync.tempo import TimeSignature
from setlist_sync.transport.parsing import (
    BeatPosition,
    TransportSnapshot,
    parse_beat_position,
    parse_ext_state,
    parse_markers,
    parse_regions,
    parse_transport,
)

logger = structlog.get_logger()

# REAPER action command ids
ACTION_PLAY = 1007
ACTION_PAUSE = 1008
ACTION_RECORD = 40046
ACTION_ENABLE_COUNT_IN = 40363
ACTION_STOP_RECORDING = 40667


class ReaperWebClient:
    """
    Async client for the REAPER web control surface.

    Args:
        base_url: e.g. ``http://localhost:8080``
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests use ``httpx.MockTransport``)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 3.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "ReaperWebClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        await self._http.aclose()

    async def request(self, command: str) -> str:
        """
        Send one ``/_/<command>`` request.

        Args:
            command: Command path, e.g. ``TRANSPORT`` or ``SET/POS/12.5``

        Returns:
            Raw response body

        Raises:
            TransientIOError: REAPER unreachable, timed out or answered non-2xx
        """
        try:
            response = await self._http.get(f"/_/{command}")
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise TransientIOError(f"REAPER request {command} failed: {e}") from e
        return response.text

    async def run_action(self, action_id: int):
        logger.debug("Sending action to REAPER", action_id=action_id)
        await self.request(str(action_id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_transport_state(self) -> TransportSnapshot:
        snapshot = parse_transport(await self.request("TRANSPORT"))
        if snapshot is None:
            raise TransientIOError("No TRANSPORT line in REAPER response")
        return snapshot

    async def get_beat_position(self) -> Optional[BeatPosition]:
        return parse_beat_position(await self.request("BEATPOS"))

    async def get_time_signature(self) -> TimeSignature:
        beat_position = await self.get_beat_position()
        if beat_position is None:
            raise CalculationFallbackError("No BEATPOS line in REAPER response")
        return beat_position.time_signature

    async def get_regions(self) -> List[Region]:
        return parse_regions(await self.request("REGION"))

    async def get_markers(self) -> List[Marker]:
        return parse_markers(await self.request("MARKER"))

    async def get_project_extended_state(self, section: str, key: str) -> str:
        text = await self.request(f"GET/PROJEXTSTATE/{quote(section, safe='')}/{quote(key, safe='')}")
        return parse_ext_state(text)

    async def set_project_extended_state(self, section: str, key: str, value: str):
        await self.request(
            f"SET/PROJEXTSTATE/{quote(section, safe='')}/{quote(key, safe='')}/{quote(value, safe='')}"
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def seek(self, position: float):
        logger.debug("Seeking", position=round(position, 3))
        await self.request(f"SET/POS/{position}")

    async def play(self):
        await self.run_action(ACTION_PLAY)

    async def pause(self):
        await self.run_action(ACTION_PAUSE)

    async def record(self):
        await self.run_action(ACTION_RECORD)

    async def stop_recording(self):
        """Pause, then stop recording (keeps the recorded take)."""
        await self.run_action(ACTION_PAUSE)
        await self.run_action(ACTION_STOP_RECORDING)

    async def play_with_count_in(self):
        """Enable REAPER's count-in, then start playback."""
        await self.run_action(ACTION_ENABLE_COUNT_IN)
        await self.run_action(ACTION_PLAY)
