"""
Parsers for REAPER web-interface responses.

Every response is tab-delimited text, one record per line, with the
record kind in the first column. Lines of another kind and malformed
lines are skipped.
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional

import structlog

from setlist_sync.catalog.models import Marker, Region
from setlist_sync.tempo import TimeSignature

logger = structlog.get_logger()

# TRANSPORT playstate values
PLAYSTATE_STOPPED = 0
PLAYSTATE_PLAYING = 1
PLAYSTATE_PAUSED = 2
PLAYSTATE_RECORDING = 5
PLAYSTATE_RECORD_PAUSED = 6


@dataclass(frozen=True)
class TransportSnapshot:
    playstate: int
    position: float

    @property
    def is_playing(self) -> bool:
        return self.playstate in (PLAYSTATE_PLAYING, PLAYSTATE_RECORDING)

    @property
    def is_recording(self) -> bool:
        return self.playstate == PLAYSTATE_RECORDING


@dataclass(frozen=True)
class BeatPosition:
    playstate: int
    position_seconds: float
    full_beats: float
    measures: int
    beats_in_measure: float
    time_signature: TimeSignature


def _records(text: str, kind: str) -> Iterator[List[str]]:
    for line in (text or "").splitlines():
        if not line.strip():
            continue
        parts = line.split("\t")
        if parts[0] == kind:
            yield parts


def parse_transport(text: str) -> Optional[TransportSnapshot]:
    """
    Parse ``TRANSPORT\\t<playstate>\\t<position>\\t...``.

    Returns:
        Snapshot from the first valid TRANSPORT line, or None
    """
    for parts in _records(text, "TRANSPORT"):
        if len(parts) < 3:
            continue
        try:
            return TransportSnapshot(playstate=int(parts[1]), position=float(parts[2]))
        except ValueError:
            logger.debug("Skipping malformed TRANSPORT line", parts=parts)
    return None


def parse_beat_position(text: str) -> Optional[BeatPosition]:
    """
    Parse a BEATPOS line.

    Format: ``BEATPOS playstate pos_seconds full_beats measures
    beats_in_measure ts_numerator ts_denominator``. A line without the
    time-signature columns is read as 4/4.
    """
    for parts in _records(text, "BEATPOS"):
        if len(parts) < 4:
            continue
        try:
            signature = TimeSignature()
            if len(parts) >= 8:
                numerator, denominator = int(float(parts[6])), int(float(parts[7]))
                if numerator > 0 and denominator > 0:
                    signature = TimeSignature(numerator, denominator)
            return BeatPosition(
                playstate=int(parts[1]),
                position_seconds=float(parts[2]),
                full_beats=float(parts[3]),
                measures=int(float(parts[4])) if len(parts) > 4 else 0,
                beats_in_measure=float(parts[5]) if len(parts) > 5 else 0.0,
                time_signature=signature,
            )
        except ValueError:
            logger.debug("Skipping malformed BEATPOS line", parts=parts)
    return None


def parse_regions(text: str) -> List[Region]:
    """Parse ``REGION\\t<name>\\t<id>\\t<start>\\t<end>\\t<color>`` lines."""
    regions = []
    for parts in _records(text, "REGION"):
        if len(parts) < 5:
            continue
        try:
            start, end = float(parts[3]), float(parts[4])
        except ValueError:
            logger.debug("Skipping malformed REGION line", parts=parts)
            continue
        if end <= start:
            logger.warning("Skipping empty region", region_id=parts[2], start=start, end=end)
            continue
        color = parts[5] if len(parts) > 5 and parts[5] else None
        regions.append(Region(id=parts[2], name=parts[1], start=start, end=end, color=color))
    return regions


def parse_markers(text: str) -> List[Marker]:
    """Parse ``MARKER\\t<name>\\t<id>\\t<position>\\t<color>`` lines."""
    markers = []
    for parts in _records(text, "MARKER"):
        if len(parts) < 4:
            continue
        try:
            position = float(parts[3])
        except ValueError:
            logger.debug("Skipping malformed MARKER line", parts=parts)
            continue
        color = parts[4] if len(parts) > 4 and parts[4] else None
        markers.append(Marker(id=parts[2], name=parts[1], position=position, color=color))
    return markers


def unescape_ext_state(value: str) -> str:
    """Undo REAPER's ``\\n``, ``\\t`` and ``\\\\`` escaping in one pass."""
    out = []
    i = 0
    while i < len(value):
        char = value[i]
        if char == "\\" and i + 1 < len(value):
            nxt = value[i + 1]
            if nxt in ("n", "t", "\\"):
                out.append({"n": "\n", "t": "\t", "\\": "\\"}[nxt])
                i += 2
                continue
        out.append(char)
        i += 1
    return "".join(out)


def parse_ext_state(text: str) -> str:
    """Value of the first ``PROJEXTSTATE`` line, or "" when absent."""
    for parts in _records(text, "PROJEXTSTATE"):
        if len(parts) >= 4:
            return unescape_ext_state("\t".join(parts[3:]))
    return ""
