"""
Bars-to-seconds conversion for count-in pre-roll.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import structlog

from setlist_sync.tempo.bpm import BpmEstimator

logger = structlog.get_logger()


@dataclass(frozen=True)
class TimeSignature:
    numerator: int = 4
    denominator: int = 4


COMMON_TIME = TimeSignature(4, 4)


def bars_duration(bars: float, numerator: int, bpm: float) -> float:
    """Seconds spanned by ``bars`` bars of ``numerator`` beats at ``bpm``."""
    return bars * numerator * (60.0 / bpm)


class CountInCalculator:
    """
    Converts a number of bars into seconds at the current tempo and meter.

    Args:
        time_signature_source: Coroutine returning the current TimeSignature
        bpm_source: Coroutine returning the current tempo (may be None)
    """

    def __init__(
        self,
        time_signature_source: Callable[[], Awaitable[TimeSignature]],
        bpm_source: Callable[[], Awaitable[Optional[float]]],
    ):
        self._time_signature_source = time_signature_source
        self._bpm_source = bpm_source

    async def bars_to_seconds(self, bars: float, default_bpm: float = 90.0) -> float:
        """
        Duration of ``bars`` bars in seconds.

        Falls back to 4/4 at ``default_bpm`` if the meter or tempo cannot
        be fetched, and to ``default_bpm`` if the tempo is missing or not
        positive.
        """
        try:
            signature = await self._time_signature_source()
            bpm = await self._bpm_source()
        except Exception as e:
            logger.warning(
                "Tempo or time signature unavailable, assuming 4/4",
                default_bpm=default_bpm,
                error=str(e),
            )
            return bars_duration(bars, COMMON_TIME.numerator, default_bpm)

        if not bpm or bpm <= 0:
            logger.debug("Invalid tempo, using default", bpm=bpm, default_bpm=default_bpm)
            bpm = default_bpm

        numerator = signature.numerator if signature and signature.numerator > 0 else COMMON_TIME.numerator
        seconds = bars_duration(bars, numerator, bpm)
        logger.debug(
            "Calculated bar duration",
            bars=bars,
            time_signature=f"{numerator}/{signature.denominator if signature else 4}",
            bpm=bpm,
            seconds=round(seconds, 3),
        )
        return seconds


def estimator_bpm_source(estimator: BpmEstimator, default_bpm: float = 0.0):
    """Build a bpm source that reads the estimator (0 means "use default")."""
    async def _source() -> Optional[float]:
        return estimator.estimate(default_bpm)
    return _source
