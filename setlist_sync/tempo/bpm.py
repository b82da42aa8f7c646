"""
Tempo estimation from REAPER BEATPOS samples.

REAPER reports an elapsed position in seconds together with an elapsed
beat count. The rate between two consecutive samples is the tempo; a
``!bpm`` marker in the active region can seed the estimate until enough
live samples exist (right after a seek the time delta is near zero and
the raw rate is meaningless).
"""

import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional

import structlog

logger = structlog.get_logger()

# Anything above this is treated as a measurement glitch
MAX_PLAUSIBLE_BPM = 999.0
WINDOW_SIZE = 2


@dataclass(frozen=True)
class BeatSample:
    """One (elapsed seconds, elapsed beats) reading."""
    position_seconds: float
    beat_position: float
    timestamp: float


def _is_valid_bpm(bpm: float) -> bool:
    return not math.isnan(bpm) and math.isfinite(bpm) and 0 < bpm <= MAX_PLAUSIBLE_BPM


def _rate_to_bpm(beats: float, seconds: float) -> Optional[float]:
    """Convert a beats/seconds ratio to a rounded BPM, or None if implausible."""
    try:
        bpm = round((beats / seconds) * 60, 2)
    except ZeroDivisionError:
        return None
    return bpm if _is_valid_bpm(bpm) else None


class BpmEstimator:
    """
    Sliding two-sample tempo estimator.

    The buffer never holds more than two samples; a third sample evicts
    the oldest.
    """

    def __init__(self):
        self._samples: Deque[BeatSample] = deque(maxlen=WINDOW_SIZE)
        self._seed_bpm: Optional[float] = None

    @property
    def samples(self) -> List[BeatSample]:
        return list(self._samples)

    @property
    def seed_bpm(self) -> Optional[float]:
        return self._seed_bpm

    def reset(self, initial_bpm: Optional[float] = None):
        """
        Discard collected samples, optionally seeding a marker tempo.

        Args:
            initial_bpm: Tempo from a ``!bpm`` marker; ignored unless positive
        """
        self._samples.clear()
        if initial_bpm is not None and initial_bpm > 0:
            self._seed_bpm = float(initial_bpm)
            logger.debug("Reset beat samples with seed tempo", seed_bpm=self._seed_bpm)
        else:
            self._seed_bpm = None
            logger.debug("Reset beat samples")

    def add_sample(self, position_seconds: float, beat_position: float):
        """Append a sample, evicting the oldest when the window is full."""
        self._samples.append(
            BeatSample(
                position_seconds=position_seconds,
                beat_position=beat_position,
                timestamp=time.monotonic(),
            )
        )

    def estimate(self, default_bpm: float = 120.0) -> float:
        """
        Estimate the current tempo.

        Precedence: rate between the two buffered samples, then the rate
        implied by a single sample, then the seed tempo, then
        ``default_bpm``.

        Args:
            default_bpm: Returned when nothing better is available

        Returns:
            Tempo in beats per minute
        """
        if len(self._samples) >= 2:
            oldest, newest = self._samples[0], self._samples[-1]
            bpm = _rate_to_bpm(
                newest.beat_position - oldest.beat_position,
                newest.position_seconds - oldest.position_seconds,
            )
            if bpm is not None:
                return bpm
            logger.debug("Two-sample tempo implausible, falling back")
        elif len(self._samples) == 1:
            sample = self._samples[0]
            bpm = _rate_to_bpm(sample.beat_position, sample.position_seconds)
            if bpm is not None:
                return bpm
            logger.debug("Single-sample tempo implausible, falling back")

        if self._seed_bpm is not None and self._seed_bpm > 0:
            return self._seed_bpm
        return default_bpm
