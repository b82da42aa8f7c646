"""Tempo estimation and count-in timing"""

from setlist_sync.tempo.bpm import BeatSample, BpmEstimator
from setlist_sync.tempo.count_in import (
    COMMON_TIME,
    CountInCalculator,
    TimeSignature,
    bars_duration,
    estimator_bpm_source,
)

__all__ = [
    "BeatSample",
    "BpmEstimator",
    "COMMON_TIME",
    "CountInCalculator",
    "TimeSignature",
    "bars_duration",
    "estimator_bpm_source",
]
