"""
Transport state reconciliation.

Polls REAPER at a low rate and folds what it reports into the shared
:class:`PlaybackState`. Fields REAPER does not report (user toggles,
selected setlist, and the region id when the cursor is between regions)
are carried forward.
"""

from typing import Optional

import structlog

from setlist_sync.catalog.regions import RegionCatalog
from setlist_sync.errors import TransientIOError
from setlist_sync.events import CONNECTIVITY_DEGRADED, CONNECTIVITY_RESTORED, EventBus
from setlist_sync.tempo import BpmEstimator
from setlist_sync.transport.client import ReaperWebClient
from setlist_sync.transport.state import UNSET, PlaybackStatePatch, PlaybackStateStore
from setlist_sync.utils.periodic import PeriodicTask

logger = structlog.get_logger()


class TransportStateReconciler:
    """
    Keeps :class:`PlaybackStateStore` in step with REAPER.

    Args:
        client: REAPER client
        store: Shared playback state
        regions: Region catalog used to find the region under the cursor
        estimator: Tempo estimator fed with BEATPOS samples
        events: Bus for connectivity notifications
        interval: Poll interval in seconds
        failure_threshold: Consecutive failed polls before reporting degraded
        default_bpm: Tempo used when nothing better is known
    """

    def __init__(
        self,
        client: ReaperWebClient,
        store: PlaybackStateStore,
        regions: RegionCatalog,
        estimator: BpmEstimator,
        events: Optional[EventBus] = None,
        interval: float = 1.0,
        failure_threshold: int = 3,
        default_bpm: float = 120.0,
    ):
        self.client = client
        self.store = store
        self.regions = regions
        self.estimator = estimator
        self.events = events
        self.failure_threshold = failure_threshold
        self.default_bpm = default_bpm
        self.consecutive_failures = 0
        self.degraded = False
        self.task = PeriodicTask("transport-poll", interval, self.poll_once)

    def start(self):
        self.task.start()

    async def stop(self):
        await self.task.stop()

    async def poll_once(self) -> bool:
        """
        Run one reconciliation pass.

        Never raises (except cancellation): on failure the previous state
        is kept and the failure counter advances.

        Returns:
            True if REAPER answered and the state was reconciled
        """
        try:
            patch = await self._read_patch()
        except Exception as e:
            self._record_failure(e)
            return False

        self._record_success()
        self.store.apply(patch)
        return True

    async def _read_patch(self) -> PlaybackStatePatch:
        snapshot = await self.client.get_transport_state()

        time_signature = UNSET
        try:
            beat_position = await self.client.get_beat_position()
        except TransientIOError as e:
            logger.debug("BEATPOS unavailable, keeping previous tempo evidence", error=str(e))
            beat_position = None

        if beat_position is not None:
            time_signature = beat_position.time_signature
            if snapshot.is_playing:
                self.estimator.add_sample(beat_position.position_seconds, beat_position.full_beats)

        region = self.regions.region_at(snapshot.position)
        return PlaybackStatePatch(
            is_playing=snapshot.is_playing,
            position=snapshot.position,
            current_region_id=region.id if region is not None else UNSET,
            bpm=self.estimator.estimate(self.default_bpm),
            time_signature=time_signature,
        )

    def _record_failure(self, error: Exception):
        self.consecutive_failures += 1
        logger.warning(
            "Transport poll failed",
            consecutive_failures=self.consecutive_failures,
            error=str(error),
        )
        if not self.degraded and self.consecutive_failures >= self.failure_threshold:
            self.degraded = True
            logger.error("REAPER connectivity degraded", consecutive_failures=self.consecutive_failures)
            if self.events is not None:
                self.events.emit(
                    CONNECTIVITY_DEGRADED,
                    {"consecutiveFailures": self.consecutive_failures, "error": str(error)},
                )

    def _record_success(self):
        if self.degraded:
            logger.info("REAPER connectivity restored", failed_polls=self.consecutive_failures)
            if self.events is not None:
                self.events.emit(CONNECTIVITY_RESTORED, {"failedPolls": self.consecutive_failures})
        self.degraded = False
        self.consecutive_failures = 0
