"""
Automatic end-of-region transitions.

The engine watches the playback state at ~15Hz while a setlist is
selected and playing. When the cursor approaches the end of the current
region it either pauses (hard stop, end of setlist) or moves on to the
next setlist item. The same seek/play routine serves manual navigation.

Mutual exclusion is a single ``is_transitioning`` flag plus a cooldown
timestamp. There is no queue: a request arriving mid-transition fails
fast.
"""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

import structlog

from setlist_sync.catalog.markers import MarkerCatalog
from setlist_sync.catalog.models import Region
from setlist_sync.catalog.regions import RegionCatalog, ids_match
from setlist_sync.catalog.setlists import SetlistCatalog
from setlist_sync.events import TRANSITION_FAILED, EventBus
from setlist_sync.tempo import BpmEstimator, CountInCalculator
from setlist_sync.transport.client import ReaperWebClient
from setlist_sync.transport.state import PlaybackState, PlaybackStateStore
from setlist_sync.utils.periodic import PeriodicTask

logger = structlog.get_logger()


class EngineState(Enum):
    IDLE = "idle"
    ARMED_WATCHING = "armed_watching"
    TRANSITIONING = "transitioning"


class RegionEndAction(Enum):
    """What to do when the current region ends."""
    ADVANCE = "advance"
    HARD_STOP = "hard_stop"
    END_OF_SETLIST = "end_of_setlist"


@dataclass(frozen=True)
class TransitionTiming:
    """Timing knobs of the engine, all in seconds unless noted."""
    watch_interval: float = 0.067
    trigger_window_before: float = 0.6
    trigger_window_after: float = 0.1
    cooldown: float = 1.0
    settle_delay: float = 0.15
    watch_restart_delay: float = 0.1
    seek_epsilon: float = 0.001
    count_in_bars: int = 2
    count_in_default_bpm: float = 90.0

    @classmethod
    def from_settings(cls, settings) -> "TransitionTiming":
        return cls(
            watch_interval=settings.watch_interval,
            trigger_window_before=settings.trigger_window_before,
            trigger_window_after=settings.trigger_window_after,
            cooldown=settings.transition_cooldown,
            settle_delay=settings.settle_delay,
            watch_restart_delay=settings.watch_restart_delay,
            seek_epsilon=settings.seek_epsilon,
            count_in_bars=settings.count_in_bars,
            count_in_default_bpm=settings.count_in_default_bpm,
        )


class TransitionEngine:
    """
    End-of-region detection and seek/play choreography.

    Args:
        client: REAPER client
        store: Shared playback state
        regions: Region catalog
        markers: Marker catalog (directives)
        setlists: Setlist catalog
        estimator: Tempo estimator, re-seeded on every region change
        count_in: Count-in calculator
        events: Bus for ``transition_failed`` notifications
        timing: Timing knobs
        companion_tasks: Other loops (transport poll) suspended during a transition
        clock: Monotonic clock used for the cooldown
    """

    def __init__(
        self,
        client: ReaperWebClient,
        store: PlaybackStateStore,
        regions: RegionCatalog,
        markers: MarkerCatalog,
        setlists: SetlistCatalog,
        estimator: BpmEstimator,
        count_in: CountInCalculator,
        events: Optional[EventBus] = None,
        timing: Optional[TransitionTiming] = None,
        companion_tasks: Sequence[PeriodicTask] = (),
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.store = store
        self.regions = regions
        self.markers = markers
        self.setlists = setlists
        self.estimator = estimator
        self.count_in = count_in
        self.events = events
        self.timing = timing or TransitionTiming()
        self.companion_tasks = list(companion_tasks)
        self._clock = clock
        self._is_transitioning = False
        self._last_transition_at: Optional[float] = None
        # Region seen by the previous watch tick
        self._watched_region: Optional[Region] = None
        self.watcher = PeriodicTask("end-of-region-watch", self.timing.watch_interval, self.check_end_of_region)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_transitioning(self) -> bool:
        return self._is_transitioning

    @property
    def state(self) -> EngineState:
        if self._is_transitioning:
            return EngineState.TRANSITIONING
        playback = self.store.state
        if playback.selected_setlist_id and playback.is_playing:
            return EngineState.ARMED_WATCHING
        return EngineState.IDLE

    def in_cooldown(self) -> bool:
        if self._last_transition_at is None:
            return False
        return self._clock() - self._last_transition_at < self.timing.cooldown

    def in_trigger_window(self, time_to_end: float) -> bool:
        return -self.timing.trigger_window_after <= time_to_end < self.timing.trigger_window_before

    def current_region(self, playback: Optional[PlaybackState] = None) -> Optional[Region]:
        playback = playback or self.store.state
        if playback.current_region_id is not None:
            region = self.regions.find(playback.current_region_id)
            if region is not None:
                return region
        return self.regions.region_at(playback.position)

    # ------------------------------------------------------------------
    # Guard
    # ------------------------------------------------------------------

    def _begin_transition(self) -> bool:
        """Take the guard and suspend both loops; False if already held."""
        if self._is_transitioning:
            return False
        self._is_transitioning = True
        self.watcher.pause()
        for task in self.companion_tasks:
            task.pause()
        return True

    def _end_transition(self):
        self._last_transition_at = self._clock()
        self._is_transitioning = False
        delay = self.timing.watch_restart_delay
        self.watcher.resume(delay)
        for task in self.companion_tasks:
            task.resume(delay)

    # ------------------------------------------------------------------
    # Watch loop
    # ------------------------------------------------------------------

    def start_watching(self):
        self.watcher.start()

    async def stop_watching(self):
        await self.watcher.stop()

    def region_end_action(self, region: Region, setlist_id: str) -> Optional[RegionEndAction]:
        """
        Decide what happens when ``region`` ends inside ``setlist_id``.

        Returns:
            The action, or None when the region is not part of the setlist
        """
        if self.markers.is_hard_stop(region):
            return RegionEndAction.HARD_STOP
        if self.setlists.index_of_region(setlist_id, region.id) is None:
            return None
        if self.setlists.next_item(setlist_id, region.id) is None:
            return RegionEndAction.END_OF_SETLIST
        return RegionEndAction.ADVANCE

    def _region_to_watch(self, playback: PlaybackState) -> Optional[Region]:
        """
        Region whose end this tick should check.

        The transport poll already reports the region under the cursor, so
        when playback has just crossed a boundary the region that ended is
        the one seen by the previous tick.
        """
        region = self.current_region(playback)
        previous = self._watched_region
        self._watched_region = region
        if previous is None or region is None or ids_match(previous.id, region.id):
            return region
        if self.in_trigger_window(self.markers.effective_end(previous) - playback.position):
            return previous
        return region

    async def check_end_of_region(self) -> bool:
        """
        One watch tick.

        Returns:
            True if this tick triggered a transition (or a stop)
        """
        playback = self.store.state
        if not playback.is_playing or not playback.selected_setlist_id:
            self._watched_region = None
            return False
        if self._is_transitioning or self.in_cooldown():
            return False

        region = self._region_to_watch(playback)
        if region is None:
            return False

        time_to_end = self.markers.effective_end(region) - playback.position
        if not self.in_trigger_window(time_to_end):
            return False

        action = self.region_end_action(region, playback.selected_setlist_id)
        if action is None:
            logger.debug("Current region is not in the selected setlist", region_id=region.id)
            return False

        if not self._begin_transition():
            return False
        self._last_transition_at = self._clock()
        logger.info(
            "End of region reached",
            region_id=region.id,
            region_name=region.name,
            time_to_end=round(time_to_end, 3),
            action=action.value,
        )
        try:
            if action is RegionEndAction.ADVANCE:
                return await self._advance(region, playback)
            if action is RegionEndAction.HARD_STOP:
                logger.info("Hard stop at region end", region_id=region.id)
            else:
                logger.info("End of setlist reached", setlist_id=playback.selected_setlist_id)
            await self.client.pause()
            return True
        except Exception as e:
            logger.error("Region end handling failed", region_id=region.id, error=str(e))
            self._notify_failure(region, str(e))
            return False
        finally:
            self._end_transition()

    async def _advance(self, region: Region, playback: PlaybackState) -> bool:
        item = self.setlists.next_item(playback.selected_setlist_id, region.id)
        target = self.regions.find(item.region_id) if item is not None else None
        if target is None:
            logger.warning("Next setlist item has no region", region_id=item.region_id if item else None)
            self._notify_failure(region, "next setlist item has no matching region")
            return False
        return await self._seek_and_play(
            target,
            autoplay=True,
            count_in=playback.count_in_enabled,
            source=region,
        )

    # ------------------------------------------------------------------
    # Seek and play
    # ------------------------------------------------------------------

    async def seek_to_region_and_play(
        self,
        region: Region,
        autoplay: Optional[bool] = None,
        count_in: Optional[bool] = None,
        direct: bool = False,
    ) -> bool:
        """
        Move the cursor into ``region`` and resume playback if appropriate.

        Args:
            region: Target region
            autoplay: Force autoplay on/off; None uses the live setting
            count_in: Force count-in on/off; None means no count-in
            direct: True for automatic transitions (allows skipping the seek)

        Returns:
            True on success, False if busy or a DAW command failed
        """
        if not self._begin_transition():
            logger.info("Transition in progress, rejecting seek", region_id=region.id)
            return False
        source = self.current_region() if direct else None
        try:
            return await self._seek_and_play(region, autoplay=autoplay, count_in=count_in, source=source)
        finally:
            self._end_transition()

    def _is_redundant_seek(self, source: Optional[Region], region: Region, playback: PlaybackState) -> bool:
        """REAPER already played from ``source`` straight into ``region``."""
        if source is None or not playback.is_playing:
            return False
        successor = self.regions.successor_in_timeline(source)
        return (
            successor is not None
            and ids_match(successor.id, region.id)
            and region.contains(playback.position)
        )

    async def _seek_and_play(
        self,
        region: Region,
        autoplay: Optional[bool],
        count_in: Optional[bool],
        source: Optional[Region] = None,
    ) -> bool:
        playback = self.store.state
        is_playing = playback.is_playing
        autoplay_enabled = autoplay if autoplay is not None else playback.autoplay_enabled
        count_in_enabled = bool(count_in)

        self.estimator.reset(self.markers.bpm_for_region(region))

        if self._is_redundant_seek(source, region, playback):
            logger.info("Already playing into next region, skipping seek", region_id=region.id)
            self.store.set_current_region(region.id)
            self._watched_region = region
            return True

        try:
            if is_playing:
                await self.client.pause()
                await asyncio.sleep(self.timing.settle_delay)

            if count_in_enabled:
                pre_roll = await self.count_in.bars_to_seconds(
                    self.timing.count_in_bars, self.timing.count_in_default_bpm
                )
                target_position = max(0.0, region.start - pre_roll)
            else:
                target_position = region.start + self.timing.seek_epsilon

            await self.client.seek(target_position)
            self.store.set_current_region(region.id)
            self._watched_region = region

            if (is_playing or autoplay is True) and autoplay_enabled:
                await asyncio.sleep(self.timing.settle_delay)
                if count_in_enabled:
                    await self.client.play_with_count_in()
                else:
                    await self.client.play()

            logger.info(
                "Moved to region",
                region_id=region.id,
                region_name=region.name,
                position=round(target_position, 3),
                count_in=count_in_enabled,
                resumed=(is_playing or autoplay is True) and autoplay_enabled,
            )
            return True
        except Exception as e:
            logger.error("Seek to region failed", region_id=region.id, error=str(e))
            self._notify_failure(region, str(e))
            return False

    def _notify_failure(self, region: Optional[Region], reason: str):
        if self.events is not None:
            self.events.emit(
                TRANSITION_FAILED,
                {"regionId": region.id if region is not None else None, "reason": reason},
            )
