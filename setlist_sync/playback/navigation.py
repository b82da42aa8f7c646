"""
Public navigation surface used by the UI and MIDI dispatch.

Every operation returns a bool and never raises: failures are logged
and reported as ``False`` so callers can leave their controls as they
were.
"""

from typing import Any, Optional

import structlog

from setlist_sync.catalog.markers import MarkerCatalog
from setlist_sync.catalog.models import Region
from setlist_sync.catalog.regions import RegionCatalog
from setlist_sync.catalog.setlists import SetlistCatalog
from setlist_sync.playback.transition import TransitionEngine
from setlist_sync.transport.client import ReaperWebClient
from setlist_sync.transport.reconciler import TransportStateReconciler
from setlist_sync.transport.state import PlaybackStateStore

logger = structlog.get_logger()


class NavigationFacade:
    """
    Setlist-aware navigation on top of :class:`TransitionEngine`.

    Args:
        client: REAPER client
        store: Shared playback state
        regions: Region catalog
        markers: Marker catalog
        setlists: Setlist catalog
        engine: Transition engine executing seeks
        reconciler: When given, polled right after a transport command so
            the new state is visible without waiting for the next tick
    """

    def __init__(
        self,
        client: ReaperWebClient,
        store: PlaybackStateStore,
        regions: RegionCatalog,
        markers: MarkerCatalog,
        setlists: SetlistCatalog,
        engine: TransitionEngine,
        reconciler: Optional[TransportStateReconciler] = None,
    ):
        self.client = client
        self.store = store
        self.regions = regions
        self.markers = markers
        self.setlists = setlists
        self.engine = engine
        self.reconciler = reconciler

    def _busy(self, operation: str) -> bool:
        if self.engine.is_transitioning:
            logger.info("Transition in progress, rejecting navigation", operation=operation)
            return True
        return False

    async def _sync(self):
        if self.reconciler is not None:
            await self.reconciler.poll_once()

    # ------------------------------------------------------------------
    # Region resolution
    # ------------------------------------------------------------------

    def _step_target(self, forward: bool) -> Optional[Region]:
        state = self.store.state
        setlist_id = state.selected_setlist_id
        current_id = state.current_region_id

        if setlist_id:
            if forward:
                item = self.setlists.next_item(setlist_id, current_id)
            else:
                item = self.setlists.previous_item(setlist_id, current_id)
            if item is None:
                logger.info(
                    "No setlist item in that direction",
                    setlist_id=setlist_id,
                    region_id=current_id,
                    forward=forward,
                )
                return None
            region = self.regions.find(item.region_id)
            if region is None:
                logger.warning("Setlist item references a missing region", region_id=item.region_id)
            return region

        if current_id is not None and self.regions.find(current_id) is not None:
            if forward:
                return self.regions.next_after(current_id)
            return self.regions.previous_before(current_id)

        # Cursor outside every region: step relative to the position
        regions = self.regions.all()
        position = state.position
        if forward:
            return next((r for r in regions if r.start > position), None)
        before = [r for r in regions if r.start < position]
        return before[-1] if before else None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def next(self) -> bool:
        """Go to the next setlist item (or next region without a setlist)."""
        if self._busy("next"):
            return False
        try:
            region = self._step_target(forward=True)
            if region is None:
                return False
            return await self.engine.seek_to_region_and_play(region, count_in=False)
        except Exception as e:
            logger.error("Navigate to next failed", error=str(e))
            return False

    async def previous(self) -> bool:
        if self._busy("previous"):
            return False
        try:
            region = self._step_target(forward=False)
            if region is None:
                return False
            return await self.engine.seek_to_region_and_play(region, count_in=False)
        except Exception as e:
            logger.error("Navigate to previous failed", error=str(e))
            return False

    async def seek_to_region(
        self,
        region_id: Any,
        autoplay: Optional[bool] = None,
        count_in: Optional[bool] = None,
    ) -> bool:
        if self._busy("seek_to_region"):
            return False
        region = self.regions.find(region_id)
        if region is None:
            logger.warning("Region not found", region_id=region_id)
            return False
        try:
            return await self.engine.seek_to_region_and_play(region, autoplay=autoplay, count_in=count_in)
        except Exception as e:
            logger.error("Seek to region failed", region_id=region_id, error=str(e))
            return False

    async def seek_to_current_region_start(self) -> bool:
        if self._busy("seek_to_current_region_start"):
            return False
        region = self.engine.current_region()
        if region is None:
            logger.info("No region under the cursor")
            return False
        try:
            return await self.engine.seek_to_region_and_play(region, count_in=False)
        except Exception as e:
            logger.error("Seek to region start failed", region_id=region.id, error=str(e))
            return False

    async def toggle_play(self) -> bool:
        """
        Play/pause with setlist awareness.

        Outside any region with a setlist selected, playback starts at the
        first setlist item. With recording armed, "play" starts recording.
        """
        if self._busy("toggle_play"):
            return False
        state = self.store.state
        try:
            if state.current_region_id is None and state.selected_setlist_id:
                item = self.setlists.first_item(state.selected_setlist_id)
                region = self.regions.find(item.region_id) if item is not None else None
                if region is not None:
                    logger.info("Starting setlist from first item", region_id=region.id)
                    return await self.engine.seek_to_region_and_play(region, autoplay=True)

            if state.is_playing:
                await self.client.pause()
            elif state.is_recording_armed:
                await self.client.record()
            else:
                await self.client.play()
            await self._sync()
            return True
        except Exception as e:
            logger.error("Toggle play failed", error=str(e))
            return False

    async def pause(self) -> bool:
        if self._busy("pause"):
            return False
        if not self.store.state.is_playing:
            logger.debug("Already paused")
            return True
        try:
            await self.client.pause()
            await self._sync()
            return True
        except Exception as e:
            logger.error("Pause failed", error=str(e))
            return False

    async def select_setlist(self, setlist_id: Optional[str]) -> bool:
        """
        Select a setlist (None clears the selection).

        The cursor moves to the first item and playback is left paused.
        """
        if self._busy("select_setlist"):
            return False
        if setlist_id is None:
            self.store.set_selected_setlist(None)
            logger.info("Setlist selection cleared")
            return True

        setlist = self.setlists.get(setlist_id)
        if setlist is None:
            logger.warning("Setlist not found", setlist_id=setlist_id)
            return False

        self.store.set_selected_setlist(setlist.id)
        logger.info("Setlist selected", setlist_id=setlist.id, name=setlist.name)

        item = self.setlists.first_item(setlist.id)
        if item is None:
            return True
        region = self.regions.find(item.region_id)
        if region is None:
            logger.warning("First setlist item references a missing region", region_id=item.region_id)
            return True
        try:
            return await self.engine.seek_to_region_and_play(region, autoplay=False, count_in=False)
        except Exception as e:
            logger.error("Seek to first setlist item failed", setlist_id=setlist.id, error=str(e))
            return False

    async def toggle_autoplay(self, enabled: Optional[bool] = None) -> bool:
        if self._busy("toggle_autoplay"):
            return False
        value = (not self.store.state.autoplay_enabled) if enabled is None else enabled
        self.store.set_autoplay(value)
        logger.info("Autoplay toggled", enabled=value)
        return True

    async def toggle_count_in(self, enabled: Optional[bool] = None) -> bool:
        if self._busy("toggle_count_in"):
            return False
        value = (not self.store.state.count_in_enabled) if enabled is None else enabled
        self.store.set_count_in(value)
        logger.info("Count-in toggled", enabled=value)
        return True

    async def set_recording_armed(self, enabled: bool) -> bool:
        """Arm or disarm recording; disarming stops a running recording."""
        if self._busy("set_recording_armed"):
            return False
        was_armed = self.store.state.is_recording_armed
        self.store.set_recording_armed(enabled)
        if was_armed and not enabled:
            try:
                await self.client.stop_recording()
                await self._sync()
            except Exception as e:
                logger.error("Stopping recording failed", error=str(e))
                return False
        return True

    async def refresh_regions(self) -> bool:
        """Re-read regions and markers from REAPER."""
        if self._busy("refresh_regions"):
            return False
        try:
            self.regions.replace(await self.client.get_regions())
            self.markers.replace(await self.client.get_markers())
            return True
        except Exception as e:
            logger.error("Region refresh failed", error=str(e))
            return False
