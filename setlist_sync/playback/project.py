"""
Project identity tracking.

REAPER has no stable project id of its own, so one is kept in the
project's extended state (``ReaperControl/ProjectId``). Setlists are
stored per project id and reloaded whenever the open project changes.
"""

import uuid
from typing import Optional

import structlog

from setlist_sync.catalog.markers import MarkerCatalog
from setlist_sync.catalog.regions import RegionCatalog
from setlist_sync.catalog.setlists import SetlistCatalog
from setlist_sync.events import (
    CONNECTIVITY_RESTORED,
    PLAYBACK_STATE_CHANGED,
    PROJECT_CHANGED,
    SETLISTS_CHANGED,
    EventBus,
)
from setlist_sync.storage.setlist_store import SetlistStore
from setlist_sync.transport.client import ReaperWebClient
from setlist_sync.transport.state import PlaybackState, PlaybackStateStore
from setlist_sync.utils.periodic import PeriodicTask

logger = structlog.get_logger()

EXT_STATE_SECTION = "ReaperControl"
EXT_STATE_PROJECT_KEY = "ProjectId"


class ProjectTracker:
    """
    Follows the open REAPER project and keeps catalogs in step with it.

    Args:
        client: REAPER client
        store: Shared playback state
        regions: Region catalog
        markers: Marker catalog
        setlists: Setlist catalog
        setlist_store: Persistence backend
        events: Event bus (the tracker subscribes to it)
        interval: Project poll interval in seconds
    """

    def __init__(
        self,
        client: ReaperWebClient,
        store: PlaybackStateStore,
        regions: RegionCatalog,
        markers: MarkerCatalog,
        setlists: SetlistCatalog,
        setlist_store: SetlistStore,
        events: EventBus,
        interval: float = 2.0,
    ):
        self.client = client
        self.store = store
        self.regions = regions
        self.markers = markers
        self.setlists = setlists
        self.setlist_store = setlist_store
        self.events = events
        self.project_id: Optional[str] = None
        self._loading = False
        self._saved_selection: Optional[str] = None
        self.task = PeriodicTask("project-poll", interval, self.refresh)
        self._subscriptions = [
            events.subscribe(SETLISTS_CHANGED, self._on_setlists_changed),
            events.subscribe(PLAYBACK_STATE_CHANGED, self._on_playback_state_changed),
            events.subscribe(CONNECTIVITY_RESTORED, self._on_reconnected),
        ]

    def start(self):
        self.task.start()

    async def stop(self):
        await self.task.stop()

    def close(self):
        """Drop event subscriptions."""
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []

    async def resolve_project_id(self) -> str:
        """
        Read the project id from REAPER, creating one if the project has none.

        Returns:
            The project id
        """
        project_id = await self.client.get_project_extended_state(EXT_STATE_SECTION, EXT_STATE_PROJECT_KEY)
        project_id = project_id.strip()
        if not project_id:
            project_id = str(uuid.uuid4())
            await self.client.set_project_extended_state(EXT_STATE_SECTION, EXT_STATE_PROJECT_KEY, project_id)
            logger.info("Assigned new project id", project_id=project_id)
        return project_id

    async def refresh(self) -> bool:
        """
        Detect project changes and refresh regions and markers.

        Returns:
            True if the open project changed
        """
        project_id = await self.resolve_project_id()
        self.regions.replace(await self.client.get_regions())
        self.markers.replace(await self.client.get_markers())

        if project_id == self.project_id:
            return False

        previous = self.project_id
        self.project_id = project_id
        logger.info("Project changed", old_project_id=previous, new_project_id=project_id)
        await self._load_setlists(project_id)
        self.events.emit(PROJECT_CHANGED, project_id)
        return True

    async def _load_setlists(self, project_id: str):
        loaded = await self.setlist_store.load(project_id)
        self._loading = True
        try:
            self.setlists.replace(project_id, loaded.setlists)
            self._saved_selection = loaded.selected_setlist_id
            self.store.set_current_region(None)
            self.store.set_selected_setlist(loaded.selected_setlist_id)
        finally:
            self._loading = False

    async def save(self):
        """Persist the current project's setlists and selection."""
        if self.project_id is None:
            return
        selected = self.store.state.selected_setlist_id
        self._saved_selection = selected
        try:
            await self.setlist_store.save(self.project_id, self.setlists.all(), selected)
        except Exception as e:
            logger.error("Failed to save setlists", project_id=self.project_id, error=str(e))

    def _on_setlists_changed(self, _setlists):
        if self._loading or self.project_id is None:
            return None
        return self.save()

    def _on_playback_state_changed(self, state: PlaybackState):
        if self._loading or self.project_id is None:
            return None
        if state.selected_setlist_id == self._saved_selection:
            return None
        self._saved_selection = state.selected_setlist_id
        return self.save()

    def _on_reconnected(self, _payload):
        """Start from defaults and force a project reload on the next poll."""
        self.project_id = None
        self.store.reset()
