"""
Setlist catalog for the current project.

Every mutation leaves item positions dense and zero-based, and notifies
``setlists_changed`` subscribers (the project tracker persists on that
event).
"""

from typing import Any, Dict, List, Optional

import structlog

from setlist_sync.catalog.models import Region, Setlist, SetlistItem
from setlist_sync.catalog.regions import ids_match
from setlist_sync.errors import InvalidStateError, NotFoundError
from setlist_sync.events import SETLISTS_CHANGED, EventBus

logger = structlog.get_logger()


class SetlistCatalog:
    """Setlists owned by one project, keyed by id in insertion order."""

    def __init__(self, events: Optional[EventBus] = None):
        self._events = events
        self._setlists: Dict[str, Setlist] = {}
        self.project_id: Optional[str] = None

    def replace(self, project_id: Optional[str], setlists: List[Setlist]):
        """Swap in the setlists of ``project_id`` (used on project load)."""
        self.project_id = project_id
        self._setlists = {}
        for setlist in setlists:
            setlist.renumber()
            self._setlists[setlist.id] = setlist
        logger.info("Setlists loaded", project_id=project_id, count=len(self._setlists))
        self._notify()

    def all(self) -> List[Setlist]:
        return list(self._setlists.values())

    def get(self, setlist_id: Optional[str]) -> Optional[Setlist]:
        if setlist_id is None:
            return None
        return self._setlists.get(str(setlist_id))

    def _require(self, setlist_id: str) -> Setlist:
        setlist = self.get(setlist_id)
        if setlist is None:
            raise NotFoundError(f"Unknown setlist: {setlist_id}")
        return setlist

    def _notify(self):
        if self._events is not None:
            self._events.emit(SETLISTS_CHANGED, self.all())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, name: str) -> Setlist:
        if not self.project_id:
            raise InvalidStateError("No project loaded")
        setlist = Setlist(name=name, project_id=self.project_id)
        self._setlists[setlist.id] = setlist
        logger.info("Setlist created", setlist_id=setlist.id, name=name)
        self._notify()
        return setlist

    def rename(self, setlist_id: str, name: str) -> Setlist:
        setlist = self._require(setlist_id)
        setlist.name = name
        self._notify()
        return setlist

    def delete(self, setlist_id: str) -> bool:
        if self._setlists.pop(str(setlist_id), None) is None:
            return False
        logger.info("Setlist deleted", setlist_id=setlist_id)
        self._notify()
        return True

    def add_item(self, setlist_id: str, region: Region, position: Optional[int] = None) -> SetlistItem:
        """
        Add a region to a setlist.

        A region already present is not added twice; the existing item is
        returned unchanged.

        Args:
            setlist_id: Target setlist
            region: Region to add
            position: Insert index; appended when None

        Returns:
            The new (or already existing) item
        """
        setlist = self._require(setlist_id)
        for item in setlist.items:
            if ids_match(item.region_id, region.id):
                return item
        if position is None:
            position = len(setlist.items)
        if position < 0 or position > len(setlist.items):
            raise InvalidStateError(f"Position {position} out of range for setlist {setlist_id}")

        item = SetlistItem(region_id=str(region.id), name=region.name)
        setlist.items.insert(position, item)
        setlist.renumber()
        logger.info("Setlist item added", setlist_id=setlist_id, region_id=region.id, position=position)
        self._notify()
        return item

    def remove_item(self, setlist_id: str, item_id: str) -> bool:
        setlist = self._require(setlist_id)
        remaining = [item for item in setlist.items if item.id != item_id]
        if len(remaining) == len(setlist.items):
            return False
        setlist.items = remaining
        setlist.renumber()
        self._notify()
        return True

    def move_item(self, setlist_id: str, item_id: str, new_position: int):
        """
        Move an item to ``new_position`` and renumber every item.

        Raises:
            NotFoundError: unknown setlist or item
            InvalidStateError: position out of range; nothing is changed
        """
        setlist = self._require(setlist_id)
        index = next((i for i, item in enumerate(setlist.items) if item.id == item_id), None)
        if index is None:
            raise NotFoundError(f"Unknown item {item_id} in setlist {setlist_id}")
        if not 0 <= new_position < len(setlist.items):
            raise InvalidStateError(
                f"Position {new_position} out of range (0..{len(setlist.items) - 1})"
            )

        item = setlist.items.pop(index)
        setlist.items.insert(new_position, item)
        setlist.renumber()
        logger.info("Setlist item moved", setlist_id=setlist_id, item_id=item_id, position=new_position)
        self._notify()

    # ------------------------------------------------------------------
    # Navigation lookups
    # ------------------------------------------------------------------

    def first_item(self, setlist_id: Optional[str]) -> Optional[SetlistItem]:
        setlist = self.get(setlist_id)
        if setlist is None or not setlist.items:
            return None
        return setlist.items[0]

    def index_of_region(self, setlist_id: Optional[str], region_id: Any) -> Optional[int]:
        setlist = self.get(setlist_id)
        if setlist is None:
            return None
        for index, item in enumerate(setlist.items):
            if ids_match(item.region_id, region_id):
                return index
        return None

    def next_item(self, setlist_id: Optional[str], region_id: Any) -> Optional[SetlistItem]:
        """
        Item after the one playing ``region_id``.

        With no current region the first item is returned; a region that
        is not in the setlist, or the last item, yields None.
        """
        setlist = self.get(setlist_id)
        if setlist is None or not setlist.items:
            return None
        if region_id is None:
            return setlist.items[0]
        index = self.index_of_region(setlist_id, region_id)
        if index is None or index >= len(setlist.items) - 1:
            return None
        return setlist.items[index + 1]

    def previous_item(self, setlist_id: Optional[str], region_id: Any) -> Optional[SetlistItem]:
        setlist = self.get(setlist_id)
        if setlist is None or not setlist.items:
            return None
        if region_id is None:
            return setlist.items[0]
        index = self.index_of_region(setlist_id, region_id)
        if index is None or index == 0:
            return None
        return setlist.items[index - 1]
