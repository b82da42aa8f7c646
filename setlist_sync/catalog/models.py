"""
Timeline and setlist entities.

Serialized forms use camelCase keys so stored setlist documents stay
compatible with existing installations.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Region:
    """A named time range on the project timeline (one song)."""
    id: str
    name: str
    start: float
    end: float
    color: Optional[str] = None

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError(f"Region {self.id} must end after it starts")

    @property
    def duration(self) -> float:
        return self.end - self.start

    def contains(self, position: float) -> bool:
        return self.start <= position < self.end

    def to_dict(self) -> Dict[str, Any]:
        data = {"id": self.id, "name": self.name, "start": self.start, "end": self.end}
        if self.color is not None:
            data["color"] = self.color
        return data


@dataclass(frozen=True)
class Marker:
    id: str
    name: str
    position: float
    color: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"id": self.id, "name": self.name, "position": self.position}
        if self.color is not None:
            data["color"] = self.color
        return data


@dataclass
class SetlistItem:
    region_id: str
    name: str
    position: int = 0
    id: str = field(default_factory=new_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "regionId": self.region_id,
            "name": self.name,
            "position": self.position,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SetlistItem":
        return cls(
            id=str(data.get("id") or new_id()),
            region_id=str(data["regionId"]),
            name=data.get("name", ""),
            position=int(data.get("position", 0)),
        )


@dataclass
class Setlist:
    """
    Ordered playlist of regions owned by one project.

    ``items`` is kept sorted with ``item.position == index``.
    """
    name: str
    project_id: str
    items: List[SetlistItem] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    def renumber(self):
        """Rewrite item positions as 0..n-1 in list order."""
        for index, item in enumerate(self.items):
            item.position = index

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "projectId": self.project_id,
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], project_id: Optional[str] = None) -> "Setlist":
        items = [SetlistItem.from_dict(item) for item in data.get("items", [])]
        items.sort(key=lambda item: item.position)
        setlist = cls(
            id=str(data.get("id") or new_id()),
            name=data.get("name", ""),
            project_id=str(data.get("projectId") or project_id or ""),
            items=items,
        )
        setlist.renumber()
        return setlist
