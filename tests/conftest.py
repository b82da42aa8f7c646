"""
Shared fixtures: an in-memory REAPER client and wired components with
all delays set to zero.
"""

from typing import Dict, List, Optional, Tuple

import pytest

from setlist_sync.catalog import MarkerCatalog, Region, RegionCatalog, SetlistCatalog
from setlist_sync.errors import TransientIOError
from setlist_sync.events import EventBus
from setlist_sync.playback import NavigationFacade, TransitionEngine, TransitionTiming
from setlist_sync.tempo import BpmEstimator, CountInCalculator, TimeSignature, estimator_bpm_source
from setlist_sync.transport import PlaybackStateStore
from setlist_sync.transport.parsing import BeatPosition, TransportSnapshot


class FakeDawClient:
    """Scripted stand-in for ReaperWebClient that records every command."""

    def __init__(self):
        self.playstate = 0
        self.position = 0.0
        self.beat_position: Optional[BeatPosition] = None
        self.time_signature = TimeSignature(4, 4)
        self.regions: List[Region] = []
        self.markers = []
        self.ext_state: Dict[Tuple[str, str], str] = {}
        self.commands: List = []
        self.failing = set()

    def _call(self, name: str):
        if name in self.failing:
            raise TransientIOError(f"{name} failed")

    async def get_transport_state(self) -> TransportSnapshot:
        self._call("get_transport_state")
        return TransportSnapshot(playstate=self.playstate, position=self.position)

    async def get_beat_position(self) -> Optional[BeatPosition]:
        self._call("get_beat_position")
        return self.beat_position

    async def get_time_signature(self) -> TimeSignature:
        self._call("get_time_signature")
        return self.time_signature

    async def get_regions(self) -> List[Region]:
        self._call("get_regions")
        return list(self.regions)

    async def get_markers(self):
        self._call("get_markers")
        return list(self.markers)

    async def get_project_extended_state(self, section: str, key: str) -> str:
        self._call("get_project_extended_state")
        return self.ext_state.get((section, key), "")

    async def set_project_extended_state(self, section: str, key: str, value: str):
        self._call("set_project_extended_state")
        self.ext_state[(section, key)] = value

    async def seek(self, position: float):
        self._call("seek")
        self.commands.append(("seek", position))
        self.position = position

    async def play(self):
        self._call("play")
        self.commands.append("play")
        self.playstate = 1

    async def pause(self):
        self._call("pause")
        self.commands.append("pause")
        self.playstate = 2

    async def record(self):
        self._call("record")
        self.commands.append("record")
        self.playstate = 5

    async def stop_recording(self):
        self._call("stop_recording")
        self.commands.append("stop_recording")
        self.playstate = 0

    async def play_with_count_in(self):
        self._call("play_with_count_in")
        self.commands.append("play_with_count_in")
        self.playstate = 1

    async def close(self):
        pass

    @property
    def command_names(self) -> List[str]:
        return [c[0] if isinstance(c, tuple) else c for c in self.commands]

    @property
    def seeks(self) -> List[float]:
        return [c[1] for c in self.commands if isinstance(c, tuple) and c[0] == "seek"]


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


ZERO_DELAYS = TransitionTiming(settle_delay=0.0, watch_restart_delay=0.0)


@pytest.fixture
def events():
    return EventBus()


@pytest.fixture
def client():
    return FakeDawClient()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(events):
    return PlaybackStateStore(events)


@pytest.fixture
def regions(events):
    catalog = RegionCatalog(events)
    catalog.replace([
        Region(id="1", name="Intro", start=0.0, end=10.0),
        Region(id="2", name="Song A", start=10.0, end=20.0),
        Region(id="3", name="Song B", start=20.0, end=30.0),
        Region(id="4", name="Song C", start=35.0, end=50.0),
    ])
    return catalog


@pytest.fixture
def markers(events):
    return MarkerCatalog(events)


@pytest.fixture
def setlists(events):
    catalog = SetlistCatalog(events)
    catalog.replace("project-1", [])
    return catalog


@pytest.fixture
def setlist(setlists, regions):
    """Setlist playing Song A then Song B."""
    created = setlists.create("Friday")
    setlists.add_item(created.id, regions.find("2"))
    setlists.add_item(created.id, regions.find("3"))
    return created


@pytest.fixture
def estimator():
    return BpmEstimator()


@pytest.fixture
def engine(client, store, regions, markers, setlists, estimator, events, clock):
    count_in = CountInCalculator(client.get_time_signature, estimator_bpm_source(estimator))
    return TransitionEngine(
        client,
        store,
        regions,
        markers,
        setlists,
        estimator,
        count_in,
        events=events,
        timing=ZERO_DELAYS,
        clock=clock,
    )


@pytest.fixture
def facade(client, store, regions, markers, setlists, engine):
    return NavigationFacade(client, store, regions, markers, setlists, engine)
