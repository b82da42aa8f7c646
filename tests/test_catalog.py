"""
Tests for region, marker and setlist catalogs.
"""

import pytest

from setlist_sync.catalog import (
    Marker,
    MarkerCatalog,
    Region,
    RegionCatalog,
    Setlist,
    SetlistCatalog,
    extract_bpm,
    extract_length,
    has_hard_stop,
    ids_match,
    is_command_only,
)
from setlist_sync.errors import InvalidStateError, NotFoundError
from setlist_sync.events import REGIONS_CHANGED, SETLISTS_CHANGED


class TestIdsMatch:
    """Test id comparison across representations."""

    def test_string_and_number(self):
        """"3" and 3 refer to the same region."""
        assert ids_match("3", 3)
        assert ids_match(3.0, "3")

    def test_different_ids(self):
        """Distinct ids never match."""
        assert not ids_match("3", "4")
        assert not ids_match("abc", "3")

    def test_none_never_matches(self):
        """None does not match anything, not even None."""
        assert not ids_match(None, None)
        assert not ids_match("1", None)


class TestRegionCatalog:
    """Test region lookups."""

    def test_region_must_end_after_start(self):
        """Empty or inverted regions are rejected."""
        with pytest.raises(ValueError):
            Region(id="x", name="bad", start=5.0, end=5.0)

    def test_region_at_is_half_open(self, regions):
        """A shared boundary belongs to the later region."""
        assert regions.region_at(10.0).id == "2"
        assert regions.region_at(19.999).id == "2"
        assert regions.region_at(20.0).id == "3"
        assert regions.region_at(32.0) is None

    def test_all_sorted_by_start(self, events):
        """Regions are ordered by start time."""
        catalog = RegionCatalog(events)
        catalog.replace([
            Region(id="b", name="B", start=20.0, end=30.0),
            Region(id="a", name="A", start=0.0, end=10.0),
        ])
        assert [r.id for r in catalog.all()] == ["a", "b"]

    def test_find_tolerates_numeric_ids(self, regions):
        """Lookups accept numeric ids."""
        assert regions.find(3).name == "Song B"
        assert regions.find("99") is None

    def test_next_and_previous(self, regions):
        """Neighbours in start order; None at the ends."""
        assert regions.next_after("2").id == "3"
        assert regions.previous_before("2").id == "1"
        assert regions.next_after("4") is None
        assert regions.previous_before("1") is None

    def test_successor_in_timeline(self, regions):
        """The successor is the first region starting at or after the end."""
        assert regions.successor_in_timeline(regions.find("2")).id == "3"
        assert regions.successor_in_timeline(regions.find("3")).id == "4"
        assert regions.successor_in_timeline(regions.find("4")) is None

    def test_replace_notifies_only_on_change(self, events):
        """Refreshing with identical regions does not notify."""
        received = []
        events.subscribe(REGIONS_CHANGED, received.append)
        catalog = RegionCatalog(events)
        data = [Region(id="1", name="A", start=0.0, end=1.0)]

        assert catalog.replace(data) is True
        assert catalog.replace(list(data)) is False
        assert len(received) == 1


class TestMarkerDirectives:
    """Test marker-name directive parsing."""

    def test_extract_bpm(self):
        """!bpm:<value> is read as a float."""
        assert extract_bpm("Verse !bpm:128") == 128.0
        assert extract_bpm("!bpm:92.5 !1008") == 92.5
        assert extract_bpm("Verse") is None

    def test_extract_length(self):
        """!length:<seconds> is read as a float."""
        assert extract_length("!length:42.5") == 42.5
        assert extract_length("!bpm:120") is None

    def test_hard_stop(self):
        """!1008 anywhere in the name is a hard stop."""
        assert has_hard_stop("End !1008")
        assert not has_hard_stop("!1007")

    def test_command_only(self):
        """Markers made only of directives are hidden from listings."""
        assert is_command_only("!1008 !length:30")
        assert is_command_only(" !bpm:120 ")
        assert not is_command_only("Chorus !bpm:120")


class TestMarkerCatalog:
    """Test per-region marker lookups."""

    @pytest.fixture
    def song(self):
        return Region(id="2", name="Song", start=10.0, end=20.0)

    def test_bpm_for_region_first_match(self, song):
        """The first !bpm marker inside the region wins."""
        catalog = MarkerCatalog()
        catalog.replace([
            Marker(id="1", name="!bpm:100", position=5.0),
            Marker(id="2", name="!bpm:128", position=12.0),
            Marker(id="3", name="!bpm:140", position=15.0),
        ])
        assert catalog.bpm_for_region(song) == 128.0

    def test_region_bounds_are_inclusive(self, song):
        """Markers exactly on the region end still belong to it."""
        catalog = MarkerCatalog()
        catalog.replace([Marker(id="1", name="!1008", position=20.0)])
        assert catalog.is_hard_stop(song)

    def test_effective_end_with_length(self, song):
        """!length shortens a hard-stop region."""
        catalog = MarkerCatalog()
        catalog.replace([Marker(id="1", name="!1008 !length:4", position=10.0)])
        assert catalog.effective_end(song) == 14.0

    def test_length_without_hard_stop_ignored(self, song):
        """!length alone does not change the region end."""
        catalog = MarkerCatalog()
        catalog.replace([Marker(id="1", name="!length:4", position=10.0)])
        assert catalog.custom_length(song) == 4.0
        assert catalog.effective_end(song) == 20.0

    def test_display_markers(self):
        """Directive-only markers are filtered from the display list."""
        catalog = MarkerCatalog()
        catalog.replace([
            Marker(id="1", name="Chorus", position=1.0),
            Marker(id="2", name="!1008", position=2.0),
        ])
        assert [m.name for m in catalog.display_markers()] == ["Chorus"]


class TestSetlistCatalog:
    """Test setlist mutations and navigation lookups."""

    def _positions(self, setlist: Setlist):
        return [item.position for item in setlist.items]

    def _regions(self, setlist: Setlist):
        return [item.region_id for item in setlist.items]

    @pytest.fixture
    def full(self, setlists, regions):
        created = setlists.create("Full")
        for region in regions.all():
            setlists.add_item(created.id, region)
        return created

    def test_add_appends_and_numbers(self, full):
        """Items are appended with dense positions."""
        assert self._regions(full) == ["1", "2", "3", "4"]
        assert self._positions(full) == [0, 1, 2, 3]

    def test_add_at_position(self, setlists, regions):
        """Inserting at a position shifts later items."""
        created = setlists.create("Insert")
        setlists.add_item(created.id, regions.find("1"))
        setlists.add_item(created.id, regions.find("3"))
        setlists.add_item(created.id, regions.find("2"), position=1)
        assert self._regions(created) == ["1", "2", "3"]
        assert self._positions(created) == [0, 1, 2]

    def test_add_duplicate_region_returns_existing(self, setlists, full, regions):
        """A region is only listed once."""
        existing = full.items[1]
        assert setlists.add_item(full.id, regions.find(2)) is existing
        assert len(full.items) == 4

    @pytest.mark.parametrize("item_index,new_position", [(0, 3), (3, 0), (1, 2), (2, 2)])
    def test_move_keeps_positions_dense(self, setlists, full, item_index, new_position):
        """After any move every position equals its index."""
        item = full.items[item_index]
        setlists.move_item(full.id, item.id, new_position)
        assert full.items[new_position] is item
        assert self._positions(full) == list(range(len(full.items)))

    def test_move_out_of_range_rejected(self, setlists, full):
        """Out-of-range moves raise and leave the setlist untouched."""
        before = self._regions(full)
        with pytest.raises(InvalidStateError):
            setlists.move_item(full.id, full.items[0].id, 4)
        with pytest.raises(InvalidStateError):
            setlists.move_item(full.id, full.items[0].id, -1)
        assert self._regions(full) == before

    def test_move_unknown_item(self, setlists, full):
        """Unknown items are reported as not found."""
        with pytest.raises(NotFoundError):
            setlists.move_item(full.id, "missing", 0)

    def test_remove_renumbers(self, setlists, full):
        """Removing an item closes the gap."""
        assert setlists.remove_item(full.id, full.items[1].id)
        assert self._regions(full) == ["1", "3", "4"]
        assert self._positions(full) == [0, 1, 2]
        assert not setlists.remove_item(full.id, "missing")

    def test_mutations_notify(self, events, setlists, regions):
        """Every mutation emits setlists_changed."""
        received = []
        events.subscribe(SETLISTS_CHANGED, received.append)
        created = setlists.create("Notify")
        setlists.add_item(created.id, regions.find("1"))
        setlists.rename(created.id, "Renamed")
        setlists.delete(created.id)
        assert len(received) == 4

    def test_create_requires_project(self):
        """Setlists belong to a project."""
        with pytest.raises(InvalidStateError):
            SetlistCatalog().create("Orphan")

    def test_next_and_previous_item(self, setlists, setlist):
        """Lookups step through the setlist by region id."""
        assert setlists.next_item(setlist.id, "2").region_id == "3"
        assert setlists.next_item(setlist.id, 3) is None
        assert setlists.previous_item(setlist.id, "3").region_id == "2"
        assert setlists.previous_item(setlist.id, "2") is None

    def test_no_current_region_gives_first_item(self, setlists, setlist):
        """Without a current region both directions start at the top."""
        assert setlists.next_item(setlist.id, None).region_id == "2"
        assert setlists.previous_item(setlist.id, None).region_id == "2"

    def test_region_outside_setlist(self, setlists, setlist):
        """A region that is not listed has no neighbours."""
        assert setlists.next_item(setlist.id, "1") is None
        assert setlists.index_of_region(setlist.id, "1") is None

    def test_serialization_is_camel_case(self, setlist):
        """Stored documents use camelCase keys."""
        data = setlist.to_dict()
        assert data["projectId"] == "project-1"
        assert data["items"][0]["regionId"] == "2"
        restored = Setlist.from_dict(data)
        assert [i.region_id for i in restored.items] == ["2", "3"]
