"""
Tests for REAPER response parsing and the web client.
"""

import asyncio

import httpx
import pytest

from setlist_sync.errors import CalculationFallbackError, TransientIOError
from setlist_sync.tempo import TimeSignature
from setlist_sync.transport.client import ReaperWebClient
from setlist_sync.transport.parsing import (
    parse_beat_position,
    parse_ext_state,
    parse_markers,
    parse_regions,
    parse_transport,
    unescape_ext_state,
)


class TestParsers:
    """Test the tab-delimited response parsers."""

    def test_transport(self):
        """TRANSPORT gives playstate and position."""
        snapshot = parse_transport("TRANSPORT\t1\t12.345\t0\t5.2.00\t5.2.00\n")
        assert snapshot.playstate == 1
        assert snapshot.position == 12.345
        assert snapshot.is_playing

    def test_recording_counts_as_playing(self):
        """Playstate 5 is both playing and recording."""
        snapshot = parse_transport("TRANSPORT\t5\t1.0")
        assert snapshot.is_playing
        assert snapshot.is_recording

    def test_transport_missing(self):
        """No TRANSPORT line gives None."""
        assert parse_transport("") is None
        assert parse_transport("BEATPOS\t1\t2\t3") is None

    def test_beat_position_with_signature(self):
        """BEATPOS carries the time signature in columns 6 and 7."""
        beat = parse_beat_position("BEATPOS\t1\t10.0\t20.0\t5\t0.0\t3\t4")
        assert beat.position_seconds == 10.0
        assert beat.full_beats == 20.0
        assert beat.measures == 5
        assert beat.time_signature == TimeSignature(3, 4)

    def test_beat_position_without_signature(self):
        """A short BEATPOS line is read as 4/4."""
        beat = parse_beat_position("BEATPOS\t1\t10.0\t20.0")
        assert beat.time_signature == TimeSignature(4, 4)

    def test_regions(self):
        """REGION lines become regions; empty ones are skipped."""
        text = "\n".join([
            "REGION_LIST",
            "REGION\tIntro\t1\t0.0\t10.0\t16576",
            "REGION\tEmpty\t2\t12.0\t12.0\t0",
            "REGION\tSong\t3\t12.0\t30.5",
            "REGION\tbroken\t4\tabc\t1.0",
            "REGION_LIST_END",
        ])
        regions = parse_regions(text)
        assert [r.id for r in regions] == ["1", "3"]
        assert regions[0].color == "16576"
        assert regions[1].color is None
        assert regions[1].end == 30.5

    def test_markers(self):
        """MARKER lines keep their directive names verbatim."""
        markers = parse_markers("MARKER_LIST\nMARKER\t!1008 !length:8\t1\t42.0\t0\nMARKER_LIST_END")
        assert len(markers) == 1
        assert markers[0].name == "!1008 !length:8"
        assert markers[0].position == 42.0

    def test_unescape(self):
        """Escapes are undone in a single pass."""
        assert unescape_ext_state(r"a\nb\tc\\d") == "a\nb\tc\\d"
        assert unescape_ext_state(r"\\n") == "\\n"

    def test_ext_state(self):
        """The value follows section and key."""
        assert parse_ext_state("PROJEXTSTATE\tReaperControl\tProjectId\tabc-123") == "abc-123"
        assert parse_ext_state("") == ""


class TestReaperWebClient:
    """Test the httpx-backed client against a mock transport."""

    @staticmethod
    def _client(responses=None, fail=False):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request.url.path)
            if fail:
                raise httpx.ConnectError("connection refused", request=request)
            command = request.url.path[len("/_/"):]
            return httpx.Response(200, text=(responses or {}).get(command, ""))

        client = ReaperWebClient("http://reaper.test:8080/", transport=httpx.MockTransport(handler))
        return client, requests

    def test_transport_state(self):
        """TRANSPORT is requested and parsed."""
        client, requests = self._client({"TRANSPORT": "TRANSPORT\t2\t7.5\t0\t1.1.00\t1.1.00"})
        snapshot = asyncio.run(client.get_transport_state())
        assert snapshot.position == 7.5
        assert not snapshot.is_playing
        assert requests == ["/_/TRANSPORT"]

    def test_connection_error_is_transient(self):
        """Network failures surface as TransientIOError."""
        client, _ = self._client(fail=True)
        with pytest.raises(TransientIOError):
            asyncio.run(client.get_transport_state())

    def test_http_error_status_is_transient(self):
        """Non-2xx answers surface as TransientIOError."""
        def handler(request):
            return httpx.Response(500)

        client = ReaperWebClient("http://reaper.test", transport=httpx.MockTransport(handler))
        with pytest.raises(TransientIOError):
            asyncio.run(client.request("TRANSPORT"))

    def test_empty_transport_is_transient(self):
        """A reply without a TRANSPORT line is treated as a failed read."""
        client, _ = self._client({"TRANSPORT": ""})
        with pytest.raises(TransientIOError):
            asyncio.run(client.get_transport_state())

    def test_seek_path(self):
        """Seeks go to SET/POS/<seconds>."""
        client, requests = self._client()
        asyncio.run(client.seek(20.001))
        assert requests == ["/_/SET/POS/20.001"]

    def test_play_with_count_in_order(self):
        """Count-in is enabled before play is sent."""
        client, requests = self._client()
        asyncio.run(client.play_with_count_in())
        assert requests == ["/_/40363", "/_/1007"]

    def test_stop_recording_order(self):
        """Stopping a recording pauses first."""
        client, requests = self._client()
        asyncio.run(client.stop_recording())
        assert requests == ["/_/1008", "/_/40667"]

    def test_time_signature_missing(self):
        """No BEATPOS line means the signature cannot be read."""
        client, _ = self._client({"BEATPOS": ""})
        with pytest.raises(CalculationFallbackError):
            asyncio.run(client.get_time_signature())

    def test_ext_state_round_trip_paths(self):
        """Extended state requests quote section, key and value."""
        client, requests = self._client({
            "GET/PROJEXTSTATE/ReaperControl/ProjectId": "PROJEXTSTATE\tReaperControl\tProjectId\tp-1",
        })
        assert asyncio.run(client.get_project_extended_state("ReaperControl", "ProjectId")) == "p-1"
        asyncio.run(client.set_project_extended_state("ReaperControl", "ProjectId", "a b"))
        assert requests[-1] == "/_/SET/PROJEXTSTATE/ReaperControl/ProjectId/a b"
