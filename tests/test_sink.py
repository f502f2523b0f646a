"""Tests for event sinks and event serialization."""

from __future__ import annotations

import asyncio
import json

import pytest

from hostaudit.core.errors import SinkClosedError
from hostaudit.core.events import (
    CheckCompleted,
    CheckStarted,
    Info,
    ScanCompleted,
    ScanStarted,
    event_from_json,
    event_to_json,
)
from hostaudit.core.sink import CallbackEventSink, CollectingEventSink, QueueEventSink

from conftest import make_check


class TestQueueEventSink:
    """Tests for the asyncio queue sink."""

    async def test_delivers_in_order_then_stops(self) -> None:
        sink = QueueEventSink()
        sink.send(CheckStarted(check_id="a"))
        sink.send(Info(check_id="a", message="hello"))
        sink.close()

        received = [event async for event in sink]

        assert received == [CheckStarted(check_id="a"), Info(check_id="a", message="hello")]

    async def test_send_after_close_fails(self) -> None:
        sink = QueueEventSink()
        sink.close()

        with pytest.raises(SinkClosedError):
            sink.send(CheckStarted(check_id="a"))
        assert sink.closed is True

    async def test_close_is_idempotent(self) -> None:
        sink = QueueEventSink()
        sink.close()
        sink.close()

        assert [event async for event in sink] == []

    async def test_concurrent_consumer(self) -> None:
        """The consumer sees events while the producer is still running."""
        sink = QueueEventSink()
        seen: list[str] = []

        async def consumer() -> None:
            async for event in sink:
                seen.append(event.event)

        task = asyncio.create_task(consumer())
        sink.send(CheckStarted(check_id="a"))
        await asyncio.sleep(0.01)
        assert seen == ["CheckStarted"]

        sink.send(CheckStarted(check_id="b"))
        sink.close()
        await task

        assert seen == ["CheckStarted", "CheckStarted"]


class TestCallbackEventSink:
    """Tests for the callback sink."""

    def test_forwards_events(self) -> None:
        received: list[object] = []
        sink = CallbackEventSink(received.append)

        sink.send(CheckStarted(check_id="a"))

        assert received == [CheckStarted(check_id="a")]

    def test_callback_error_becomes_sink_closed(self) -> None:
        def broken(_event: object) -> None:
            raise ConnectionResetError("peer went away")

        sink = CallbackEventSink(broken)

        with pytest.raises(SinkClosedError, match="peer went away"):
            sink.send(CheckStarted(check_id="a"))


class TestCollectingEventSink:
    def test_of_type(self) -> None:
        sink = CollectingEventSink()
        sink.send(CheckStarted(check_id="a"))
        sink.send(Info(check_id="a", message="m"))

        assert sink.of_type("Info") == [Info(check_id="a", message="m")]


class TestEventSerialization:
    """Events serialize as tagged JSON objects."""

    def test_tag_and_fields(self) -> None:
        event = CheckCompleted(check_id="fw", check_name="Firewall", status="PASS", detail="")

        data = json.loads(event_to_json(event))

        assert data == {
            "event": "CheckCompleted",
            "check_id": "fw",
            "check_name": "Firewall",
            "status": "PASS",
            "detail": "",
        }

    def test_scan_started_nests_catalog(self) -> None:
        check = make_check("fw", phase="network")
        event = ScanStarted(checks=[check], phases=[])

        data = json.loads(event_to_json(event))

        assert data["event"] == "ScanStarted"
        assert data["checks"][0]["id"] == "fw"
        assert data["checks"][0]["requires_sudo"] is False

    def test_decode_picks_variant(self) -> None:
        line = '{"event":"ScanCompleted","passed":1,"failed":1,"skipped":0,"total":2,"score":50.0,"grade":"F"}'

        event = event_from_json(line)

        assert isinstance(event, ScanCompleted)
        assert event.grade == "F"
