import asyncio
import json

import pytest
from pydantic import TypeAdapter

from vocalnotes.internal_core.contracts import Event, NoteDeletedEvent, PropertyUpdatedEvent
from vocalnotes.internal_core.errors import BroadcastDeliveryFailure
from vocalnotes.internal_core.fanout import (
    KEEPALIVE_FRAME,
    FanoutHub,
    Subscription,
    encode_event,
    stream_subscription,
)


class RecordingChannel:
    def __init__(self) -> None:
        self.frames: list[str] = []

    def send(self, frame: str) -> None:
        self.frames.append(frame)


class BrokenChannel:
    def send(self, frame: str) -> None:
        _ = frame
        raise BroadcastDeliveryFailure("socket closed")


def _payload(frame: str) -> dict:
    assert frame.startswith("data: ")
    assert frame.endswith("\n\n")
    return json.loads(frame[len("data: ") : -2])


def test_broadcast_with_no_channels_is_a_noop() -> None:
    hub = FanoutHub()

    assert hub.broadcast(NoteDeletedEvent(note_id="note_a")) == 0
    assert hub.connection_count() == 0


def test_failing_channel_is_pruned_and_others_still_receive() -> None:
    hub = FanoutHub()
    first = RecordingChannel()
    third = RecordingChannel()
    hub.register(first)
    broken_handle = hub.register(BrokenChannel())
    hub.register(third)

    delivered = hub.broadcast(NoteDeletedEvent(note_id="note_a"))

    assert delivered == 2
    assert hub.connection_count() == 2
    assert not hub.is_registered(broken_handle)
    assert _payload(first.frames[0]) == {"type": "note_deleted", "noteId": "note_a"}
    assert first.frames == third.frames


def test_unregister_is_idempotent() -> None:
    hub = FanoutHub()
    handle = hub.register(RecordingChannel())

    assert hub.unregister(handle) is True
    assert hub.unregister(handle) is False
    assert hub.unregister(None) is False


def test_property_reset_event_carries_null_property() -> None:
    assert _payload(encode_event(PropertyUpdatedEvent())) == {"type": "property_updated", "property": None}


def test_full_subscription_queue_counts_as_failed_send() -> None:
    async def scenario() -> None:
        hub = FanoutHub()
        subscription = hub.open_subscription(max_pending=2)
        hub.broadcast(NoteDeletedEvent(note_id="a"))
        hub.broadcast(NoteDeletedEvent(note_id="b"))

        assert hub.broadcast(NoteDeletedEvent(note_id="c")) == 0
        assert subscription.state == "error"
        assert hub.connection_count() == 0

    asyncio.run(scenario())


def test_cancelled_subscription_rejects_sends() -> None:
    async def scenario() -> None:
        subscription = Subscription()
        subscription.cancel()

        assert subscription.state == "closed"
        with pytest.raises(BroadcastDeliveryFailure):
            subscription.send("data: {}\n\n")
        assert await subscription.next_frame() is None

    asyncio.run(scenario())


def test_stream_yields_connected_then_events_then_stops_on_cancel() -> None:
    async def scenario() -> list[str]:
        hub = FanoutHub()
        subscription = hub.open_subscription()
        stream = stream_subscription(hub, subscription, keepalive_sec=5.0, max_lifetime_sec=60.0)

        frames = [await stream.__anext__()]
        hub.broadcast(NoteDeletedEvent(note_id="note_a"))
        frames.append(await stream.__anext__())
        subscription.cancel()
        frames.extend([frame async for frame in stream])

        assert hub.connection_count() == 0
        return frames

    frames = asyncio.run(scenario())

    assert [_payload(frame)["type"] for frame in frames] == ["connected", "note_deleted"]


def test_stream_emits_keepalive_and_ends_at_max_lifetime() -> None:
    async def scenario() -> list[str]:
        hub = FanoutHub()
        subscription = hub.open_subscription()
        frames = [
            frame
            async for frame in stream_subscription(hub, subscription, keepalive_sec=0.05, max_lifetime_sec=0.3)
        ]
        assert hub.connection_count() == 0
        return frames

    frames = asyncio.run(scenario())

    assert _payload(frames[0]) == {"type": "connected"}
    assert KEEPALIVE_FRAME in frames[1:]


def test_stream_stops_when_client_disconnects() -> None:
    async def scenario() -> list[str]:
        hub = FanoutHub()
        subscription = hub.open_subscription()

        async def is_disconnected() -> bool:
            return True

        frames = [
            frame
            async for frame in stream_subscription(
                hub, subscription, keepalive_sec=0.05, max_lifetime_sec=10.0, is_disconnected=is_disconnected
            )
        ]
        assert hub.connection_count() == 0
        return frames

    frames = asyncio.run(scenario())

    assert len(frames) == 1


def test_frames_parse_back_into_typed_events() -> None:
    adapter = TypeAdapter(Event)

    event = adapter.validate_python(_payload(encode_event(NoteDeletedEvent(note_id="note_a"))))

    assert isinstance(event, NoteDeletedEvent)
    assert event.note_id == "note_a"
