from __future__ import annotations

import pytest

from app.services import streaming
from app.services.progress_channel import ChannelClosedError, ProgressChannel


async def _drain(channel: ProgressChannel) -> list:
    return [event async for event in channel]


@pytest.mark.asyncio
async def test_channel_delivers_in_order_and_stops_after_terminal():
    channel = ProgressChannel(maxsize=8)
    channel.publish(streaming.progress(0, "starting"))
    channel.publish(streaming.progress(0, "researching", elapsed_seconds=2))
    channel.publish(streaming.completed({"research": "done"}, from_cache=False))

    events = await _drain(channel)

    assert [e.event.value for e in events] == ["progress", "progress", "completed"]
    assert events[1].data["elapsed_seconds"] == 2
    assert channel.closed is True


@pytest.mark.asyncio
async def test_channel_rejects_events_after_terminal():
    channel = ProgressChannel()
    channel.publish(streaming.error("boom"))

    with pytest.raises(ChannelClosedError):
        channel.publish(streaming.progress(0, "late"))


@pytest.mark.asyncio
async def test_full_channel_drops_heartbeats_but_keeps_terminal_event():
    channel = ProgressChannel(maxsize=2)
    channel.publish(streaming.progress(0, "starting"))
    channel.publish(streaming.progress(0, "researching"))
    channel.publish(streaming.progress(0, "researching"))
    channel.publish(streaming.completed({"research": "r"}, from_cache=False))

    events = await _drain(channel)

    assert events[-1].event.value == "completed"
    assert sum(1 for e in events if e.is_terminal) == 1
    assert channel.dropped == 2


def test_detached_channel_discards_without_blocking():
    channel = ProgressChannel(maxsize=1)
    channel.publish(streaming.progress(0, "starting"))
    channel.detach()

    for _ in range(10):
        channel.publish(streaming.progress(0, "researching"))
    channel.publish(streaming.completed({"research": "r"}, from_cache=False))

    assert channel.detached is True
    assert channel.closed is True


def test_sse_frame_format():
    frame = streaming.error("Topic is required", status_code=400).format()

    assert frame == 'event: error\ndata: {"error": "Topic is required", "statusCode": 400}\n\n'
