"""Per-group broadcaster tests."""

import asyncio

import pytest

from conftest import RecordingTransport
from peerstudy.realtime.broadcaster import ChannelConnection
from peerstudy.schemas.messages import ChatClearedPayload
from peerstudy.schemas.realtime import CHAT_CLEARED, MESSAGE_DELETED, NEW_MESSAGE


def drain(connection: ChannelConnection) -> list[dict]:
    frames = []
    while not connection.queue.empty():
        frame = connection.queue.get_nowait()
        if frame is not None:
            frames.append(frame)
    return frames


class TestPublish:
    def test_only_members_of_the_channel_receive(self, hub):
        in_a = ChannelConnection(RecordingTransport())
        in_b = ChannelConnection(RecordingTransport())
        hub.join(in_a, 1)
        hub.join(in_b, 2)

        delivered = hub.publish(1, NEW_MESSAGE, {"id": 10})

        assert delivered == 1
        assert drain(in_a) == [{"event": NEW_MESSAGE, "data": {"id": 10}}]
        assert drain(in_b) == []

    def test_events_arrive_in_publish_order(self, hub):
        connection = ChannelConnection(RecordingTransport())
        hub.join(connection, 7)

        for message_id in range(5):
            hub.publish(7, NEW_MESSAGE, {"id": message_id})
        hub.publish(7, MESSAGE_DELETED, {"id": 2, "group_id": 7})

        frames = drain(connection)
        assert [f["event"] for f in frames] == [NEW_MESSAGE] * 5 + [MESSAGE_DELETED]
        assert [f["data"]["id"] for f in frames[:5]] == [0, 1, 2, 3, 4]

    def test_pydantic_payloads_are_dumped_as_json(self, hub):
        connection = ChannelConnection(RecordingTransport())
        hub.join(connection, 3)

        hub.publish(3, CHAT_CLEARED, ChatClearedPayload(group_id=3))

        assert drain(connection) == [{"event": CHAT_CLEARED, "data": {"group_id": 3}}]

    def test_empty_channel(self, hub):
        assert hub.publish(99, NEW_MESSAGE, {"id": 1}) == 0

    def test_unknown_event_name(self, hub):
        with pytest.raises(ValueError):
            hub.publish(1, "new_message", {})

    def test_joining_twice_delivers_once(self, hub):
        connection = ChannelConnection(RecordingTransport())
        hub.join(connection, 1)
        hub.join(connection, 1)

        assert hub.publish(1, NEW_MESSAGE, {"id": 1}) == 1
        assert hub.channel_size(1) == 1

    def test_one_connection_in_several_groups(self, hub):
        connection = ChannelConnection(RecordingTransport())
        hub.join(connection, 1)
        hub.join(connection, 2)

        hub.publish(1, NEW_MESSAGE, {"id": 1})
        hub.publish(2, NEW_MESSAGE, {"id": 2})

        assert [f["data"]["id"] for f in drain(connection)] == [1, 2]
        assert hub.groups_of(connection) == {1, 2}


class TestSlowAndClosedConnections:
    def test_full_queue_drops_only_that_connection(self, hub):
        slow = ChannelConnection(RecordingTransport(), max_queue=2)
        healthy = ChannelConnection(RecordingTransport())
        hub.join(slow, 1)
        hub.join(healthy, 1)

        for message_id in range(3):
            hub.publish(1, NEW_MESSAGE, {"id": message_id})

        assert slow.closed
        assert hub.channel_size(1) == 1
        assert [f["data"]["id"] for f in drain(healthy)] == [0, 1, 2]
        assert hub.publish(1, NEW_MESSAGE, {"id": 3}) == 1

    def test_disconnect_leaves_every_channel(self, hub):
        connection = ChannelConnection(RecordingTransport())
        hub.join(connection, 1)
        hub.join(connection, 2)

        hub.disconnect(connection)

        assert hub.channel_size(1) == 0
        assert hub.channel_size(2) == 0
        assert hub.groups_of(connection) == frozenset()
        assert connection.closed
        assert connection.enqueue({"event": NEW_MESSAGE, "data": {}}) is False

    def test_disconnect_is_idempotent(self, hub):
        connection = ChannelConnection(RecordingTransport())
        hub.join(connection, 1)
        hub.disconnect(connection)
        hub.disconnect(connection)
        assert hub.channel_size(1) == 0


class TestWriter:
    async def test_writer_delivers_in_order_and_stops_on_close(self, hub):
        transport = RecordingTransport()
        connection = ChannelConnection(transport)
        hub.join(connection, 5)
        writer = asyncio.create_task(connection.run_writer())

        hub.publish(5, NEW_MESSAGE, {"id": 1})
        hub.publish(5, NEW_MESSAGE, {"id": 2})
        hub.disconnect(connection)
        await asyncio.wait_for(writer, timeout=1)

        assert [frame["data"]["id"] for frame in transport.frames] == [1, 2]

    async def test_writer_stops_when_the_transport_fails(self, hub):
        connection = ChannelConnection(RecordingTransport(fail=True))
        hub.join(connection, 5)
        writer = asyncio.create_task(connection.run_writer())

        hub.publish(5, NEW_MESSAGE, {"id": 1})
        await asyncio.wait_for(writer, timeout=1)

        assert connection.closed
        # The dead connection is pruned on the next publish
        assert hub.publish(5, NEW_MESSAGE, {"id": 2}) == 0
        assert hub.channel_size(5) == 0

    async def test_one_failing_transport_does_not_affect_others(self, hub):
        broken = ChannelConnection(RecordingTransport(fail=True))
        ok_transport = RecordingTransport()
        ok = ChannelConnection(ok_transport)
        hub.join(broken, 1)
        hub.join(ok, 1)
        writers = [asyncio.create_task(c.run_writer()) for c in (broken, ok)]

        hub.publish(1, NEW_MESSAGE, {"id": 1})
        await asyncio.wait_for(writers[0], timeout=1)
        hub.publish(1, NEW_MESSAGE, {"id": 2})
        hub.disconnect(ok)
        await asyncio.wait_for(writers[1], timeout=1)

        assert [frame["data"]["id"] for frame in ok_transport.frames] == [1, 2]
