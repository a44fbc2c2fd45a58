"""
Per-group realtime channels.

Each connection owns a FIFO outbound queue drained by exactly one writer
task, and ``publish`` enqueues to every member of a channel synchronously.
Because the event loop runs ``publish`` calls one at a time, every
connection sees a group's events in the order the server operations that
produced them completed.

Delivery is best effort and at most once. A connection that cannot keep up
(queue full) or whose transport fails is dropped from every channel; the
client catches up by reloading the group state.
"""

import asyncio
import logging
from collections import defaultdict
from itertools import count
from typing import Any, Protocol

from pydantic import BaseModel

from peerstudy.schemas.realtime import OUTBOUND_EVENTS

logger = logging.getLogger(__name__)

_connection_ids = count(1)


class Transport(Protocol):
    """Anything that can deliver one JSON frame (a Starlette WebSocket qualifies)."""

    async def send_json(self, data: Any) -> None: ...


class ChannelConnection:
    """One client connection and its ordered outbound queue."""

    def __init__(self, transport: Transport, *, user_id: int | None = None, max_queue: int = 256):
        self.id = next(_connection_ids)
        self.transport = transport
        self.user_id = user_id
        self.queue: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue(maxsize=max_queue)
        self.closed = False

    def enqueue(self, frame: dict[str, Any]) -> bool:
        if self.closed:
            return False
        try:
            self.queue.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning("Outbound queue full for connection %s, dropping it", self.id)
            self.close()
            return False
        return True

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        # Wake the writer so it can exit; drop pending frames if there is no room
        while True:
            try:
                self.queue.put_nowait(None)
                break
            except asyncio.QueueFull:
                self.queue.get_nowait()

    async def run_writer(self) -> None:
        """Drain the queue into the transport until closed or the transport fails."""
        while True:
            frame = await self.queue.get()
            if frame is None:
                return
            try:
                await self.transport.send_json(frame)
            except Exception as e:
                # Client went away; best-effort loss, not an error
                logger.info("Dropping connection %s after send failure: %s", self.id, e)
                self.closed = True
                return

    def __repr__(self) -> str:
        return f"ChannelConnection(id={self.id}, user_id={self.user_id})"


class Broadcaster:
    """Registry of group channels and their member connections."""

    def __init__(self):
        self._channels: dict[int, set[ChannelConnection]] = defaultdict(set)
        self._memberships: dict[ChannelConnection, set[int]] = defaultdict(set)

    def join(self, connection: ChannelConnection, group_id: int) -> None:
        """Add a connection to a group's channel. Joining twice is a no-op."""
        self._channels[group_id].add(connection)
        self._memberships[connection].add(group_id)
        logger.debug("Connection %s joined group-%s", connection.id, group_id)

    def disconnect(self, connection: ChannelConnection) -> None:
        """Remove a connection from every channel and stop its writer."""
        for group_id in self._memberships.pop(connection, set()):
            members = self._channels.get(group_id)
            if members is None:
                continue
            members.discard(connection)
            if not members:
                del self._channels[group_id]
        connection.close()

    def channel_size(self, group_id: int) -> int:
        return len(self._channels.get(group_id, ()))

    def groups_of(self, connection: ChannelConnection) -> frozenset[int]:
        return frozenset(self._memberships.get(connection, ()))

    def publish(self, group_id: int, event: str, payload: BaseModel | dict[str, Any]) -> int:
        """
        Fan an event out to every connection in the group's channel.

        Returns the number of connections the event was queued for.
        """
        if event not in OUTBOUND_EVENTS:
            raise ValueError(f"Unknown realtime event: {event}")
        data = payload.model_dump(mode="json") if isinstance(payload, BaseModel) else payload
        frame = {"event": event, "data": data}

        delivered = 0
        stale = []
        # Snapshot: disconnect() below mutates the set
        for connection in list(self._channels.get(group_id, ())):
            if connection.enqueue(frame):
                delivered += 1
            else:
                stale.append(connection)
        for connection in stale:
            self.disconnect(connection)

        logger.debug("Published %s to group-%s (%d connections)", event, group_id, delivered)
        return delivered


# Singleton instance
broadcaster = Broadcaster()


def get_broadcaster() -> Broadcaster:
    """FastAPI dependency for the process-wide broadcaster."""
    return broadcaster
