"""
Realtime WebSocket endpoint.

Protocol: every frame in either direction is ``{"event": ..., "data": ...}``.

Inbound:
- join-group     data: group id, or {"group_id": ...}; ignored unless the
                 user is a member of that group
- send-message   (alias sendMessage) data: group_id, sender_id, sender_name,
                 content, type; persisted, then broadcast as new-message

Outbound: new-message, message-updated, message-deleted, group-updated,
chat-cleared.

Malformed or unauthorised inbound events are dropped without a reply.
"""

import asyncio
import contextlib
import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, status
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from peerstudy.api.deps import Broadcast, SessionFactory, authenticate_websocket
from peerstudy.config import get_settings
from peerstudy.db.models import User
from peerstudy.exceptions import PeerStudyError
from peerstudy.realtime.broadcaster import Broadcaster, ChannelConnection
from peerstudy.repositories import SqlUnitOfWork
from peerstudy.schemas.realtime import (
    JOIN_GROUP,
    SEND_MESSAGE_ALIASES,
    InboundFrame,
    JoinGroupEvent,
    SendMessageEvent,
)
from peerstudy.services import chat

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, session_factory: SessionFactory, hub: Broadcast) -> None:
    user = await authenticate_websocket(websocket, session_factory)
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    connection = ChannelConnection(
        websocket,
        user_id=user.id,
        max_queue=get_settings().realtime_queue_size,
    )
    writer = asyncio.create_task(connection.run_writer())
    logger.info("Realtime connection %s opened for user %s", connection.id, user.id)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                logger.debug("Dropping binary frame on connection %s", connection.id)
                continue
            await _handle_frame(raw, user, connection, session_factory, hub)
    finally:
        hub.disconnect(connection)
        writer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await writer
        logger.info("Realtime connection %s closed", connection.id)


async def _handle_frame(
    raw: str,
    user: User,
    connection: ChannelConnection,
    session_factory: async_sessionmaker[AsyncSession],
    hub: Broadcaster,
) -> None:
    try:
        frame = InboundFrame.model_validate(json.loads(raw))
    except (ValueError, ValidationError) as e:
        logger.debug("Dropping unreadable frame on connection %s: %s", connection.id, e)
        return

    if frame.event == JOIN_GROUP:
        await _join_group(frame.data, user, connection, session_factory, hub)
    elif frame.event in SEND_MESSAGE_ALIASES:
        await _send_message(frame.data, user, connection, session_factory, hub)
    else:
        logger.debug("Ignoring unknown event %r on connection %s", frame.event, connection.id)


async def _join_group(
    data: Any,
    user: User,
    connection: ChannelConnection,
    session_factory: async_sessionmaker[AsyncSession],
    hub: Broadcaster,
) -> None:
    if not isinstance(data, dict):
        data = {"group_id": data}
    try:
        event = JoinGroupEvent.model_validate(data)
    except ValidationError as e:
        logger.debug("Dropping join-group on connection %s: %s", connection.id, e)
        return

    async with SqlUnitOfWork(session_factory=session_factory) as uow:
        is_member = await uow.users.is_member(user.id, event.group_id)
    if not is_member:
        logger.debug("User %s is not in group %s, join ignored", user.id, event.group_id)
        return
    hub.join(connection, event.group_id)


async def _send_message(
    data: Any,
    user: User,
    connection: ChannelConnection,
    session_factory: async_sessionmaker[AsyncSession],
    hub: Broadcaster,
) -> None:
    try:
        event = SendMessageEvent.model_validate(data)
    except ValidationError as e:
        logger.debug("Dropping send-message on connection %s: %s", connection.id, e)
        return

    try:
        async with SqlUnitOfWork(session_factory=session_factory) as uow:
            await chat.send_message(uow, hub, user.id, event)
    except PeerStudyError as e:
        logger.debug("Dropping send-message from user %s: %s", user.id, e.message)
    except SQLAlchemyError:
        # Keep the socket open; the client's message is simply not delivered
        logger.exception("Failed to persist message from user %s", user.id)
