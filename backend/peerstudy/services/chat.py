"""Group chat: send, edit, unsend and search."""

import logging

from peerstudy.config import get_settings
from peerstudy.db.models import MessageType
from peerstudy.exceptions import AuthorizationDenied, NotFound, ValidationFailure
from peerstudy.realtime.broadcaster import Broadcaster
from peerstudy.repositories import UnitOfWork
from peerstudy.schemas.messages import MessageDeletedPayload, MessageRead
from peerstudy.schemas.realtime import MESSAGE_DELETED, MESSAGE_UPDATED, NEW_MESSAGE, SendMessageEvent
from peerstudy.services.groups import get_group_or_404, require_member

logger = logging.getLogger(__name__)


async def send_message(
    uow: UnitOfWork,
    broadcaster: Broadcaster,
    user_id: int,
    event: SendMessageEvent,
) -> MessageRead:
    """
    Persist an inbound chat message and publish new-message.

    The authenticated connection must be the stated sender and a current
    member of the group.
    """
    if event.sender_id != user_id:
        raise AuthorizationDenied("Sender does not match the connection", context={"user_id": user_id})
    await require_member(uow, user_id, event.group_id)

    message = await uow.messages.add(
        group_id=event.group_id,
        sender_id=event.sender_id,
        sender_name=event.sender_name,
        content=event.content,
        type=event.type,
    )
    await uow.commit()

    payload = MessageRead.model_validate(message)
    broadcaster.publish(event.group_id, NEW_MESSAGE, payload)
    return payload


async def edit_message(
    uow: UnitOfWork,
    broadcaster: Broadcaster,
    user_id: int,
    message_id: int,
    content: str,
) -> MessageRead:
    """Replace the text of one's own text message, then publish message-updated."""
    content = (content or "").strip()
    if not content:
        raise ValidationFailure("Message content is required", field="content")

    existing = await uow.messages.get(message_id)
    if existing is None:
        raise NotFound("Message", message_id)
    if existing.sender_id != user_id:
        raise AuthorizationDenied("Only the sender can edit this message")
    if existing.type != MessageType.TEXT:
        raise ValidationFailure("Only text messages can be edited", field="content")

    message = await uow.messages.update_content(message_id, content)
    await uow.commit()

    payload = MessageRead.model_validate(message)
    broadcaster.publish(payload.group_id, MESSAGE_UPDATED, payload)
    return payload


async def delete_message(uow: UnitOfWork, broadcaster: Broadcaster, user_id: int, message_id: int) -> None:
    """Unsend one's own message for everyone, then publish message-deleted."""
    existing = await uow.messages.get(message_id)
    if existing is None:
        raise NotFound("Message", message_id)
    if existing.sender_id != user_id:
        raise AuthorizationDenied("Only the sender can delete this message")

    group_id = existing.group_id
    await uow.messages.delete(message_id)
    await uow.commit()

    broadcaster.publish(group_id, MESSAGE_DELETED, MessageDeletedPayload(id=message_id, group_id=group_id))


async def search_messages(uow: UnitOfWork, user_id: int, group_id: int, term: str = "") -> list[MessageRead]:
    """Newest messages first, optionally filtered by a case-insensitive substring."""
    await get_group_or_404(uow, group_id)
    await require_member(uow, user_id, group_id)
    messages = await uow.messages.search(
        group_id,
        (term or "").strip(),
        limit=get_settings().message_search_limit,
    )
    return [MessageRead.model_validate(message) for message in messages]
