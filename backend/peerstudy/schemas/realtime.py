"""Realtime channel event schemas."""

from typing import Any

from pydantic import AliasChoices, BaseModel, Field

from peerstudy.db.models import MessageType
from peerstudy.schemas.base import BaseSchema

# Outbound event names
NEW_MESSAGE = "new-message"
MESSAGE_UPDATED = "message-updated"
MESSAGE_DELETED = "message-deleted"
GROUP_UPDATED = "group-updated"
CHAT_CLEARED = "chat-cleared"

OUTBOUND_EVENTS = frozenset({NEW_MESSAGE, MESSAGE_UPDATED, MESSAGE_DELETED, GROUP_UPDATED, CHAT_CLEARED})

# Inbound event names
JOIN_GROUP = "join-group"
SEND_MESSAGE = "send-message"
SEND_MESSAGE_ALIASES = frozenset({SEND_MESSAGE, "sendMessage"})


class InboundFrame(BaseModel):
    """Wire frame sent by a client: ``{"event": ..., "data": ...}``."""

    event: str = Field(..., min_length=1)
    data: Any = None


class JoinGroupEvent(BaseSchema):
    group_id: int = Field(..., gt=0, validation_alias=AliasChoices("group_id", "groupId"))


class SendMessageEvent(BaseSchema):
    """Inbound chat message. Every field is required and must be non-empty."""

    group_id: int = Field(..., gt=0, validation_alias=AliasChoices("group_id", "groupId"))
    sender_id: int = Field(..., gt=0, validation_alias=AliasChoices("sender_id", "senderId"))
    sender_name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("sender_name", "senderName", "sender"),
    )
    content: str = Field(..., min_length=1)
    type: MessageType
