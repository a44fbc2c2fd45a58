"""Chat message schemas."""

from datetime import datetime

from pydantic import Field

from peerstudy.db.models import MessageType
from peerstudy.schemas.base import BaseSchema, IDMixin


class MessageRead(BaseSchema, IDMixin):
    """A persisted chat message, as stored and as broadcast."""

    group_id: int
    sender_id: int
    sender_name: str
    content: str
    type: MessageType
    timestamp: datetime


class MessageEditRequest(BaseSchema):
    """Text edit by the original sender."""

    content: str = Field(..., min_length=1, max_length=10000)


class MessageDeletedPayload(BaseSchema, IDMixin):
    group_id: int


class ChatClearedPayload(BaseSchema):
    group_id: int
