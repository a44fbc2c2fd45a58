"""Note schemas."""

import json
from datetime import datetime, timezone
from typing import Any, Literal
from uuid import uuid4

from pydantic import AliasChoices, Field, field_validator, model_validator

from peerstudy.db.models import NoteType
from peerstudy.schemas.base import BaseSchema, CreatedAtMixin, IDMixin


def parse_tags(value: Any) -> list[str]:
    """
    Coerce subject tags from a list, a JSON array string or a comma list.

    Anything else (or a JSON value that is not an array) yields no tags.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(v).strip() for v in value if str(v).strip()]
    if isinstance(value, str):
        if not value.strip():
            return []
        try:
            parsed = json.loads(value)
        except ValueError:
            return [part.strip() for part in value.split(",") if part.strip()]
        if isinstance(parsed, list):
            return [str(v).strip() for v in parsed if str(v).strip()]
        return []
    return []


class Annotation(BaseSchema):
    """A text comment or a drawing snapshot attached to a note."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    type: Literal["comment", "drawing"]
    text: str | None = None
    data_url: str | None = Field(default=None, validation_alias=AliasChoices("data_url", "dataUrl"))
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        validation_alias=AliasChoices("created_at", "createdAt"),
    )

    @model_validator(mode="after")
    def check_payload(self) -> "Annotation":
        if self.type == "comment" and not self.text:
            raise ValueError("Comment annotations need text")
        if self.type == "drawing" and not self.data_url:
            raise ValueError("Drawing annotations need a data_url")
        return self


class NoteRead(BaseSchema, IDMixin, CreatedAtMixin):
    """Schema for reading note data."""

    user_id: int
    group_id: int | None = None
    file_name: str
    file_url: str
    file_type: str
    subject_tags: list[str] = Field(default_factory=list)
    type: NoteType = NoteType.LECTURE
    description: str = ""
    reviewed: bool = False
    annotations: list[Annotation] = Field(default_factory=list)
    chat_message_id: int | None = None
    file_size: int = 0

    @field_validator("subject_tags", mode="before")
    @classmethod
    def _tags(cls, value: Any) -> list[str]:
        return parse_tags(value)

    @field_validator("annotations", mode="before")
    @classmethod
    def _annotations(cls, value: Any) -> Any:
        return value or []


class NoteUpdate(BaseSchema):
    """Schema for updating a note. All fields optional."""

    reviewed: bool | None = None
    description: str | None = None
    type: NoteType | None = None
    subject_tags: list[str] | None = Field(
        default=None, validation_alias=AliasChoices("subject_tags", "subjectTags")
    )
    annotations: list[Annotation] | None = None
    file_name: str | None = Field(default=None, validation_alias=AliasChoices("file_name", "fileName"))

    @field_validator("subject_tags", mode="before")
    @classmethod
    def _tags(cls, value: Any) -> Any:
        return None if value is None else parse_tags(value)


class NoteRename(BaseSchema):
    file_name: str = Field(..., min_length=1, validation_alias=AliasChoices("file_name", "fileName"))


class SaveFromChatRequest(BaseSchema):
    """Import a file that was shared in group chat into the caller's library."""

    file_url: str = Field(..., min_length=1, validation_alias=AliasChoices("file_url", "fileUrl"))
    group_id: int | None = Field(default=None, validation_alias=AliasChoices("group_id", "groupId"))
    chat_message_id: int | None = Field(
        default=None, validation_alias=AliasChoices("chat_message_id", "chatMessageId")
    )
    file_name: str | None = Field(default=None, validation_alias=AliasChoices("file_name", "fileName"))
    file_type: str | None = Field(default=None, validation_alias=AliasChoices("file_type", "fileType"))
    subject_tags: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("subject_tags", "subjectTags")
    )
    type: NoteType = NoteType.LECTURE
    description: str = ""

    @field_validator("subject_tags", mode="before")
    @classmethod
    def _tags(cls, value: Any) -> list[str]:
        return parse_tags(value)


class NoteMutationResponse(BaseSchema):
    success: bool = True
    note: NoteRead


class NoteListResponse(BaseSchema):
    notes: list[NoteRead]
    page: int
    limit: int
    total: int
    total_pages: int
