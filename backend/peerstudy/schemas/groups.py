"""Group schemas."""

from datetime import datetime

from pydantic import AliasChoices, Field

from peerstudy.schemas.base import BaseSchema, IDMixin
from peerstudy.schemas.messages import MessageRead
from peerstudy.schemas.tasks import TaskRead
from peerstudy.schemas.user import MemberRead


class GroupFormRequest(BaseSchema):
    """
    Form a group from matching results.

    The caller always becomes a member; member_ids are the chosen peers.
    A blank or missing name falls back to the configured default.
    """

    member_ids: list[int] = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("member_ids", "memberIds"),
    )
    group_name: str | None = Field(
        default=None,
        max_length=255,
        validation_alias=AliasChoices("group_name", "groupName"),
    )


class GroupFormResponse(BaseSchema):
    group_id: int


class GroupRead(BaseSchema, IDMixin):
    """Group record, as returned and as broadcast on group-updated."""

    name: str
    icon_url: str | None = None
    created_at: datetime


class GroupUpdateRequest(BaseSchema):
    """
    Rename and/or change the icon.

    Omitted fields keep their value; an explicit null or blank icon_url
    clears the icon.
    """

    name: str | None = Field(default=None, max_length=255)
    icon_url: str | None = None


class GroupUpdateResponse(BaseSchema):
    success: bool = True
    group: GroupRead
    icon_url: str | None = None


class GroupState(GroupRead):
    """Everything a member needs to render the group from scratch."""

    members: list[MemberRead]
    messages: list[MessageRead]
    tasks: list[TaskRead]
