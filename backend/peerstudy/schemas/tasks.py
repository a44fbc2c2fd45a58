"""Group task schemas."""

from datetime import datetime

from pydantic import Field

from peerstudy.schemas.base import BaseSchema, IDMixin


class TaskCreate(BaseSchema):
    subject: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1, max_length=10000)


class TaskRead(BaseSchema, IDMixin):
    """Task with its creator's name and the number of distinct completing users."""

    group_id: int
    creator_id: int
    creator_name: str
    subject: str
    content: str
    completion_count: int = 0
    created_at: datetime


class TaskCompletionResponse(BaseSchema):
    task_id: int
    completion_count: int
