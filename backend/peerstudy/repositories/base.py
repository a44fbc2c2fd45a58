"""
Repository contracts.

Core services depend on these protocols only, never on a session or a
global store handle. ``SqlUnitOfWork`` is the production implementation;
the test suite substitutes an in-memory one.

Rules shared by every implementation:
- Nothing is durable until ``UnitOfWork.commit``.
- Leaving the ``async with`` block through an exception rolls back every
  change made since the last commit.
- Mutations go through repository methods; callers never mutate returned
  objects expecting them to be persisted.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal, NamedTuple, Protocol

from peerstudy.db.models import Group, Message, MessageType, Note, NoteType, Task, User, UserSubject


class TaskRow(NamedTuple):
    task: Task
    creator_name: str
    completion_count: int


@dataclass(frozen=True)
class NoteQuery:
    """Filters for listing one user's notes."""

    search: str = ""
    reviewed: bool | None = None
    subject: str = ""
    type: NoteType | None = None
    sort: Literal["newest", "oldest"] = "newest"
    offset: int = 0
    limit: int = 20


class UserRepository(Protocol):
    async def get(self, user_id: int) -> User | None: ...

    async def get_by_email(self, email: str) -> User | None: ...

    async def add(
        self,
        *,
        name: str,
        branch: str,
        email: str,
        password_hash: str,
        goals: str | None,
    ) -> User: ...

    async def set_group_preference(self, user_id: int, group_preference: int) -> None: ...

    async def set_group(self, user_id: int, group_id: int | None) -> bool:
        """Assign (or clear) membership. Returns False if no such user."""
        ...

    async def is_member(self, user_id: int, group_id: int) -> bool: ...

    async def list_ungrouped_except(self, user_id: int) -> list[User]:
        """Every other user with no group, ascending by id."""
        ...

    async def list_by_group(self, group_id: int) -> list[User]: ...

    async def list_by_ids(self, user_ids: list[int]) -> list[User]: ...

    async def get_subjects(self, user_id: int) -> list[UserSubject]: ...

    async def get_subjects_for(self, user_ids: list[int]) -> dict[int, list[UserSubject]]: ...

    async def replace_subjects(self, user_id: int, subjects: Mapping[str, int]) -> None:
        """Delete the whole subject set, then insert the given one."""
        ...


class GroupRepository(Protocol):
    async def add(self, name: str) -> Group: ...

    async def get(self, group_id: int) -> Group | None: ...

    async def update(self, group_id: int, *, name: str, icon_url: str | None) -> Group | None: ...


class MessageRepository(Protocol):
    async def add(
        self,
        *,
        group_id: int,
        sender_id: int,
        sender_name: str,
        content: str,
        type: MessageType,
    ) -> Message: ...

    async def get(self, message_id: int) -> Message | None: ...

    async def list_for_group(self, group_id: int) -> list[Message]:
        """Full history, oldest first."""
        ...

    async def search(self, group_id: int, term: str, *, limit: int) -> list[Message]:
        """Newest first; case-insensitive substring match on content when term is non-empty."""
        ...

    async def update_content(self, message_id: int, content: str) -> Message | None: ...

    async def delete(self, message_id: int) -> bool: ...

    async def clear_group(self, group_id: int) -> int: ...


class TaskRepository(Protocol):
    async def add(self, *, group_id: int, creator_id: int, subject: str, content: str) -> Task: ...

    async def get(self, task_id: int) -> Task | None: ...

    async def list_for_group(self, group_id: int) -> list[TaskRow]: ...

    async def has_completion(self, task_id: int, user_id: int) -> bool: ...

    async def add_completion(self, task_id: int, user_id: int) -> None:
        """Raises Conflict if the pair already exists."""
        ...

    async def completion_count(self, task_id: int) -> int: ...


class NoteRepository(Protocol):
    async def add(self, **fields: Any) -> Note: ...

    async def get_for_user(self, note_id: int, user_id: int) -> Note | None: ...

    async def find_upload_duplicate(self, user_id: int, file_name: str, file_size: int) -> Note | None: ...

    async def find_by_url(self, user_id: int, file_url: str) -> Note | None: ...

    async def list_for_user(self, user_id: int, query: NoteQuery) -> tuple[list[Note], int]: ...

    async def update(self, note_id: int, **fields: Any) -> Note | None: ...

    async def delete(self, note_id: int) -> bool: ...


class UnitOfWork(Protocol):
    users: UserRepository
    groups: GroupRepository
    messages: MessageRepository
    tasks: TaskRepository
    notes: NoteRepository

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...

    async def __aenter__(self) -> "UnitOfWork": ...

    async def __aexit__(self, exc_type, exc, tb) -> None: ...
