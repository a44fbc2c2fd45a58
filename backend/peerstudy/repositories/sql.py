"""SQLAlchemy implementations of the repository contracts."""

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import String, cast, delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from peerstudy.db.models import (
    Group,
    Message,
    MessageType,
    Note,
    Task,
    TaskCompletion,
    User,
    UserSubject,
)
from peerstudy.exceptions import Conflict
from peerstudy.repositories.base import NoteQuery, TaskRow

logger = logging.getLogger(__name__)


class SqlUserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: int) -> User | None:
        return await self.session.get(User, user_id)

    async def get_by_email(self, email: str) -> User | None:
        result = await self.session.execute(select(User).where(func.lower(User.email) == email.lower()))
        return result.scalar_one_or_none()

    async def add(
        self,
        *,
        name: str,
        branch: str,
        email: str,
        password_hash: str,
        goals: str | None,
    ) -> User:
        user = User(
            name=name,
            branch=branch,
            email=email.lower(),
            password_hash=password_hash,
            goals=goals,
            group_preference=3,
        )
        self.session.add(user)
        await self.session.flush()  # Get user.id
        return user

    async def set_group_preference(self, user_id: int, group_preference: int) -> None:
        await self.session.execute(
            update(User).where(User.id == user_id).values(group_preference=group_preference)
        )

    async def set_group(self, user_id: int, group_id: int | None) -> bool:
        result = await self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(group_id=group_id)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount > 0

    async def is_member(self, user_id: int, group_id: int) -> bool:
        result = await self.session.execute(
            select(User.id).where(User.id == user_id, User.group_id == group_id)
        )
        return result.scalar_one_or_none() is not None

    async def list_ungrouped_except(self, user_id: int) -> list[User]:
        result = await self.session.execute(
            select(User).where(User.id != user_id, User.group_id.is_(None)).order_by(User.id)
        )
        return list(result.scalars().all())

    async def list_by_group(self, group_id: int) -> list[User]:
        result = await self.session.execute(
            select(User).where(User.group_id == group_id).order_by(User.id)
        )
        return list(result.scalars().all())

    async def list_by_ids(self, user_ids: list[int]) -> list[User]:
        if not user_ids:
            return []
        result = await self.session.execute(
            select(User).where(User.id.in_(user_ids)).order_by(User.id)
        )
        return list(result.scalars().all())

    async def get_subjects(self, user_id: int) -> list[UserSubject]:
        result = await self.session.execute(
            select(UserSubject).where(UserSubject.user_id == user_id).order_by(UserSubject.subject_name)
        )
        return list(result.scalars().all())

    async def get_subjects_for(self, user_ids: list[int]) -> dict[int, list[UserSubject]]:
        by_user: dict[int, list[UserSubject]] = {user_id: [] for user_id in user_ids}
        if not user_ids:
            return by_user
        result = await self.session.execute(
            select(UserSubject)
            .where(UserSubject.user_id.in_(user_ids))
            .order_by(UserSubject.user_id, UserSubject.subject_name)
        )
        for subject in result.scalars():
            by_user[subject.user_id].append(subject)
        return by_user

    async def replace_subjects(self, user_id: int, subjects: Mapping[str, int]) -> None:
        await self.session.execute(delete(UserSubject).where(UserSubject.user_id == user_id))
        self.session.add_all(
            UserSubject(user_id=user_id, subject_name=name, score=score)
            for name, score in subjects.items()
        )
        await self.session.flush()


class SqlGroupRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, name: str) -> Group:
        group = Group(name=name)
        self.session.add(group)
        await self.session.flush()  # Get group.id
        return group

    async def get(self, group_id: int) -> Group | None:
        return await self.session.get(Group, group_id)

    async def update(self, group_id: int, *, name: str, icon_url: str | None) -> Group | None:
        group = await self.get(group_id)
        if group is None:
            return None
        group.name = name
        group.icon_url = icon_url
        await self.session.flush()
        return group


class SqlMessageRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(
        self,
        *,
        group_id: int,
        sender_id: int,
        sender_name: str,
        content: str,
        type: MessageType,
    ) -> Message:
        message = Message(
            group_id=group_id,
            sender_id=sender_id,
            sender_name=sender_name,
            content=content,
            type=type,
        )
        self.session.add(message)
        await self.session.flush()
        return message

    async def get(self, message_id: int) -> Message | None:
        return await self.session.get(Message, message_id)

    async def list_for_group(self, group_id: int) -> list[Message]:
        result = await self.session.execute(
            select(Message)
            .where(Message.group_id == group_id)
            .order_by(Message.timestamp.asc(), Message.id.asc())
        )
        return list(result.scalars().all())

    async def search(self, group_id: int, term: str, *, limit: int) -> list[Message]:
        query = select(Message).where(Message.group_id == group_id)
        if term:
            query = query.where(func.lower(Message.content).like(f"%{term.lower()}%"))
        query = query.order_by(Message.timestamp.desc(), Message.id.desc()).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def update_content(self, message_id: int, content: str) -> Message | None:
        message = await self.get(message_id)
        if message is None:
            return None
        message.content = content
        await self.session.flush()
        return message

    async def delete(self, message_id: int) -> bool:
        result = await self.session.execute(delete(Message).where(Message.id == message_id))
        return result.rowcount > 0

    async def clear_group(self, group_id: int) -> int:
        result = await self.session.execute(delete(Message).where(Message.group_id == group_id))
        return result.rowcount


class SqlTaskRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, *, group_id: int, creator_id: int, subject: str, content: str) -> Task:
        task = Task(group_id=group_id, creator_id=creator_id, subject=subject, content=content)
        self.session.add(task)
        await self.session.flush()
        return task

    async def get(self, task_id: int) -> Task | None:
        return await self.session.get(Task, task_id)

    async def list_for_group(self, group_id: int) -> list[TaskRow]:
        completion_count = (
            select(func.count())
            .select_from(TaskCompletion)
            .where(TaskCompletion.task_id == Task.id)
            .correlate(Task)
            .scalar_subquery()
        )
        result = await self.session.execute(
            select(Task, User.name, completion_count)
            .join(User, Task.creator_id == User.id)
            .where(Task.group_id == group_id)
            .order_by(Task.created_at.asc(), Task.id.asc())
        )
        return [TaskRow(task, creator_name, count or 0) for task, creator_name, count in result.all()]

    async def has_completion(self, task_id: int, user_id: int) -> bool:
        completion = await self.session.get(TaskCompletion, (task_id, user_id))
        return completion is not None

    async def add_completion(self, task_id: int, user_id: int) -> None:
        if await self.has_completion(task_id, user_id):
            raise Conflict("Already completed", context={"task_id": task_id, "user_id": user_id})
        self.session.add(TaskCompletion(task_id=task_id, user_id=user_id))
        try:
            await self.session.flush()
        except IntegrityError as e:
            # Lost a race with a concurrent completion of the same pair
            logger.info("Duplicate completion for task %s by user %s", task_id, user_id)
            raise Conflict("Already completed", context={"task_id": task_id, "user_id": user_id}) from e

    async def completion_count(self, task_id: int) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(TaskCompletion).where(TaskCompletion.task_id == task_id)
        )
        return result.scalar_one()


class SqlNoteRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, **fields: Any) -> Note:
        note = Note(**fields)
        self.session.add(note)
        await self.session.flush()
        return note

    async def get_for_user(self, note_id: int, user_id: int) -> Note | None:
        result = await self.session.execute(
            select(Note).where(Note.id == note_id, Note.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def find_upload_duplicate(self, user_id: int, file_name: str, file_size: int) -> Note | None:
        result = await self.session.execute(
            select(Note)
            .where(Note.user_id == user_id, Note.file_name == file_name, Note.file_size == file_size)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_by_url(self, user_id: int, file_url: str) -> Note | None:
        result = await self.session.execute(
            select(Note).where(Note.user_id == user_id, Note.file_url == file_url).limit(1)
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: int, query: NoteQuery) -> tuple[list[Note], int]:
        stmt = select(Note).where(Note.user_id == user_id)

        if query.search:
            stmt = stmt.where(func.lower(Note.file_name).like(f"%{query.search.lower()}%"))
        if query.reviewed is not None:
            stmt = stmt.where(Note.reviewed == query.reviewed)
        if query.type is not None:
            stmt = stmt.where(Note.type == query.type)
        if query.subject:
            # Substring match on the serialised tag list (stored without \u escapes)
            stmt = stmt.where(cast(Note.subject_tags, String).like(f"%{query.subject}%"))

        # Count before pagination
        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self.session.execute(count_stmt)).scalar_one()

        if query.sort == "oldest":
            stmt = stmt.order_by(Note.created_at.asc(), Note.id.asc())
        else:
            stmt = stmt.order_by(Note.created_at.desc(), Note.id.desc())
        result = await self.session.execute(stmt.offset(query.offset).limit(query.limit))
        return list(result.scalars().all()), total

    async def update(self, note_id: int, **fields: Any) -> Note | None:
        note = await self.session.get(Note, note_id)
        if note is None:
            return None
        for key, value in fields.items():
            setattr(note, key, value)
        await self.session.flush()
        return note

    async def delete(self, note_id: int) -> bool:
        result = await self.session.execute(delete(Note).where(Note.id == note_id))
        return result.rowcount > 0


class SqlUnitOfWork:
    """
    Unit of work over one AsyncSession.

    Either wraps an existing session (HTTP requests share the session yielded
    by ``get_db``) or opens its own from a session factory (realtime events).
    """

    def __init__(
        self,
        session: AsyncSession | None = None,
        *,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        if session is None and session_factory is None:
            raise ValueError("SqlUnitOfWork needs a session or a session factory")
        self._session_factory = session_factory
        self._owns_session = session is None
        self.session = session
        if session is not None:
            self._bind(session)

    def _bind(self, session: AsyncSession) -> None:
        self.session = session
        self.users = SqlUserRepository(session)
        self.groups = SqlGroupRepository(session)
        self.messages = SqlMessageRepository(session)
        self.tasks = SqlTaskRepository(session)
        self.notes = SqlNoteRepository(session)

    async def __aenter__(self) -> "SqlUnitOfWork":
        if self._owns_session:
            self._bind(self._session_factory())
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is not None:
                await self.rollback()
        finally:
            if self._owns_session:
                await self.session.close()

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
