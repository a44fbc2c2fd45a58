"""Shared group tasks."""

import logging

from peerstudy.exceptions import NotFound
from peerstudy.repositories import UnitOfWork
from peerstudy.schemas.tasks import TaskCompletionResponse, TaskRead
from peerstudy.services.groups import get_group_or_404, require_member

logger = logging.getLogger(__name__)


async def create_task(uow: UnitOfWork, user_id: int, group_id: int, subject: str, content: str) -> TaskRead:
    await get_group_or_404(uow, group_id)
    await require_member(uow, user_id, group_id)

    creator = await uow.users.get(user_id)
    if creator is None:
        raise NotFound("User", user_id)

    task = await uow.tasks.add(group_id=group_id, creator_id=user_id, subject=subject, content=content)
    await uow.commit()

    return TaskRead(
        id=task.id,
        group_id=task.group_id,
        creator_id=task.creator_id,
        creator_name=creator.name,
        subject=task.subject,
        content=task.content,
        completion_count=0,
        created_at=task.created_at,
    )


async def complete_task(uow: UnitOfWork, user_id: int, task_id: int) -> TaskCompletionResponse:
    """
    Mark a task complete for the caller.

    Completing the same task twice raises Conflict and changes nothing.
    """
    task = await uow.tasks.get(task_id)
    if task is None:
        raise NotFound("Task", task_id)
    await require_member(uow, user_id, task.group_id)

    await uow.tasks.add_completion(task_id, user_id)
    await uow.commit()

    count = await uow.tasks.completion_count(task_id)
    logger.debug("Task %s completed by user %s (%d total)", task_id, user_id, count)
    return TaskCompletionResponse(task_id=task_id, completion_count=count)
