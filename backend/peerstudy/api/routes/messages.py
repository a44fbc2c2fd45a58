"""Message edit / unsend and task completion routes."""

from fastapi import APIRouter

from peerstudy.api.deps import Broadcast, CurrentUser, Uow
from peerstudy.schemas.messages import MessageEditRequest, MessageRead
from peerstudy.schemas.tasks import TaskCompletionResponse
from peerstudy.services import chat, tasks

router = APIRouter(tags=["messages"])


@router.put("/messages/{message_id}", response_model=MessageRead)
async def edit_message(
    message_id: int,
    data: MessageEditRequest,
    current_user: CurrentUser,
    uow: Uow,
    hub: Broadcast,
) -> MessageRead:
    """Edit one's own text message. Members see a message-updated event."""
    return await chat.edit_message(uow, hub, current_user.id, message_id, data.content)


@router.delete("/messages/{message_id}")
async def delete_message(message_id: int, current_user: CurrentUser, uow: Uow, hub: Broadcast) -> dict:
    """Unsend for everyone. Members see a message-deleted event."""
    await chat.delete_message(uow, hub, current_user.id, message_id)
    return {"success": True}


@router.post("/tasks/{task_id}/complete", response_model=TaskCompletionResponse)
async def complete_task(task_id: int, current_user: CurrentUser, uow: Uow) -> TaskCompletionResponse:
    return await tasks.complete_task(uow, current_user.id, task_id)
