"""
Group Routes

Endpoints:
- POST /groups/join - Form a group from matching results
- GET /groups/{id} - Full group state for a member
- GET /groups/{id}/messages - Search message history
- PATCH|PUT /groups/{id} - Rename / change icon URL
- POST /groups/{id}/icon - Upload a new icon image
- DELETE /groups/{id}/messages, POST /groups/{id}/clear-chat - Clear chat
- POST /groups/{id}/leave - Leave the group
- POST /groups/{id}/tasks - Create a shared task
"""

from fastapi import APIRouter, File, Query, UploadFile, status

from peerstudy.api.deps import Broadcast, CurrentUser, Storage, Uow
from peerstudy.schemas.groups import (
    GroupFormRequest,
    GroupFormResponse,
    GroupState,
    GroupUpdateRequest,
    GroupUpdateResponse,
)
from peerstudy.schemas.messages import MessageRead
from peerstudy.schemas.tasks import TaskCreate, TaskRead
from peerstudy.services import chat, groups, tasks
from peerstudy.services.storage import UploadKind

router = APIRouter(prefix="/groups", tags=["groups"])


@router.post("/join", response_model=GroupFormResponse, status_code=status.HTTP_201_CREATED)
async def form_group(data: GroupFormRequest, current_user: CurrentUser, uow: Uow) -> GroupFormResponse:
    """
    Create a group with the caller and the chosen peers as members.

    All-or-nothing: a failure part way leaves no group and no membership
    changes behind.
    """
    group_id = await groups.form_group(uow, current_user.id, data.member_ids, data.group_name)
    return GroupFormResponse(group_id=group_id)


@router.get("/{group_id}", response_model=GroupState)
async def get_group(group_id: int, current_user: CurrentUser, uow: Uow) -> GroupState:
    return await groups.get_group_state(uow, current_user.id, group_id)


@router.get("/{group_id}/messages", response_model=list[MessageRead])
async def search_messages(
    group_id: int,
    current_user: CurrentUser,
    uow: Uow,
    search: str = Query(default="", max_length=255),
) -> list[MessageRead]:
    """Newest first, up to the configured limit."""
    return await chat.search_messages(uow, current_user.id, group_id, search)


@router.patch("/{group_id}", response_model=GroupUpdateResponse)
@router.put("/{group_id}", response_model=GroupUpdateResponse)
async def update_group(
    group_id: int,
    data: GroupUpdateRequest,
    current_user: CurrentUser,
    uow: Uow,
    hub: Broadcast,
) -> GroupUpdateResponse:
    group = await groups.update_group(uow, hub, current_user.id, group_id, data)
    return GroupUpdateResponse(group=group, icon_url=group.icon_url)


@router.post("/{group_id}/icon", response_model=GroupUpdateResponse)
async def upload_group_icon(
    group_id: int,
    current_user: CurrentUser,
    uow: Uow,
    hub: Broadcast,
    storage: Storage,
    icon: UploadFile = File(...),
) -> GroupUpdateResponse:
    # Membership is checked before anything is written to disk
    await groups.get_group_or_404(uow, group_id)
    await groups.require_member(uow, current_user.id, group_id)

    content = await icon.read()
    stored = await storage.save(UploadKind.GROUP_ICON, icon.filename or "", content, icon.content_type)
    try:
        group = await groups.set_group_icon(uow, hub, current_user.id, group_id, stored.url)
    except Exception:
        await storage.delete(stored)
        raise
    return GroupUpdateResponse(group=group, icon_url=group.icon_url)


@router.delete("/{group_id}/messages")
@router.post("/{group_id}/clear-chat")
async def clear_chat(group_id: int, current_user: CurrentUser, uow: Uow, hub: Broadcast) -> dict:
    removed = await groups.clear_chat(uow, hub, current_user.id, group_id)
    return {"success": True, "removed": removed}


@router.post("/{group_id}/leave")
async def leave_group(group_id: int, current_user: CurrentUser, uow: Uow) -> dict:
    await groups.leave_group(uow, current_user.id, group_id)
    return {"success": True}


@router.post("/{group_id}/tasks", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(group_id: int, data: TaskCreate, current_user: CurrentUser, uow: Uow) -> TaskRead:
    return await tasks.create_task(uow, current_user.id, group_id, data.subject, data.content)
