"""Group formation, group state and group settings."""

import logging

from peerstudy.config import get_settings
from peerstudy.db.models import Group
from peerstudy.exceptions import (
    AtomicityFailure,
    AuthorizationDenied,
    Conflict,
    NotFound,
    PeerStudyError,
    ValidationFailure,
)
from peerstudy.realtime.broadcaster import Broadcaster
from peerstudy.repositories import UnitOfWork
from peerstudy.schemas.groups import GroupRead, GroupState, GroupUpdateRequest
from peerstudy.schemas.messages import ChatClearedPayload, MessageRead
from peerstudy.schemas.realtime import CHAT_CLEARED, GROUP_UPDATED
from peerstudy.schemas.tasks import TaskRead
from peerstudy.schemas.user import MemberRead

logger = logging.getLogger(__name__)


async def get_group_or_404(uow: UnitOfWork, group_id: int) -> Group:
    group = await uow.groups.get(group_id)
    if group is None:
        raise NotFound("Group", group_id)
    return group


async def require_member(uow: UnitOfWork, user_id: int, group_id: int) -> None:
    """Raise AuthorizationDenied unless the user currently belongs to the group."""
    if not await uow.users.is_member(user_id, group_id):
        raise AuthorizationDenied("Not a group member", context={"user_id": user_id, "group_id": group_id})


async def form_group(
    uow: UnitOfWork,
    caller_id: int,
    member_ids: list[int],
    group_name: str | None = None,
    *,
    strict: bool | None = None,
) -> int:
    """
    Create a group and assign the caller plus the chosen peers, atomically.

    Either the group row and every membership change are committed together
    or none of them is. Unexpected persistence failures are rolled back and
    surfaced as AtomicityFailure.

    Listed ids are trusted by default (they come from recommend_peers). With
    ``strict`` (or STRICT_GROUP_FORMATION) every id must exist and still be
    ungrouped when the transaction runs. In the default mode an already
    grouped caller or peer is moved, which can leave their previous group
    with no members; that group row is kept.
    """
    settings = get_settings()
    if strict is None:
        strict = settings.strict_group_formation

    name = (group_name or "").strip() or settings.default_group_name
    peers = list(dict.fromkeys(member_id for member_id in member_ids if member_id != caller_id))
    if not peers:
        raise ValidationFailure("Choose at least one other member", field="member_ids")

    try:
        if strict:
            await _check_members_available(uow, peers)

        group = await uow.groups.add(name)
        if not await uow.users.set_group(caller_id, group.id):
            raise NotFound("User", caller_id)
        for member_id in peers:
            await uow.users.set_group(member_id, group.id)
        await uow.commit()
    except PeerStudyError:
        await uow.rollback()
        raise
    except Exception as e:
        await uow.rollback()
        logger.exception("Group formation for user %s rolled back", caller_id)
        raise AtomicityFailure("Could not create the group", context={"caller_id": caller_id}) from e

    logger.info("User %s formed group %s with members %s", caller_id, group.id, peers)
    return group.id


async def _check_members_available(uow: UnitOfWork, member_ids: list[int]) -> None:
    users = {user.id: user for user in await uow.users.list_by_ids(member_ids)}
    missing = [member_id for member_id in member_ids if member_id not in users]
    if missing:
        raise NotFound("User", missing[0])
    grouped = [member_id for member_id in member_ids if users[member_id].group_id is not None]
    if grouped:
        raise Conflict("Some members already belong to a group", context={"member_ids": grouped})


async def get_group_state(uow: UnitOfWork, user_id: int, group_id: int) -> GroupState:
    """Group metadata, members, full message history and tasks with completion counts."""
    group = await get_group_or_404(uow, group_id)
    await require_member(uow, user_id, group_id)

    members = await uow.users.list_by_group(group_id)
    messages = await uow.messages.list_for_group(group_id)
    tasks = await uow.tasks.list_for_group(group_id)

    return GroupState(
        id=group.id,
        name=group.name,
        icon_url=group.icon_url,
        created_at=group.created_at,
        members=[MemberRead.model_validate(member) for member in members],
        messages=[MessageRead.model_validate(message) for message in messages],
        tasks=[
            TaskRead(
                id=row.task.id,
                group_id=row.task.group_id,
                creator_id=row.task.creator_id,
                creator_name=row.creator_name,
                subject=row.task.subject,
                content=row.task.content,
                completion_count=row.completion_count,
                created_at=row.task.created_at,
            )
            for row in tasks
        ],
    )


async def update_group(
    uow: UnitOfWork,
    broadcaster: Broadcaster,
    user_id: int,
    group_id: int,
    data: GroupUpdateRequest,
) -> GroupRead:
    """Rename and/or change the icon, then publish group-updated."""
    group = await get_group_or_404(uow, group_id)
    await require_member(uow, user_id, group_id)

    name = group.name
    if "name" in data.model_fields_set and data.name is not None:
        name = data.name.strip()
    if not name:
        raise ValidationFailure("Group name is required", field="name")

    icon_url = group.icon_url
    if "icon_url" in data.model_fields_set:
        icon_url = (data.icon_url or "").strip() or None

    return await _save_and_publish(uow, broadcaster, group_id, name=name, icon_url=icon_url)


async def set_group_icon(
    uow: UnitOfWork,
    broadcaster: Broadcaster,
    user_id: int,
    group_id: int,
    icon_url: str,
) -> GroupRead:
    group = await get_group_or_404(uow, group_id)
    await require_member(uow, user_id, group_id)
    return await _save_and_publish(uow, broadcaster, group_id, name=group.name, icon_url=icon_url)


async def _save_and_publish(
    uow: UnitOfWork,
    broadcaster: Broadcaster,
    group_id: int,
    *,
    name: str,
    icon_url: str | None,
) -> GroupRead:
    group = await uow.groups.update(group_id, name=name, icon_url=icon_url)
    if group is None:
        raise NotFound("Group", group_id)
    await uow.commit()

    payload = GroupRead.model_validate(group)
    broadcaster.publish(group_id, GROUP_UPDATED, payload)
    return payload


async def clear_chat(uow: UnitOfWork, broadcaster: Broadcaster, user_id: int, group_id: int) -> int:
    """Delete the whole message history of a group. Any member may do this."""
    await get_group_or_404(uow, group_id)
    await require_member(uow, user_id, group_id)

    removed = await uow.messages.clear_group(group_id)
    await uow.commit()

    broadcaster.publish(group_id, CHAT_CLEARED, ChatClearedPayload(group_id=group_id))
    logger.info("User %s cleared %d messages in group %s", user_id, removed, group_id)
    return removed


async def leave_group(uow: UnitOfWork, user_id: int, group_id: int) -> None:
    await get_group_or_404(uow, group_id)
    await require_member(uow, user_id, group_id)
    await uow.users.set_group(user_id, None)
    await uow.commit()
    logger.info("User %s left group %s", user_id, group_id)
