"""Shared task tests."""

import pytest

from peerstudy.exceptions import AuthorizationDenied, Conflict, NotFound
from peerstudy.services import tasks


@pytest.fixture
def members(uow):
    ids = [uow.seed_user(name) for name in ("Ana", "Ben", "Cy")]
    group_id = uow.seed_group("Chem", ids)
    return ids, group_id


class TestTasks:
    async def test_create_task(self, uow, members):
        (ana, _, _), group_id = members

        task = await tasks.create_task(uow, ana, group_id, "Chemistry", "Balance equations")

        assert task.creator_name == "Ana"
        assert task.completion_count == 0
        assert task.id in uow.committed_rows("tasks")

    async def test_two_members_complete_then_a_repeat_conflicts(self, uow, members):
        """Completion count rises to 2 and a repeated completion changes nothing."""
        (ana, ben, _), group_id = members
        task = await tasks.create_task(uow, ana, group_id, "Chemistry", "Balance equations")

        first = await tasks.complete_task(uow, ana, task.id)
        second = await tasks.complete_task(uow, ben, task.id)

        assert first.completion_count == 1
        assert second.completion_count == 2

        with pytest.raises(Conflict):
            await tasks.complete_task(uow, ana, task.id)
        assert len(uow.committed_rows("task_completions")) == 2

    async def test_outsider_cannot_create_or_complete(self, uow, members):
        (ana, _, _), group_id = members
        outsider = uow.seed_user("Outsider")
        task = await tasks.create_task(uow, ana, group_id, "Chemistry", "Lab report")

        with pytest.raises(AuthorizationDenied):
            await tasks.create_task(uow, outsider, group_id, "Chemistry", "Spam")
        with pytest.raises(AuthorizationDenied):
            await tasks.complete_task(uow, outsider, task.id)

    async def test_unknown_task_and_group(self, uow, members):
        (ana, _, _), _ = members
        with pytest.raises(NotFound):
            await tasks.complete_task(uow, ana, 999)
        with pytest.raises(NotFound):
            await tasks.create_task(uow, ana, 999, "Math", "x")
