"""Group formation and group settings tests."""

import pytest

from conftest import RecordingTransport
from fakes import InjectedFailure
from peerstudy.exceptions import AtomicityFailure, AuthorizationDenied, Conflict, NotFound, ValidationFailure
from peerstudy.realtime.broadcaster import ChannelConnection
from peerstudy.schemas.groups import GroupUpdateRequest
from peerstudy.schemas.realtime import CHAT_CLEARED, GROUP_UPDATED
from peerstudy.services import groups


class TestFormGroup:
    async def test_caller_and_members_join_a_default_named_group(self, uow):
        """Caller 3 with members 7 and 9, no name given."""
        ids = [uow.seed_user(f"User {i}") for i in range(1, 10)]
        caller, member_a, member_b = ids[2], ids[6], ids[8]
        assert (caller, member_a, member_b) == (3, 7, 9)

        group_id = await groups.form_group(uow, caller, [member_a, member_b])

        assert len(uow.committed_rows("groups")) == 1
        assert uow.committed_rows("groups")[group_id]["name"] == "New Study Group"
        for user_id in (caller, member_a, member_b):
            assert uow.group_of(user_id) == group_id
        assert uow.group_of(ids[0]) is None

    async def test_blank_name_falls_back_to_default(self, uow):
        caller = uow.seed_user("Caller")
        peer = uow.seed_user("Peer")
        group_id = await groups.form_group(uow, caller, [peer], "   ")
        assert uow.committed_rows("groups")[group_id]["name"] == "New Study Group"

    async def test_custom_name_is_trimmed(self, uow):
        caller = uow.seed_user("Caller")
        peer = uow.seed_user("Peer")
        group_id = await groups.form_group(uow, caller, [peer], "  Calculus Crew ")
        assert uow.committed_rows("groups")[group_id]["name"] == "Calculus Crew"

    async def test_no_other_members_is_rejected_before_writing(self, uow):
        caller = uow.seed_user("Caller")
        with pytest.raises(ValidationFailure):
            await groups.form_group(uow, caller, [caller])
        assert uow.committed_rows("groups") == {}

    # ── Atomicity ────────────────────────────────────────────────────────

    @pytest.mark.parametrize("call", [1, 2, 3])
    async def test_failure_mid_write_leaves_nothing_behind(self, uow, call):
        """Whichever membership write fails, no group and no membership survive."""
        caller = uow.seed_user("Caller")
        members = [uow.seed_user("A"), uow.seed_user("B")]
        uow.fail_on("users.set_group", call=call)

        with pytest.raises(AtomicityFailure) as exc_info:
            await groups.form_group(uow, caller, members)

        assert isinstance(exc_info.value.__cause__, InjectedFailure)
        assert uow.committed_rows("groups") == {}
        assert uow.data["tables"]["groups"] == {}
        for user_id in [caller, *members]:
            assert uow.group_of(user_id) is None
        assert uow.rollbacks == 1

    async def test_failure_creating_the_group_row(self, uow):
        caller = uow.seed_user("Caller")
        peer = uow.seed_user("Peer")
        uow.fail_on("groups.add")

        with pytest.raises(AtomicityFailure):
            await groups.form_group(uow, caller, [peer])
        assert uow.group_of(caller) is None

    # ── Strict mode ──────────────────────────────────────────────────────

    async def test_default_mode_trusts_member_ids(self, uow):
        caller = uow.seed_user("Caller")
        taken = uow.seed_user("Taken")
        old_group = uow.seed_group("Old", [taken])

        group_id = await groups.form_group(uow, caller, [taken])

        assert group_id != old_group
        assert uow.group_of(taken) == group_id

    async def test_default_mode_can_empty_the_previous_group(self, uow):
        caller = uow.seed_user("Caller")
        taken = uow.seed_user("Taken")
        old_group = uow.seed_group("Old", [caller, taken])

        group_id = await groups.form_group(uow, caller, [taken])

        assert old_group in uow.committed_rows("groups")
        assert not await uow.users.is_member(caller, old_group)
        assert not await uow.users.is_member(taken, old_group)
        assert uow.group_of(caller) == uow.group_of(taken) == group_id

    async def test_strict_mode_rejects_grouped_member(self, uow):
        caller = uow.seed_user("Caller")
        taken = uow.seed_user("Taken")
        free = uow.seed_user("Free")
        old_group = uow.seed_group("Old", [taken])

        with pytest.raises(Conflict):
            await groups.form_group(uow, caller, [free, taken], strict=True)

        assert len(uow.committed_rows("groups")) == 1
        assert uow.group_of(taken) == old_group
        assert uow.group_of(free) is None

    async def test_strict_mode_rejects_unknown_member(self, uow):
        caller = uow.seed_user("Caller")
        with pytest.raises(NotFound):
            await groups.form_group(uow, caller, [404], strict=True)
        assert uow.committed_rows("groups") == {}


class TestGroupState:
    async def test_member_sees_members_messages_and_tasks(self, uow):
        alice = uow.seed_user("Alice")
        bob = uow.seed_user("Bob")
        group_id = uow.seed_group("Study", [alice, bob])
        await uow.messages.add(group_id=group_id, sender_id=alice, sender_name="Alice", content="hi", type="text")
        await uow.messages.add(group_id=group_id, sender_id=bob, sender_name="Bob", content="yo", type="text")
        task = await uow.tasks.add(group_id=group_id, creator_id=bob, subject="Math", content="Ch. 4")
        await uow.tasks.add_completion(task.id, alice)
        await uow.commit()

        state = await groups.get_group_state(uow, alice, group_id)

        assert state.name == "Study"
        assert [m.name for m in state.members] == ["Alice", "Bob"]
        assert [m.content for m in state.messages] == ["hi", "yo"]
        assert state.tasks[0].creator_name == "Bob"
        assert state.tasks[0].completion_count == 1

    async def test_non_member_is_denied(self, uow):
        alice = uow.seed_user("Alice")
        outsider = uow.seed_user("Outsider")
        group_id = uow.seed_group("Study", [alice])
        with pytest.raises(AuthorizationDenied):
            await groups.get_group_state(uow, outsider, group_id)

    async def test_unknown_group(self, uow):
        alice = uow.seed_user("Alice")
        with pytest.raises(NotFound):
            await groups.get_group_state(uow, alice, 42)


class TestGroupSettings:
    async def test_rename_publishes_group_updated(self, uow, hub):
        alice = uow.seed_user("Alice")
        group_id = uow.seed_group("Old name", [alice])
        connection = ChannelConnection(RecordingTransport())
        hub.join(connection, group_id)

        group = await groups.update_group(uow, hub, alice, group_id, GroupUpdateRequest(name="New name"))

        assert group.name == "New name"
        frame = connection.queue.get_nowait()
        assert frame["event"] == GROUP_UPDATED
        assert frame["data"]["name"] == "New name"

    async def test_blank_name_rejected(self, uow, hub):
        alice = uow.seed_user("Alice")
        group_id = uow.seed_group("Keep", [alice])
        with pytest.raises(ValidationFailure):
            await groups.update_group(uow, hub, alice, group_id, GroupUpdateRequest(name="  "))
        assert uow.committed_rows("groups")[group_id]["name"] == "Keep"

    async def test_explicit_null_icon_clears_it_and_omitted_icon_keeps_it(self, uow, hub):
        alice = uow.seed_user("Alice")
        group_id = uow.seed_group("Study", [alice])
        await groups.set_group_icon(uow, hub, alice, group_id, "/uploads/groups/a.png")

        kept = await groups.update_group(uow, hub, alice, group_id, GroupUpdateRequest(name="Renamed"))
        assert kept.icon_url == "/uploads/groups/a.png"

        cleared = await groups.update_group(
            uow, hub, alice, group_id, GroupUpdateRequest.model_validate({"icon_url": None})
        )
        assert cleared.icon_url is None
        assert cleared.name == "Renamed"

    async def test_clear_chat(self, uow, hub):
        alice = uow.seed_user("Alice")
        group_id = uow.seed_group("Study", [alice])
        await uow.messages.add(group_id=group_id, sender_id=alice, sender_name="Alice", content="a", type="text")
        await uow.commit()
        connection = ChannelConnection(RecordingTransport())
        hub.join(connection, group_id)

        removed = await groups.clear_chat(uow, hub, alice, group_id)

        assert removed == 1
        assert uow.committed_rows("messages") == {}
        assert connection.queue.get_nowait() == {"event": CHAT_CLEARED, "data": {"group_id": group_id}}

    async def test_leave_group(self, uow):
        alice = uow.seed_user("Alice")
        group_id = uow.seed_group("Study", [alice])
        await groups.leave_group(uow, alice, group_id)
        assert uow.group_of(alice) is None
        with pytest.raises(AuthorizationDenied):
            await groups.leave_group(uow, alice, group_id)
