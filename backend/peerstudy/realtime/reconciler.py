"""
Client-side view of one group's chat.

Used by clients of the realtime channel (and by the tests as the reference
behaviour for them). The server-confirmed message list is the canonical
state; everything else here is a local overlay that is never sent anywhere:

- sending never appends locally, the client waits for its own new-message
- unsend removes optimistically and reinstates the message if the server
  call fails
- delete-for-me hides a message for the lifetime of this object
- reactions and playback rates are per-message local preferences
"""

import bisect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import ValidationError

from peerstudy.schemas.groups import GroupRead, GroupState
from peerstudy.schemas.messages import MessageRead
from peerstudy.schemas.realtime import (
    CHAT_CLEARED,
    GROUP_UPDATED,
    MESSAGE_DELETED,
    MESSAGE_UPDATED,
    NEW_MESSAGE,
    SEND_MESSAGE,
    SendMessageEvent,
)

logger = logging.getLogger(__name__)

Emit = Callable[[str, dict[str, Any]], Awaitable[None]]
DeleteCall = Callable[[int], Awaitable[None]]


def _order_key(message: MessageRead) -> tuple:
    return (message.timestamp, message.id)


class ChatStateReconciler:
    def __init__(self, state: GroupState | None = None):
        self.group: GroupRead | None = None
        self.messages: list[MessageRead] = []
        self.hidden_ids: set[int] = set()
        self.reactions: dict[int, list[str]] = {}
        self.playback_rates: dict[int, float] = {}
        # Unsends awaiting the server, and which of those it removed meanwhile
        self._in_flight: set[int] = set()
        self._server_removed: set[int] = set()
        self._clear_generation = 0
        if state is not None:
            self.load(state)

    @property
    def group_id(self) -> int | None:
        return self.group.id if self.group else None

    def load(self, state: GroupState) -> None:
        """Replace the canonical state with a full reload. Local overlays survive."""
        self.group = GroupRead.model_validate(state.model_dump(include=set(GroupRead.model_fields)))
        self.messages = sorted(state.messages, key=_order_key)

    # -------------------------------------------------------------------------
    # Broadcast events
    # -------------------------------------------------------------------------

    def apply(self, event: str, data: dict[str, Any]) -> bool:
        """
        Apply one broadcast event. Returns True if the view changed.

        Events for another group, unknown events and malformed payloads are
        ignored.
        """
        try:
            if event == NEW_MESSAGE:
                return self._on_new_message(MessageRead.model_validate(data))
            if event == MESSAGE_UPDATED:
                return self._on_message_updated(MessageRead.model_validate(data))
            if event == MESSAGE_DELETED:
                return self._on_message_deleted(int(data["id"]), int(data["group_id"]))
            if event == CHAT_CLEARED:
                return self._on_chat_cleared(int(data["group_id"]))
            if event == GROUP_UPDATED:
                return self._on_group_updated(GroupRead.model_validate(data))
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring malformed %s event: %s", event, e)
            return False
        return False

    def _is_other_group(self, group_id: int) -> bool:
        return self.group is not None and group_id != self.group.id

    def _on_new_message(self, message: MessageRead) -> bool:
        if self._is_other_group(message.group_id):
            return False
        if any(m.id == message.id for m in self.messages):
            return False
        self.messages.append(message)
        return True

    def _on_message_updated(self, message: MessageRead) -> bool:
        if self._is_other_group(message.group_id):
            return False
        for index, existing in enumerate(self.messages):
            if existing.id == message.id:
                self.messages[index] = existing.model_copy(update=message.model_dump())
                return True
        return False

    def _on_message_deleted(self, message_id: int, group_id: int) -> bool:
        if self._is_other_group(group_id):
            return False
        if message_id in self._in_flight:
            self._server_removed.add(message_id)
        before = len(self.messages)
        self.messages = [m for m in self.messages if m.id != message_id]
        return len(self.messages) != before

    def _on_chat_cleared(self, group_id: int) -> bool:
        if self._is_other_group(group_id):
            return False
        self._clear_generation += 1
        changed = bool(self.messages)
        self.messages = []
        return changed

    def _on_group_updated(self, group: GroupRead) -> bool:
        if self._is_other_group(group.id):
            return False
        self.group = group
        return True

    # -------------------------------------------------------------------------
    # Local actions
    # -------------------------------------------------------------------------

    async def send(self, event: SendMessageEvent, emit: Emit) -> None:
        """Emit a send-message frame. The local list only changes when the broadcast arrives."""
        await emit(SEND_MESSAGE, event.model_dump(mode="json"))

    async def unsend(self, message_id: int, delete_call: DeleteCall) -> bool:
        """
        Optimistically remove one's own message, rolling back on failure.

        Returns True if the server confirmed the deletion.
        """
        removed = next((m for m in self.messages if m.id == message_id), None)
        if removed is None:
            return False
        self.messages = [m for m in self.messages if m.id != message_id]
        clear_generation = self._clear_generation
        self._in_flight.add(message_id)

        try:
            await delete_call(message_id)
        except Exception as e:
            logger.warning("Unsend of message %s failed, restoring it: %s", message_id, e)
            self._reinstate(removed, clear_generation)
            return False
        finally:
            self._in_flight.discard(message_id)
            self._server_removed.discard(message_id)
        return True

    def _reinstate(self, message: MessageRead, clear_generation: int) -> None:
        # Events that arrived meanwhile win over the rollback
        if clear_generation != self._clear_generation or message.id in self._server_removed:
            return
        if any(m.id == message.id for m in self.messages):
            return
        keys = [_order_key(m) for m in self.messages]
        self.messages.insert(bisect.bisect_right(keys, _order_key(message)), message)

    def delete_for_me(self, message_id: int) -> None:
        self.hidden_ids.add(message_id)

    def add_reaction(self, message_id: int, emoji: str) -> None:
        current = self.reactions.setdefault(message_id, [])
        if emoji not in current:
            current.append(emoji)

    def reactions_for(self, message_id: int) -> list[str]:
        return list(self.reactions.get(message_id, []))

    def set_playback_rate(self, message_id: int, rate: float) -> None:
        if rate <= 0:
            raise ValueError("Playback rate must be positive")
        self.playback_rates[message_id] = rate

    def playback_rate(self, message_id: int) -> float:
        return self.playback_rates.get(message_id, 1.0)

    def visible_messages(self) -> list[MessageRead]:
        """Canonical messages minus the ones hidden locally."""
        return [m for m in self.messages if m.id not in self.hidden_ids]
