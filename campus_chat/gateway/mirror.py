"""In-process mirror of the remote store.

Used directly while the remote store is disabled or unreachable, and kept in
step with every authoritative remote response so that reads made later in the
session see earlier writes. Collections are append-only. Entities created
here get ids of the form ``local-<n>`` from monotonically increasing
counters, a namespace the remote store never assigns, so syncing remote
data cannot overwrite a write made while the remote store was down. No
method awaits between reading and writing a collection, so each mutation is
atomic on the event loop.
"""

import copy
import itertools
from typing import Any, Dict, Iterator, List, Optional

from campus_chat.messaging.exceptions import EntityNotFoundError
from campus_chat.messaging.types import ChatUser, Conversation, Message, Reaction
from campus_chat.utils.logger_config import get_logger

from .base import ChatStore

logger = get_logger(__name__)

LOCAL_ID_PREFIX = "local-"


def is_local_id(entity_id: Any) -> bool:
    """True for ids assigned by the mirror rather than the remote store."""
    return isinstance(entity_id, str) and entity_id.startswith(LOCAL_ID_PREFIX)


class MirrorChatStore(ChatStore):
    """Process-wide in-memory copy of users, conversations and messages."""

    def __init__(
        self,
        users: Optional[List[ChatUser]] = None,
        conversations: Optional[List[Conversation]] = None,
        messages: Optional[List[Message]] = None,
    ):
        self._users: List[ChatUser] = list(users or [])
        self._conversations: Dict[Any, Conversation] = {}
        self._messages: List[Message] = []
        self._message_index: Dict[Any, int] = {}

        self._conversation_ids = itertools.count(1)
        self._message_ids = itertools.count(1)

        for conversation in conversations or []:
            self.upsert_conversation(conversation)
        for message in messages or []:
            self.upsert_message(message)

    def _next_id(self, counter: Iterator[int]) -> str:
        return f"{LOCAL_ID_PREFIX}{next(counter)}"

    # Synchronisation helpers (called with authoritative remote data)

    def replace_users(self, users: List[ChatUser]) -> None:
        self._users = list(users)

    def upsert_conversation(self, conversation: Conversation) -> None:
        if conversation.id is None:
            raise ValueError("cannot mirror a conversation without an id")
        self._conversations[conversation.id] = copy.deepcopy(conversation)

    def upsert_message(self, message: Message) -> None:
        """Insert or replace a message; a message already read stays read."""
        if message.id is None:
            raise ValueError("cannot mirror a message without an id")
        stored = copy.deepcopy(message)
        index = self._message_index.get(message.id)
        if index is None:
            self._message_index[message.id] = len(self._messages)
            self._messages.append(stored)
            return
        if self._messages[index].read and not stored.read:
            stored = stored.with_read()
        self._messages[index] = stored

    def local_conversations_for_user(self, user_id: Any) -> List[Conversation]:
        """Conversations created here that the remote store has never seen."""
        return [
            copy.deepcopy(c) for c in self._conversations.values()
            if is_local_id(c.id) and c.has_participant(user_id)
        ]

    def local_messages(self, conversation_id: Any) -> List[Message]:
        return [
            copy.deepcopy(m) for m in self._messages
            if is_local_id(m.id) and m.conversation_id == conversation_id
        ]

    def is_read(self, message_id: Any) -> bool:
        index = self._message_index.get(message_id)
        return index is not None and self._messages[index].read

    def apply_read(self, conversation_id: Any, reader_id: Any) -> int:
        changed = 0
        for index, message in enumerate(self._messages):
            if (message.conversation_id == conversation_id
                    and message.receiver_id == reader_id
                    and not message.read):
                self._messages[index] = message.with_read()
                changed += 1
        return changed

    # ChatStore

    async def list_users(self) -> List[ChatUser]:
        return copy.deepcopy(self._users)

    async def list_conversations_for_user(self, user_id: Any) -> List[Conversation]:
        return [
            copy.deepcopy(c) for c in self._conversations.values() if c.has_participant(user_id)
        ]

    async def get_conversation(self, conversation_id: Any) -> Conversation:
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            raise EntityNotFoundError("conversation", conversation_id)
        return copy.deepcopy(conversation)

    async def create_conversation(self, conversation: Conversation) -> Conversation:
        created = copy.deepcopy(conversation)
        created.id = self._next_id(self._conversation_ids)
        self._conversations[created.id] = created
        logger.debug(f"Mirror created conversation {created.id}")
        return copy.deepcopy(created)

    async def update_conversation(self, conversation: Conversation) -> Conversation:
        if conversation.id not in self._conversations:
            raise EntityNotFoundError("conversation", conversation.id)
        self._conversations[conversation.id] = copy.deepcopy(conversation)
        return copy.deepcopy(conversation)

    async def list_messages(self, conversation_id: Any) -> List[Message]:
        return [copy.deepcopy(m) for m in self._messages if m.conversation_id == conversation_id]

    async def get_message(self, message_id: Any) -> Message:
        index = self._message_index.get(message_id)
        if index is None:
            raise EntityNotFoundError("message", message_id)
        return copy.deepcopy(self._messages[index])

    async def create_message(self, message: Message) -> Message:
        stored = copy.deepcopy(message)
        stored.id = self._next_id(self._message_ids)
        self._message_index[stored.id] = len(self._messages)
        self._messages.append(stored)
        logger.debug(f"Mirror stored message {stored.id} in conversation {stored.conversation_id}")
        return copy.deepcopy(stored)

    async def mark_read(self, conversation_id: Any, reader_id: Any) -> int:
        return self.apply_read(conversation_id, reader_id)

    async def update_reactions(self, message_id: Any, reactions: List[Reaction]) -> Message:
        index = self._message_index.get(message_id)
        if index is None:
            raise EntityNotFoundError("message", message_id)
        updated = self._messages[index].with_reactions(reactions)
        self._messages[index] = updated
        return copy.deepcopy(updated)
