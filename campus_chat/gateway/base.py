"""Capability interface shared by the remote store, the mirror and the fallback adapter."""

from abc import ABC, abstractmethod
from typing import Any, List

from campus_chat.messaging.types import ChatUser, Conversation, Message, Reaction


class ChatStore(ABC):
    """Storage operations for the messaging core.

    Implementations raise ``RemoteUnavailableError`` when the backing store
    fails and ``EntityNotFoundError`` when a requested entity does not exist.
    """

    @abstractmethod
    async def list_users(self) -> List[ChatUser]:
        ...

    @abstractmethod
    async def list_conversations_for_user(self, user_id: Any) -> List[Conversation]:
        ...

    @abstractmethod
    async def get_conversation(self, conversation_id: Any) -> Conversation:
        ...

    @abstractmethod
    async def create_conversation(self, conversation: Conversation) -> Conversation:
        """Store a new conversation under a freshly assigned id."""
        ...

    @abstractmethod
    async def update_conversation(self, conversation: Conversation) -> Conversation:
        ...

    @abstractmethod
    async def list_messages(self, conversation_id: Any) -> List[Message]:
        ...

    @abstractmethod
    async def get_message(self, message_id: Any) -> Message:
        ...

    @abstractmethod
    async def create_message(self, message: Message) -> Message:
        """Append a message and return it with its assigned id."""
        ...

    @abstractmethod
    async def mark_read(self, conversation_id: Any, reader_id: Any) -> int:
        """Flag every unread message addressed to ``reader_id`` as read; return how many changed."""
        ...

    @abstractmethod
    async def update_reactions(self, message_id: Any, reactions: List[Reaction]) -> Message:
        ...
