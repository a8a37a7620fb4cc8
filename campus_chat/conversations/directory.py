"""
Conversation directory.

Lists a user's conversations most-recent first, finds the other participant
and creates conversations without ever duplicating one for the same pair.
"""

import asyncio
from datetime import datetime, timezone, tzinfo
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from campus_chat.messaging.exceptions import ValidationFailure
from campus_chat.messaging.labels import get_label
from campus_chat.messaging.timestamps import parse_timestamp, utc_now_iso
from campus_chat.messaging.types import (
    ChatUser,
    Conversation,
    CurrentUser,
    Participant,
)
from campus_chat.utils.logger_config import get_logger

from .formatting import format_relative_time

logger = get_logger(__name__)

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _sort_key(conversation: Conversation) -> datetime:
    try:
        value = parse_timestamp(conversation.last_message_timestamp)
    except (ValueError, TypeError):
        return _OLDEST
    if value.tzinfo is None:
        value = value.astimezone()
    return value


class ConversationDirectory:
    """Entry point for listing and starting conversations."""

    def __init__(
        self,
        gateway,
        locale: str = "pt-BR",
        hidden_roles: Iterable[str] = ("admin",),
        tz: Optional[tzinfo] = None,
    ):
        """
        Args:
            gateway: Persistence gateway (any ``ChatStore``)
            locale: Display locale for times and empty states
            hidden_roles: Roles never offered as chat partners
            tz: Display timezone for conversation times (default: local)
        """
        self.gateway = gateway
        self.locale = locale
        self.hidden_roles = set(hidden_roles)
        self.tz = tz
        # pair -> (lock, number of callers holding or awaiting it)
        self._creation_locks: Dict[FrozenSet[Any], Tuple[asyncio.Lock, int]] = {}

    async def list_for_user(self, user_id: Any) -> List[Conversation]:
        """Conversations the user takes part in, most recent activity first."""
        conversations = await self.gateway.list_conversations_for_user(user_id)
        return sorted(conversations, key=_sort_key, reverse=True)

    async def find_or_create(
        self,
        current_user: CurrentUser,
        other_user_id: Any,
        other_name: str,
        other_role: str,
    ) -> Conversation:
        """
        Return the existing conversation with another user, or create it

        Concurrent calls for the same pair are serialised, so at most one
        conversation is ever created between two users.

        Args:
            current_user: Signed-in user
            other_user_id: The chat partner
            other_name: Partner's display name
            other_role: Partner's role

        Returns:
            The existing conversation unchanged, or the newly created one

        Raises:
            ValidationFailure: If the partner is the current user
        """
        if other_user_id == current_user.id:
            raise ValidationFailure("Cannot start a conversation with yourself")

        pair = frozenset((current_user.id, other_user_id))
        lock, users = self._creation_locks.get(pair, (asyncio.Lock(), 0))
        self._creation_locks[pair] = (lock, users + 1)
        try:
            async with lock:
                return await self._find_or_create_locked(current_user, other_user_id, other_name, other_role)
        finally:
            lock, users = self._creation_locks[pair]
            if users == 1:
                del self._creation_locks[pair]
            else:
                self._creation_locks[pair] = (lock, users - 1)

    async def _find_or_create_locked(
        self,
        current_user: CurrentUser,
        other_user_id: Any,
        other_name: str,
        other_role: str,
    ) -> Conversation:
        for conversation in await self.gateway.list_conversations_for_user(current_user.id):
            if conversation.has_participant(other_user_id):
                logger.debug(f"Reusing conversation {conversation.id} with user {other_user_id}")
                return conversation

        new_conversation = Conversation(
            id=None,
            participants=[
                current_user.as_participant(),
                Participant(user_id=other_user_id, name=other_name, role=other_role),
            ],
            last_message="",
            last_message_timestamp=utc_now_iso(),
            unread_count=0,
        )
        created = await self.gateway.create_conversation(new_conversation)
        logger.info(f"Started conversation {created.id} between {current_user.id} and {other_user_id}")
        return created

    @staticmethod
    def other_participant(conversation: Conversation, user_id: Any) -> Participant:
        """The participant that is not ``user_id``, else the first participant."""
        return conversation.other_participant(user_id)

    async def list_chat_users(self, current_user: CurrentUser, query: Optional[str] = None) -> List[ChatUser]:
        """
        Users the current user can start a conversation with

        Args:
            current_user: Signed-in user (excluded from the result)
            query: Case-insensitive name filter

        Returns:
            Matching users, hidden roles removed
        """
        users = [
            u for u in await self.gateway.list_users()
            if u.user_id != current_user.id and u.role not in self.hidden_roles
        ]
        if query and query.strip():
            needle = query.strip().lower()
            users = [u for u in users if needle in u.name.lower()]
        return users

    def empty_users_text(self, query: Optional[str] = None) -> str:
        if query and query.strip():
            return get_label(self.locale, "no_matching_users")
        return get_label(self.locale, "no_users")

    def empty_conversations_text(self) -> str:
        return get_label(self.locale, "no_conversations")

    def format_time(self, conversation: Conversation, now: Optional[datetime] = None) -> str:
        if not conversation.last_message_timestamp:
            return ""
        return format_relative_time(conversation.last_message_timestamp, now=now, locale=self.locale, tz=self.tz)
