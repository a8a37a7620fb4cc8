"""
Remote-then-mirror persistence gateway.

``FallbackChatGateway`` exposes the same ``ChatStore`` operations as its two
backends. Each call is tried against the remote store first; when that store
is disabled or raises ``RemoteUnavailableError`` the call is served by the
mirror instead. Successful remote results are copied into the mirror.

Entities created while the remote store was down carry mirror ids
(``local-<n>``). Calls addressing them go straight to the mirror, and they
are merged into remote listings so they stay visible once the remote store
is back.
"""

import asyncio
from dataclasses import replace
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from campus_chat.messaging.config import ChatConfig
from campus_chat.messaging.exceptions import (
    EntityNotFoundError,
    MessageValidationError,
    PartialWriteError,
    RemoteUnavailableError,
)
from campus_chat.messaging.labels import get_label
from campus_chat.messaging.links import detect_links
from campus_chat.messaging.timestamps import parse_timestamp, utc_now_iso
from campus_chat.messaging.types import ChatUser, Conversation, Message, Reaction
from campus_chat.utils.logger_config import get_logger

from .base import ChatStore
from .mirror import MirrorChatStore, is_local_id
from .remote import RemoteChatStore
from .seed import seed_mirror_store

logger = get_logger(__name__)

T = TypeVar("T")


def summarize_message(message: Message, locale: str = "pt-BR") -> str:
    """
    Build the conversation preview text for a message.

    Messages with attachments read "<text or 'sent an attachment'>", followed by
    an attachment count when there is more than one.
    """
    text = message.message.strip()
    if not message.attachments:
        return text

    summary = text or get_label(locale, "sent_attachment")
    if len(message.attachments) > 1:
        summary = f"{summary} {get_label(locale, 'attachment_count', count=len(message.attachments))}"
    return summary


def _is_not_before(candidate: str, current: str) -> bool:
    """True when ``candidate`` is at or after ``current`` (unparseable values never block)."""
    if not current:
        return True
    try:
        return parse_timestamp(candidate) >= parse_timestamp(current)
    except (ValueError, TypeError):
        return True


def _merge_by_time(messages: List[Message], extra: List[Message]) -> List[Message]:
    """Insert ``extra`` into ``messages`` before the first message sent after each one."""
    merged = list(messages)
    for message in extra:
        position = next(
            (i for i, m in enumerate(merged)
             if m.timestamp and not _is_not_before(message.timestamp, m.timestamp)),
            len(merged),
        )
        merged.insert(position, message)
    return merged


class FallbackChatGateway(ChatStore):
    """Persistence gateway that never surfaces remote failures to its callers."""

    def __init__(
        self,
        mirror: MirrorChatStore,
        remote: Optional[ChatStore] = None,
        remote_enabled: bool = True,
        locale: str = "pt-BR",
        log_message_content: bool = False,
    ):
        """
        Initialize the gateway

        Args:
            mirror: In-process store used on fallback and kept in sync
            remote: Remote store tried first (None means mirror only)
            remote_enabled: Runtime flag; False routes every call to the mirror
            locale: Locale for conversation previews
            log_message_content: Whether message bodies may be logged
        """
        self.mirror = mirror
        self.remote = remote
        self.remote_enabled = remote_enabled
        self.locale = locale
        self.log_message_content = log_message_content

        self.fallback_count = 0
        self.last_remote_error: Optional[str] = None
        # Guards the read-modify-write of conversation summaries and counters
        self._summary_lock = asyncio.Lock()

    @property
    def fallback_active(self) -> bool:
        return self.remote is None or not self.remote_enabled

    async def aclose(self) -> None:
        if isinstance(self.remote, RemoteChatStore):
            await self.remote.aclose()

    async def _call(
        self,
        operation: str,
        call: Callable[[ChatStore], Awaitable[T]],
        sync: Optional[Callable[[T], None]] = None,
        local_id: Any = None,
    ) -> T:
        """
        Run an operation remote-first with mirror fallback

        Args:
            operation: Name used in log lines
            call: The operation, applied to the remote store and, on fallback, the mirror
            sync: Copies an authoritative remote result into the mirror
            local_id: Id the call addresses; a mirror id skips the remote store

        Returns:
            The remote result, or the mirror result on fallback

        Raises:
            EntityNotFoundError: If the entity is absent from the mirror as well
        """
        if not self.fallback_active and not is_local_id(local_id):
            try:
                result = await call(self.remote)
            except RemoteUnavailableError as e:
                self.fallback_count += 1
                self.last_remote_error = str(e)
                logger.warning(f"Remote store unavailable for {operation}, using mirror: {e}")
            except EntityNotFoundError as e:
                logger.info(f"{operation}: {e} on remote store, checking mirror")
            else:
                if sync is not None:
                    sync(result)
                return result

        return await call(self.mirror)

    def _sync_many(self, upsert: Callable[[Any], None]) -> Callable[[List[Any]], None]:
        def sync(items: List[Any]) -> None:
            for item in items:
                upsert(item)
        return sync

    async def list_users(self) -> List[ChatUser]:
        return await self._call(
            "list_users",
            lambda store: store.list_users(),
            self.mirror.replace_users,
        )

    async def list_conversations_for_user(self, user_id: Any) -> List[Conversation]:
        conversations = await self._call(
            "list_conversations_for_user",
            lambda store: store.list_conversations_for_user(user_id),
            self._sync_many(self.mirror.upsert_conversation),
        )
        known = {c.id for c in conversations}
        return conversations + [
            c for c in self.mirror.local_conversations_for_user(user_id) if c.id not in known
        ]

    async def get_conversation(self, conversation_id: Any) -> Conversation:
        return await self._call(
            "get_conversation",
            lambda store: store.get_conversation(conversation_id),
            self.mirror.upsert_conversation,
            local_id=conversation_id,
        )

    async def create_conversation(self, conversation: Conversation) -> Conversation:
        conversation.validate()
        created = await self._call(
            "create_conversation",
            lambda store: store.create_conversation(conversation),
            self.mirror.upsert_conversation,
        )
        logger.info(f"Created conversation {created.id}")
        return created

    async def update_conversation(self, conversation: Conversation) -> Conversation:
        return await self._call(
            "update_conversation",
            lambda store: store.update_conversation(conversation),
            self.mirror.upsert_conversation,
            local_id=conversation.id,
        )

    def _keep_read(self, message: Message) -> Message:
        # A message marked read in this session never reads back as unread
        if not message.read and self.mirror.is_read(message.id):
            return message.with_read()
        return message

    async def list_messages(self, conversation_id: Any) -> List[Message]:
        messages = await self._call(
            "list_messages",
            lambda store: store.list_messages(conversation_id),
            self._sync_many(self.mirror.upsert_message),
            local_id=conversation_id,
        )
        known = {m.id for m in messages}
        unsynced = [m for m in self.mirror.local_messages(conversation_id) if m.id not in known]
        return [self._keep_read(m) for m in _merge_by_time(messages, unsynced)]

    async def get_message(self, message_id: Any) -> Message:
        message = await self._call(
            "get_message",
            lambda store: store.get_message(message_id),
            self.mirror.upsert_message,
            local_id=message_id,
        )
        return self._keep_read(message)

    async def create_message(self, message: Message) -> Message:
        return await self._call(
            "create_message",
            lambda store: store.create_message(message),
            self.mirror.upsert_message,
            local_id=message.conversation_id,
        )

    async def update_reactions(self, message_id: Any, reactions: List[Reaction]) -> Message:
        message = await self._call(
            "update_reactions",
            lambda store: store.update_reactions(message_id, reactions),
            self.mirror.upsert_message,
            local_id=message_id,
        )
        return self._keep_read(message)

    async def mark_read(self, conversation_id: Any, reader_id: Any) -> int:
        """
        Mark every unread message addressed to ``reader_id`` as read

        When anything changed the conversation's unread counter is reset.

        Returns:
            Number of messages that flipped to read
        """
        changed = await self._call(
            "mark_read",
            lambda store: store.mark_read(conversation_id, reader_id),
            lambda _count: self.mirror.apply_read(conversation_id, reader_id),
            local_id=conversation_id,
        )

        if changed:
            try:
                async with self._summary_lock:
                    conversation = await self.get_conversation(conversation_id)
                    if conversation.unread_count:
                        await self.update_conversation(replace(conversation, unread_count=0))
            except EntityNotFoundError as e:
                logger.warning(f"Could not reset unread counter: {e}")

        logger.debug(f"Marked {changed} messages read in conversation {conversation_id}")
        return changed

    async def send_message(self, draft: Message) -> Message:
        """
        Store a new message and refresh its conversation's summary

        Link detection and the timestamp are computed here; the client's
        timestamp is ignored. The summary update is attempted even when the
        message itself was only stored in the mirror, and its failure does not
        undo the message.

        Args:
            draft: Message without id

        Returns:
            The stored message

        Raises:
            MessageValidationError: If the message has neither text nor attachments
        """
        if not draft.message.strip() and not draft.attachments:
            raise MessageValidationError("Message must have text or at least one attachment")

        prepared = replace(
            draft,
            id=None,
            message=draft.message.strip(),
            timestamp=utc_now_iso(),
            has_links=detect_links(draft.message),
            read=False,
            attachments=list(draft.attachments),
            reactions=[],
        )

        stored = await self.create_message(prepared)

        if self.log_message_content:
            logger.info(f"Sent message {stored.id} in conversation {stored.conversation_id}: {stored.message}")
        else:
            logger.info(f"Sent message {stored.id} in conversation {stored.conversation_id}")

        try:
            await self._update_summary(stored)
        except PartialWriteError as e:
            logger.warning(f"Message {stored.id} stored but conversation summary not updated: {e}")

        return stored

    async def _update_summary(self, message: Message) -> Conversation:
        async with self._summary_lock:
            return await self._apply_summary(message)

    async def _apply_summary(self, message: Message) -> Conversation:
        try:
            conversation = await self.get_conversation(message.conversation_id)
        except EntityNotFoundError as e:
            raise PartialWriteError(str(e)) from e

        updated = replace(conversation, unread_count=conversation.unread_count + 1)
        if _is_not_before(message.timestamp, conversation.last_message_timestamp):
            updated = replace(
                updated,
                last_message=summarize_message(message, self.locale),
                last_message_timestamp=message.timestamp,
            )

        try:
            return await self.update_conversation(updated)
        except EntityNotFoundError as e:
            raise PartialWriteError(str(e)) from e


def build_gateway(config: ChatConfig, transport=None) -> FallbackChatGateway:
    """
    Create the gateway described by ``config``

    Args:
        config: Chat configuration
        transport: Optional httpx transport for the remote client

    Returns:
        FallbackChatGateway wrapping a remote store and a (possibly seeded) mirror
    """
    mirror = seed_mirror_store() if config.seed_mirror else MirrorChatStore()
    remote = None
    if config.remote_enabled:
        remote = RemoteChatStore(
            config.api_url,
            timeout=config.request_timeout_seconds,
            transport=transport,
        )
    else:
        logger.info("Remote store disabled; all calls served by the mirror")

    return FallbackChatGateway(
        mirror=mirror,
        remote=remote,
        remote_enabled=config.remote_enabled,
        locale=config.locale,
        log_message_content=config.log_message_content,
    )
