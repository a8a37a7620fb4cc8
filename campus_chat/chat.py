"""
Messaging subsystem.

``MessagingSubsystem`` wires the persistence gateway, typing presence,
conversation directory, attachment pipeline, reactions and the thread
controller around one signed-in user. Its inbound operations return an
``OperationResult`` instead of raising for expected failures (no session,
missing entities, rejected input).
"""

import time
from datetime import tzinfo
from typing import Any, Callable, List, Optional

from campus_chat.attachments.pipeline import AttachmentPipeline, UploadedFile
from campus_chat.conversations.directory import ConversationDirectory
from campus_chat.gateway.fallback import build_gateway
from campus_chat.messaging.config import ChatConfig, load_config
from campus_chat.messaging.exceptions import EntityNotFoundError, ValidationFailure
from campus_chat.messaging.types import Attachment, ChatUser, CurrentUser, OperationResult
from campus_chat.presence.typing_tracker import TypingTracker
from campus_chat.reactions.aggregator import ReactionAggregator
from campus_chat.thread.controller import NO_SESSION, MessageThreadController
from campus_chat.utils.logger_config import get_logger

logger = get_logger(__name__)


class MessagingSubsystem:
    """Session-scoped facade over the messaging core."""

    def __init__(
        self,
        config: Optional[ChatConfig] = None,
        gateway=None,
        pipeline: Optional[AttachmentPipeline] = None,
        clock: Callable[[], float] = time.monotonic,
        tz: Optional[tzinfo] = None,
    ):
        """
        Initialize the subsystem

        Args:
            config: Chat configuration (default: read from the environment)
            gateway: Persistence gateway (default: built from ``config``)
            pipeline: Upload pipeline (default: built from ``config``)
            clock: Monotonic clock for typing expiry
            tz: Display timezone (default: local)
        """
        self.config = config or load_config()
        self.gateway = gateway or build_gateway(self.config)
        self.tracker = TypingTracker(expiry_seconds=self.config.typing_timeout_seconds, clock=clock)
        self.directory = ConversationDirectory(
            self.gateway,
            locale=self.config.locale,
            hidden_roles=self.config.hidden_roles,
            tz=tz,
        )
        self.pipeline = pipeline or AttachmentPipeline(
            upload_base_path=self.config.upload_base_path,
            transfer_delay=self.config.upload_delay_seconds,
            max_upload_bytes=self.config.max_upload_bytes,
        )
        self.reactions = ReactionAggregator(self.gateway)
        self.thread = MessageThreadController(
            self.gateway,
            self.pipeline,
            self.tracker,
            reactions=self.reactions,
            locale=self.config.locale,
            typing_poll_interval=self.config.typing_poll_interval_seconds,
            typing_timeout=self.config.typing_timeout_seconds,
            tz=tz,
        )
        self.current_user: Optional[CurrentUser] = None

    # Session

    def login(self, user: CurrentUser) -> None:
        if self.current_user is not None and self.current_user.id != user.id:
            self.logout()
        self.current_user = user
        self.thread.bind_user(user)
        logger.info(f"User {user.id} ({user.role}) signed in to chat")

    def logout(self) -> None:
        """Close the open conversation and drop all typing state."""
        if self.current_user is None:
            return
        self.thread.deselect()
        self.thread.composer.reset()
        self.tracker.clear()
        logger.info(f"User {self.current_user.id} signed out of chat")
        self.current_user = None
        self.thread.bind_user(None)

    async def close(self) -> None:
        self.logout()
        if hasattr(self.gateway, "aclose"):
            await self.gateway.aclose()

    # Conversations

    async def list_conversations(self) -> OperationResult:
        if self.current_user is None:
            return OperationResult.failed(NO_SESSION)
        conversations = await self.directory.list_for_user(self.current_user.id)
        return OperationResult.ok(conversations)

    async def list_chat_users(self, query: Optional[str] = None) -> OperationResult:
        if self.current_user is None:
            return OperationResult.failed(NO_SESSION)
        users = await self.directory.list_chat_users(self.current_user, query)
        return OperationResult.ok(users)

    async def start_conversation(self, other: ChatUser, open_thread: bool = True) -> OperationResult:
        """
        Find or create the conversation with ``other`` and optionally open it

        Args:
            other: Chosen chat partner
            open_thread: Also select the conversation in the thread controller

        Returns:
            OperationResult with the conversation as ``value``
        """
        if self.current_user is None:
            return OperationResult.failed(NO_SESSION)
        try:
            conversation = await self.directory.find_or_create(
                self.current_user, other.user_id, other.name, other.role
            )
        except ValidationFailure as e:
            return OperationResult.failed(str(e))

        if not open_thread:
            return OperationResult.ok(conversation)

        selected = await self.thread.select_conversation(conversation.id)
        if not selected.success:
            return selected
        return OperationResult.ok(self.thread.conversation)

    # Thread

    async def select_conversation(self, conversation_id: Any) -> OperationResult:
        return await self.thread.select_conversation(conversation_id)

    def deselect_conversation(self) -> None:
        self.thread.deselect()

    async def send_message(
        self,
        text: Optional[str] = None,
        attachments: Optional[List[Attachment]] = None,
    ) -> OperationResult:
        return await self.thread.send_message(text, attachments)

    async def upload_file(self, upload: UploadedFile) -> OperationResult:
        return await self.thread.upload_file(upload)

    async def upload_files(self, uploads: List[UploadedFile]) -> List[OperationResult]:
        return await self.thread.upload_files(uploads)

    def remove_attachment(self, attachment_id: str) -> bool:
        return self.thread.remove_attachment(attachment_id)

    async def toggle_reaction(self, message_id: Any, emoji: str) -> OperationResult:
        return await self.thread.toggle_reaction(message_id, emoji)

    def set_typing(self, is_typing: bool) -> OperationResult:
        return self.thread.set_typing(is_typing)

    def on_composer_change(self, text: str) -> None:
        if self.current_user is not None:
            self.thread.on_composer_change(text)

    async def get_message(self, message_id: Any) -> OperationResult:
        try:
            return OperationResult.ok(await self.gateway.get_message(message_id))
        except EntityNotFoundError as e:
            return OperationResult.failed(str(e))

    def get_status(self):
        return {
            "user_id": self.current_user.id if self.current_user else None,
            "locale": self.config.locale,
            "fallback_active": getattr(self.gateway, "fallback_active", None),
            "fallback_count": getattr(self.gateway, "fallback_count", None),
            "thread": self.thread.get_status(),
        }
