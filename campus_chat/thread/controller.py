"""
Message thread controller.

Owns the state of the conversation that is open on screen: which
conversation is selected, its messages, the composer, and the typing poll.
Selecting a conversation is asynchronous; every load is tagged with a
generation number and results from a superseded load are discarded.
"""

import asyncio
from dataclasses import replace
from datetime import tzinfo
from enum import Enum
from typing import Any, List, Optional

from campus_chat.attachments.pipeline import AttachmentPipeline, UploadedFile
from campus_chat.gateway.fallback import summarize_message
from campus_chat.messaging.exceptions import (
    EntityNotFoundError,
    MessagingError,
    ValidationFailure,
)
from campus_chat.messaging.labels import get_label
from campus_chat.messaging.links import detect_links
from campus_chat.messaging.timestamps import utc_now_iso
from campus_chat.messaging.types import (
    Attachment,
    Conversation,
    CurrentUser,
    Message,
    OperationResult,
)
from campus_chat.presence.typing_tracker import (
    TypingPoller,
    TypingTracker,
    TypingUser,
    format_typing_indicator,
)
from campus_chat.reactions.aggregator import ReactionAggregator
from campus_chat.utils.logger_config import get_logger

from .composer import Composer
from .rendering import ThreadItem, render_thread

logger = get_logger(__name__)

NO_SESSION = "No active session"
NO_CONVERSATION = "No conversation selected"
SUPERSEDED = "Superseded by a newer selection"


class ThreadState(Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"


class MessageThreadController:
    """State and actions for the currently open conversation."""

    def __init__(
        self,
        gateway,
        pipeline: AttachmentPipeline,
        tracker: TypingTracker,
        reactions: Optional[ReactionAggregator] = None,
        current_user: Optional[CurrentUser] = None,
        locale: str = "pt-BR",
        typing_poll_interval: float = 1.0,
        typing_timeout: float = 2.0,
        tz: Optional[tzinfo] = None,
    ):
        """
        Initialize the controller

        Args:
            gateway: Persistence gateway providing ``send_message`` and ``mark_read``
            pipeline: Upload pipeline for composer attachments
            tracker: Shared typing state
            reactions: Reaction persistence (default: built on ``gateway``)
            current_user: Signed-in user; every action fails while this is None
            locale: Display locale
            typing_poll_interval: Seconds between typing state polls
            typing_timeout: Idle seconds before the own typing state is cleared
            tz: Display timezone (default: local)
        """
        self.gateway = gateway
        self.pipeline = pipeline
        self.tracker = tracker
        self.reactions = reactions or ReactionAggregator(gateway)
        self.current_user = current_user
        self.locale = locale
        self.typing_poll_interval = typing_poll_interval
        self.tz = tz

        self.state = ThreadState.IDLE
        self.conversation: Optional[Conversation] = None
        self.messages: List[Message] = []
        self.typing_users: List[TypingUser] = []
        self.typing_indicator: Optional[str] = None
        self.last_error: Optional[str] = None
        self.composer = Composer(self._on_typing_change, typing_timeout=typing_timeout)

        self._load_generation = 0
        self._pending_conversation_id: Any = None
        self._poller: Optional[TypingPoller] = None
        self._uploads_in_flight = 0

    @property
    def conversation_id(self) -> Any:
        return self.conversation.id if self.conversation is not None else None

    @property
    def is_uploading(self) -> bool:
        return self._uploads_in_flight > 0

    def bind_user(self, user: Optional[CurrentUser]) -> None:
        self.current_user = user

    # Selection

    async def select_conversation(self, conversation_id: Any) -> OperationResult:
        """
        Open a conversation: load it and its messages, then mark them read

        Args:
            conversation_id: Conversation to display

        Returns:
            OperationResult with the loaded conversation as ``value``. Fails
            when there is no session, when the conversation does not exist,
            or when a newer selection replaced this one before it finished.
        """
        user = self.current_user
        if user is None:
            return OperationResult.failed(NO_SESSION)

        self._leave_current()
        self._load_generation += 1
        generation = self._load_generation
        self._pending_conversation_id = conversation_id
        self.state = ThreadState.LOADING
        logger.debug(f"Loading conversation {conversation_id} (generation {generation})")

        try:
            conversation = await self.gateway.get_conversation(conversation_id)
            messages = await self.gateway.list_messages(conversation_id)
        except EntityNotFoundError as e:
            if generation == self._load_generation:
                self.state = ThreadState.IDLE
                self._pending_conversation_id = None
                self.last_error = str(e)
            logger.warning(f"Could not open conversation {conversation_id}: {e}")
            return OperationResult.failed(str(e))

        if generation != self._load_generation:
            logger.debug(f"Discarding stale load of conversation {conversation_id}")
            return OperationResult.failed(SUPERSEDED)

        self.conversation = conversation
        self.messages = messages

        changed = await self.gateway.mark_read(conversation_id, user.id)
        if generation != self._load_generation:
            logger.debug(f"Selection changed while marking conversation {conversation_id} read")
            return OperationResult.failed(SUPERSEDED)

        if changed:
            self.messages = [
                m.with_read() if m.receiver_id == user.id and not m.read else m
                for m in self.messages
            ]
            self.conversation = replace(self.conversation, unread_count=0)

        # A keystroke made while loading was never reported
        self.composer.debouncer.stop()
        self.state = ThreadState.READY
        self._pending_conversation_id = None
        self.last_error = None
        self._start_typing_poll()
        logger.info(f"Opened conversation {conversation_id} with {len(self.messages)} messages")
        return OperationResult.ok(self.conversation)

    def deselect(self) -> None:
        """Close the open conversation and invalidate any load still in flight."""
        self._leave_current()
        self._load_generation += 1
        self._pending_conversation_id = None
        self.state = ThreadState.IDLE

    def _leave_current(self) -> None:
        # Typing is reported against the conversation being left
        self.composer.debouncer.stop()
        self._stop_typing_poll()
        self.conversation = None
        self.messages = []
        self.typing_users = []
        self.typing_indicator = None

    # Sending

    async def send_message(
        self,
        text: Optional[str] = None,
        attachments: Optional[List[Attachment]] = None,
    ) -> OperationResult:
        """
        Send a message in the open conversation

        Empty text without attachments, a missing session or no open
        conversation fail without any gateway call.

        Args:
            text: Message body (default: the composer text)
            attachments: Attachments to send (default: the pending attachments)

        Returns:
            OperationResult with the stored message as ``value``
        """
        user = self.current_user
        if user is None:
            return OperationResult.failed(NO_SESSION)
        conversation = self.conversation
        if conversation is None or self.state is not ThreadState.READY:
            return OperationResult.failed(NO_CONVERSATION)

        body = self.composer.text if text is None else text
        if attachments is None:
            attachments = self.composer.attachments
        else:
            attachments = list(attachments)
        if not body.strip() and not attachments:
            return OperationResult.failed("Message must have text or at least one attachment")

        receiver = conversation.other_participant(user.id)
        draft = Message(
            id=None,
            conversation_id=conversation.id,
            sender_id=user.id,
            receiver_id=receiver.user_id,
            sender_name=user.name,
            receiver_name=receiver.name,
            sender_role=user.role,
            receiver_role=receiver.role,
            message=body.strip(),
            timestamp=utc_now_iso(),
            read=False,
            attachments=attachments,
            has_links=detect_links(body),
        )

        try:
            stored = await self.gateway.send_message(draft)
        except ValidationFailure as e:
            return OperationResult.failed(str(e))
        except MessagingError as e:
            logger.error(f"Failed to send message in conversation {conversation.id}: {e}")
            return OperationResult.failed(str(e))

        self.composer.after_send(a.id for a in attachments)

        if self.conversation_id == stored.conversation_id:
            self.messages.append(stored)
            self.conversation = replace(
                self.conversation,
                last_message=summarize_message(stored, self.locale),
                last_message_timestamp=stored.timestamp,
            )
        else:
            logger.debug(f"Message {stored.id} sent after leaving conversation {stored.conversation_id}")

        return OperationResult.ok(stored)

    # Attachments

    async def upload_file(self, upload: UploadedFile) -> OperationResult:
        """Upload one file and add it to the composer's pending attachments."""
        if self.current_user is None:
            return OperationResult.failed(NO_SESSION)

        self._uploads_in_flight += 1
        try:
            attachment = await self.pipeline.upload(upload)
        except ValidationFailure as e:
            logger.warning(f"Rejected upload {upload.file_name!r}: {e}")
            return OperationResult.failed(str(e))
        finally:
            self._uploads_in_flight -= 1

        self.composer.pending.add([attachment])
        return OperationResult.ok(attachment)

    async def upload_files(self, uploads: List[UploadedFile]) -> List[OperationResult]:
        """
        Upload several files concurrently

        Successful uploads join the pending attachments in submission order;
        a rejected file does not affect the others.
        """
        if self.current_user is None:
            return [OperationResult.failed(NO_SESSION) for _ in uploads]

        self._uploads_in_flight += 1
        try:
            outcomes = await asyncio.gather(
                *(self.pipeline.upload(u) for u in uploads),
                return_exceptions=True,
            )
        finally:
            self._uploads_in_flight -= 1

        results = []
        for upload, outcome in zip(uploads, outcomes):
            if isinstance(outcome, ValidationFailure):
                logger.warning(f"Rejected upload {upload.file_name!r}: {outcome}")
                results.append(OperationResult.failed(str(outcome)))
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                self.composer.pending.add([outcome])
                results.append(OperationResult.ok(outcome))
        return results

    def remove_attachment(self, attachment_id: str) -> bool:
        return self.composer.pending.remove(attachment_id)

    # Reactions

    async def toggle_reaction(self, message_id: Any, emoji: str) -> OperationResult:
        """Toggle the current user's reaction and replace the message with the stored one."""
        user = self.current_user
        if user is None:
            return OperationResult.failed(NO_SESSION)

        try:
            updated = await self.reactions.toggle(message_id, emoji, user)
        except EntityNotFoundError as e:
            logger.warning(f"Could not react to message {message_id}: {e}")
            return OperationResult.failed(str(e))

        self.messages = [updated if m.id == updated.id else m for m in self.messages]
        return OperationResult.ok(updated)

    # Typing

    def on_composer_change(self, text: str) -> None:
        """Composer edit hook. Must be called from inside the running event loop."""
        self.composer.change_text(text)

    def set_typing(self, is_typing: bool) -> OperationResult:
        if self.current_user is None:
            return OperationResult.failed(NO_SESSION)
        if self.conversation is None:
            return OperationResult.failed(NO_CONVERSATION)
        if is_typing:
            self.composer.debouncer.keystroke()
        else:
            self.composer.debouncer.stop()
        return OperationResult.ok()

    def _on_typing_change(self, is_typing: bool) -> None:
        user = self.current_user
        if user is None or self.conversation is None:
            return
        self.tracker.set_typing(self.conversation.id, user.id, user.name, is_typing)

    def _on_typing_update(self, users: List[TypingUser]) -> None:
        self.typing_users = users
        self.typing_indicator = format_typing_indicator(users, self.locale)

    def _start_typing_poll(self) -> None:
        self._stop_typing_poll()
        self._poller = TypingPoller(
            self.tracker,
            self.conversation.id,
            self.current_user.id,
            self._on_typing_update,
            interval=self.typing_poll_interval,
        )
        self._poller.start()

    def _stop_typing_poll(self) -> None:
        if self._poller is not None:
            self._poller.stop()
            self._poller = None

    # Display

    def render(self) -> List[ThreadItem]:
        if self.conversation is None or self.current_user is None:
            return []
        return render_thread(self.messages, self.current_user.id, self.locale, self.tz)

    def empty_state_text(self) -> Optional[str]:
        """Placeholder text for the thread area, None when messages are shown."""
        if self.state is ThreadState.IDLE:
            return get_label(self.locale, "select_conversation")
        if self.state is ThreadState.READY and not self.messages:
            return get_label(self.locale, "no_messages")
        return None

    def get_status(self):
        return {
            "state": self.state.value,
            "conversation_id": self.conversation_id,
            "loading_conversation_id": self._pending_conversation_id,
            "message_count": len(self.messages),
            "pending_attachments": len(self.composer.pending),
            "is_uploading": self.is_uploading,
            "typing_poll": self._poller.get_status() if self._poller else None,
        }
