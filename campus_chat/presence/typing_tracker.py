"""
Typing presence.

``TypingTracker`` is the in-memory record of who is typing where. It is owned
by the messaging subsystem (created with it, cleared on logout) rather than
being process-global. ``TypingDebouncer`` turns composer keystrokes into
typing on/off signals, and ``TypingPoller`` refreshes the indicator of an open
conversation on a fixed interval.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from campus_chat.messaging.labels import get_label
from campus_chat.utils.logger_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TypingUser:
    user_id: Any
    name: str
    last_updated: float


class TypingTracker:
    """Who is typing in which conversation, keyed by (conversation_id, user_id)."""

    def __init__(self, expiry_seconds: float = 2.0, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            expiry_seconds: Entries older than this are treated as stopped
            clock: Monotonic time source in seconds
        """
        self.expiry_seconds = expiry_seconds
        self._clock = clock
        self._entries: Dict[Any, Dict[Any, TypingUser]] = {}

    def set_typing(self, conversation_id: Any, user_id: Any, name: str, is_typing: bool) -> None:
        """Record a keystroke (``is_typing=True``) or an explicit stop."""
        conversation_entries = self._entries.setdefault(conversation_id, {})
        if is_typing:
            conversation_entries[user_id] = TypingUser(user_id=user_id, name=name, last_updated=self._clock())
        else:
            conversation_entries.pop(user_id, None)
            if not conversation_entries:
                del self._entries[conversation_id]
        logger.debug(f"Typing state for user {user_id} in conversation {conversation_id}: {is_typing}")

    def get_typing_users(self, conversation_id: Any, exclude_user_id: Any = None) -> List[TypingUser]:
        """
        Return users currently typing in a conversation

        Expired entries are dropped while reading.

        Args:
            conversation_id: Conversation to inspect
            exclude_user_id: Usually the current user

        Returns:
            Typing users, oldest keystroke first
        """
        conversation_entries = self._entries.get(conversation_id)
        if not conversation_entries:
            return []

        now = self._clock()
        for user_id, entry in list(conversation_entries.items()):
            if now - entry.last_updated > self.expiry_seconds:
                del conversation_entries[user_id]
        if not conversation_entries:
            del self._entries[conversation_id]
            return []

        users = [u for u in conversation_entries.values() if u.user_id != exclude_user_id]
        return sorted(users, key=lambda u: u.last_updated)

    def clear_conversation(self, conversation_id: Any) -> None:
        self._entries.pop(conversation_id, None)

    def clear(self) -> None:
        self._entries.clear()


def format_typing_indicator(users: List[TypingUser], locale: str = "pt-BR") -> Optional[str]:
    """'X is typing…' for one user, 'N people are typing…' for more, None for nobody."""
    if not users:
        return None
    if len(users) == 1:
        return get_label(locale, "typing_one", name=users[0].name)
    return get_label(locale, "typing_many", count=len(users))


class TypingDebouncer:
    """Turns composer keystrokes into typing on/off signals.

    The first keystroke after an idle composer reports ``True``; each keystroke
    restarts the timeout, and when it elapses without another keystroke
    ``False`` is reported.
    """

    def __init__(self, on_change: Callable[[bool], None], timeout: float = 2.0):
        self.on_change = on_change
        self.timeout = timeout
        self.is_typing = False
        self._handle: Optional[asyncio.TimerHandle] = None

    def keystroke(self) -> None:
        """Register a keystroke. Must be called from inside the running event loop."""
        if not self.is_typing:
            self.is_typing = True
            self.on_change(True)
        self._cancel_timer()
        self._handle = asyncio.get_running_loop().call_later(self.timeout, self._expire)

    def stop(self) -> None:
        """Stop typing now (message sent or composer emptied)."""
        self._cancel_timer()
        if self.is_typing:
            self.is_typing = False
            self.on_change(False)

    def _expire(self) -> None:
        self._handle = None
        if self.is_typing:
            self.is_typing = False
            self.on_change(False)

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class TypingPoller:
    """Periodically re-reads the typing state of one open conversation."""

    def __init__(
        self,
        tracker: TypingTracker,
        conversation_id: Any,
        current_user_id: Any,
        on_update: Callable[[List[TypingUser]], None],
        interval: float = 1.0,
    ):
        """
        Initialize the poller

        Args:
            tracker: Typing state to read
            conversation_id: Conversation being displayed
            current_user_id: Excluded from the results
            on_update: Receives the typing users after every poll
            interval: Seconds between polls
        """
        self.tracker = tracker
        self.conversation_id = conversation_id
        self.current_user_id = current_user_id
        self.on_update = on_update
        self.interval = interval

        self.is_running = False
        self.poll_count = 0
        self.last_poll_at: Optional[datetime] = None
        self._task: Optional[asyncio.Task] = None

    def poll_once(self) -> List[TypingUser]:
        users = self.tracker.get_typing_users(self.conversation_id, exclude_user_id=self.current_user_id)
        self.poll_count += 1
        self.last_poll_at = datetime.now()
        self.on_update(users)
        return users

    async def _run(self) -> None:
        while self.is_running:
            self.poll_once()
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Start polling in a background task on the running loop."""
        if self.is_running:
            logger.warning(f"Typing poll for conversation {self.conversation_id} is already running")
            return
        self.is_running = True
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.debug(f"Started typing poll for conversation {self.conversation_id} (interval: {self.interval}s)")

    def stop(self) -> None:
        self.is_running = False
        if self._task is not None:
            self._task.cancel()
            self._task = None
            logger.debug(f"Stopped typing poll for conversation {self.conversation_id}")

    def get_status(self) -> Dict[str, Any]:
        return {
            "conversation_id": self.conversation_id,
            "is_running": self.is_running,
            "interval": self.interval,
            "poll_count": self.poll_count,
            "last_poll_at": self.last_poll_at.isoformat() if self.last_poll_at else None,
        }
