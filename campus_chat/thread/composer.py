"""Composer state: draft text, pending attachments and the typing debounce."""

from typing import Callable, Iterable, List

from campus_chat.attachments.pipeline import PendingAttachments
from campus_chat.messaging.types import Attachment
from campus_chat.presence.typing_tracker import TypingDebouncer


class Composer:
    def __init__(self, on_typing_change: Callable[[bool], None], typing_timeout: float = 2.0):
        self.text = ""
        self.pending = PendingAttachments()
        self.debouncer = TypingDebouncer(on_typing_change, timeout=typing_timeout)

    def change_text(self, text: str) -> None:
        """Record an edit; non-empty text counts as a keystroke, empty text stops typing."""
        self.text = text
        if text.strip():
            self.debouncer.keystroke()
        else:
            self.debouncer.stop()

    @property
    def attachments(self) -> List[Attachment]:
        return self.pending.items

    @property
    def can_send(self) -> bool:
        return bool(self.text.strip()) or len(self.pending) > 0

    def after_send(self, sent_attachment_ids: Iterable[str]) -> None:
        """Clear the text and drop only the attachments that went out with the message."""
        self.text = ""
        self.pending.discard(sent_attachment_ids)
        self.debouncer.stop()

    def reset(self) -> None:
        self.text = ""
        self.pending.clear()
        self.debouncer.stop()
