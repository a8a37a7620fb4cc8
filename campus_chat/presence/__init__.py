"""Ephemeral typing presence for open conversations."""

from .typing_tracker import (
    TypingDebouncer,
    TypingPoller,
    TypingTracker,
    TypingUser,
    format_typing_indicator,
)

__all__ = [
    'TypingDebouncer',
    'TypingPoller',
    'TypingTracker',
    'TypingUser',
    'format_typing_indicator',
]
