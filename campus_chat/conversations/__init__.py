"""Conversation listing, de-duplicated creation and display formatting."""

from .directory import ConversationDirectory
from .formatting import (
    format_day_label,
    format_message_time,
    format_relative_time,
    role_label,
)

__all__ = [
    'ConversationDirectory',
    'format_day_label',
    'format_message_time',
    'format_relative_time',
    'role_label',
]
