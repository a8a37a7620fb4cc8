"""The open conversation: loading, sending, attachments, reactions and typing."""

from .composer import Composer
from .controller import MessageThreadController, ThreadState
from .rendering import (
    AttachmentView,
    DayDivider,
    RenderedMessage,
    group_by_day,
    render_message_body,
    render_thread,
)

__all__ = [
    'AttachmentView',
    'Composer',
    'DayDivider',
    'MessageThreadController',
    'RenderedMessage',
    'ThreadState',
    'group_by_day',
    'render_message_body',
    'render_thread',
]
