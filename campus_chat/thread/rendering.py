"""
Message thread rendering.

Turns the loaded messages into display items: day dividers between calendar
days, link-aware body tokens, attachment previews and aggregated reactions.
"""

from dataclasses import dataclass, field
from datetime import date, tzinfo
from typing import Any, List, Optional, Union

from campus_chat.attachments.pipeline import attachment_icon, attachment_label
from campus_chat.conversations.formatting import format_day_label, format_message_time
from campus_chat.messaging.links import MessageToken, tokenize_message
from campus_chat.messaging.timestamps import parse_timestamp, to_local
from campus_chat.messaging.types import Attachment, Message
from campus_chat.reactions.aggregator import ReactionSummary, summarize_reactions


@dataclass
class DayDivider:
    day: Optional[date]
    label: str


@dataclass
class AttachmentView:
    attachment: Attachment
    icon: str
    label: str
    preview_url: Optional[str] = None


@dataclass
class RenderedMessage:
    message: Message
    is_mine: bool
    time_label: str
    body: List[MessageToken] = field(default_factory=list)
    attachments: List[AttachmentView] = field(default_factory=list)
    reactions: List[ReactionSummary] = field(default_factory=list)

    @property
    def body_text(self) -> str:
        return render_body_text(self.body)


ThreadItem = Union[DayDivider, RenderedMessage]


def _calendar_day(timestamp: str, tz: Optional[tzinfo]) -> Optional[date]:
    try:
        return to_local(parse_timestamp(timestamp), tz).date()
    except (ValueError, TypeError):
        return None


def group_by_day(
    messages: List[Message],
    locale: str = "pt-BR",
    tz: Optional[tzinfo] = None,
) -> List[Union[DayDivider, Message]]:
    """
    Interleave day dividers with messages

    A divider precedes the first message and every message whose calendar day
    (in the display timezone) differs from the previous message's. Messages
    with unparseable timestamps stay under the current divider.

    Args:
        messages: Messages in chronological order
        locale: Display locale for divider labels
        tz: Display timezone for aware timestamps (default: local)

    Returns:
        Dividers and messages in display order
    """
    items: List[Union[DayDivider, Message]] = []
    current_day: Optional[date] = None

    for index, message in enumerate(messages):
        day = _calendar_day(message.timestamp, tz)
        if index == 0 or (day is not None and day != current_day):
            items.append(DayDivider(day=day, label=format_day_label(message.timestamp, locale, tz)))
        if day is not None:
            current_day = day
        items.append(message)

    return items


def render_message_body(message: Message) -> List[MessageToken]:
    """Body tokens; only messages flagged with links are tokenised."""
    if not message.message:
        return []
    if message.has_links:
        return tokenize_message(message.message)
    return [MessageToken(text=message.message)]


def render_body_text(tokens: List[MessageToken]) -> str:
    # Link-tokenised bodies lose their original whitespace
    return " ".join(token.text for token in tokens)


def attachment_view(attachment: Attachment) -> AttachmentView:
    preview = None
    if attachment.is_image:
        preview = attachment.thumbnail_url or attachment.file_url
    return AttachmentView(
        attachment=attachment,
        icon=attachment_icon(attachment.file_type),
        label=attachment_label(attachment),
        preview_url=preview,
    )


def render_message(message: Message, current_user_id: Any, tz: Optional[tzinfo] = None) -> RenderedMessage:
    return RenderedMessage(
        message=message,
        is_mine=message.sender_id == current_user_id,
        time_label=format_message_time(message.timestamp, tz),
        body=render_message_body(message),
        attachments=[attachment_view(a) for a in message.attachments],
        reactions=summarize_reactions(message.reactions, current_user_id),
    )


def render_thread(
    messages: List[Message],
    current_user_id: Any,
    locale: str = "pt-BR",
    tz: Optional[tzinfo] = None,
) -> List[ThreadItem]:
    """Full display list for a thread: day dividers and rendered messages."""
    return [
        item if isinstance(item, DayDivider) else render_message(item, current_user_id, tz)
        for item in group_by_day(messages, locale, tz)
    ]
