"""Reaction toggling and display aggregation."""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from campus_chat.messaging.types import CurrentUser, Message, Reaction
from campus_chat.utils.logger_config import get_logger

logger = get_logger(__name__)

# Emoji picker palette, by category
EMOJI_CATEGORIES = [
    {
        "name": "Expressões",
        "emojis": ["😊", "😂", "🥰", "😍", "😎", "😢", "😡", "🤔", "😴", "🙄", "😮", "🤐", "😷"],
    },
    {
        "name": "Gestos",
        "emojis": ["👍", "👎", "👏", "🙌", "🤝", "✌️", "👋", "👆", "👉", "👈", "🤘", "✊", "👊"],
    },
    {
        "name": "Objetos",
        "emojis": ["❤️", "💯", "🔥", "⭐", "🎉", "🎁", "📝", "📚", "💻", "🎵", "⏰", "📞", "📷"],
    },
    {
        "name": "Símbolos",
        "emojis": ["✅", "❌", "⚠️", "❓", "❗", "💬", "🔄", "🆗", "🔍", "🔒", "📌", "📢", "🚫"],
    },
]


@dataclass
class ReactionSummary:
    """All reactions with one emoji on a message."""
    emoji: str
    count: int = 0
    mine: bool = False
    user_names: List[str] = field(default_factory=list)


def toggle_reactions(reactions: List[Reaction], emoji: str, user_id: Any, user_name: str) -> List[Reaction]:
    """
    Add the (emoji, user) reaction if absent, remove it if present.

    Returns a new list; the input is not modified.
    """
    if any(r.emoji == emoji and r.user_id == user_id for r in reactions):
        return [r for r in reactions if not (r.emoji == emoji and r.user_id == user_id)]
    return list(reactions) + [Reaction(emoji=emoji, user_id=user_id, user_name=user_name)]


def summarize_reactions(reactions: List[Reaction], current_user_id: Any) -> List[ReactionSummary]:
    """Group reactions by emoji in first-seen order, counting them and flagging the user's own."""
    groups: Dict[str, ReactionSummary] = {}
    for reaction in reactions:
        summary = groups.setdefault(reaction.emoji, ReactionSummary(emoji=reaction.emoji))
        summary.count += 1
        summary.user_names.append(reaction.user_name)
        if reaction.user_id == current_user_id:
            summary.mine = True
    return list(groups.values())


class ReactionAggregator:
    """Persists reaction toggles through the gateway."""

    def __init__(self, gateway):
        self.gateway = gateway

    async def toggle(self, message_id: Any, emoji: str, user: CurrentUser) -> Message:
        """
        Toggle the user's ``emoji`` reaction on a message

        Args:
            message_id: Target message
            emoji: Reaction emoji
            user: Reacting user

        Returns:
            The updated message with its complete reaction list

        Raises:
            EntityNotFoundError: If the message does not exist
        """
        message = await self.gateway.get_message(message_id)
        reactions = toggle_reactions(message.reactions, emoji, user.id, user.name)
        updated = await self.gateway.update_reactions(message_id, reactions)
        logger.debug(f"User {user.id} toggled {emoji} on message {message_id} ({len(updated.reactions)} reactions)")
        return updated
