"""Emoji reactions: per-user toggling and per-emoji aggregation."""

from .aggregator import (
    EMOJI_CATEGORIES,
    ReactionAggregator,
    ReactionSummary,
    summarize_reactions,
    toggle_reactions,
)

__all__ = [
    'EMOJI_CATEGORIES',
    'ReactionAggregator',
    'ReactionSummary',
    'summarize_reactions',
    'toggle_reactions',
]
