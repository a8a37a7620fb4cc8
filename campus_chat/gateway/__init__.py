"""
Persistence gateway for conversations, messages and users.

Every call goes to the remote admin API first and falls back to an in-process
mirror store when the remote store is unreachable or disabled.
"""

from .base import ChatStore
from .fallback import FallbackChatGateway, build_gateway, summarize_message
from .mirror import MirrorChatStore
from .remote import RemoteChatStore
from .seed import seed_mirror_store

__all__ = [
    'ChatStore',
    'FallbackChatGateway',
    'MirrorChatStore',
    'RemoteChatStore',
    'build_gateway',
    'seed_mirror_store',
    'summarize_message',
]
