"""
Messaging core types, configuration and errors.

Shared by the persistence gateway, the conversation directory and the
message thread controller.
"""

from .config import ChatConfig, load_config
from .exceptions import (
    MessagingError,
    RemoteUnavailableError,
    EntityNotFoundError,
    ValidationFailure,
    MessageValidationError,
    UploadValidationError,
    PartialWriteError,
)
from .links import URL_REGEX, MessageToken, detect_links, tokenize_message
from .types import (
    Attachment,
    ChatUser,
    Conversation,
    CurrentUser,
    Message,
    OperationResult,
    Participant,
    Reaction,
)

__all__ = [
    # Configuration
    'ChatConfig',
    'load_config',

    # Data model
    'Attachment',
    'ChatUser',
    'Conversation',
    'CurrentUser',
    'Message',
    'OperationResult',
    'Participant',
    'Reaction',

    # Links
    'URL_REGEX',
    'MessageToken',
    'detect_links',
    'tokenize_message',

    # Exceptions
    'MessagingError',
    'RemoteUnavailableError',
    'EntityNotFoundError',
    'ValidationFailure',
    'MessageValidationError',
    'UploadValidationError',
    'PartialWriteError',
]
