"""
Custom exceptions for the messaging core.

Remote failures are recovered internally by the persistence gateway; only
not-found and validation failures are meant to reach the user.
"""


class MessagingError(Exception):
    """Base exception for all messaging-related errors."""
    pass


class RemoteUnavailableError(MessagingError):
    """Raised when the remote store cannot be reached or fails (network, timeout, 5xx)."""
    pass


class EntityNotFoundError(MessagingError):
    """Raised when a conversation or message is absent even from the mirror store."""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class ValidationFailure(MessagingError):
    """Base class for input rejected before any gateway call."""
    pass


class MessageValidationError(ValidationFailure):
    """Raised when a message has neither text nor attachments."""
    pass


class UploadValidationError(ValidationFailure):
    """Raised when an uploaded file cannot be read or exceeds limits."""
    pass


class PartialWriteError(MessagingError):
    """Raised when a message was stored but the conversation summary update failed."""
    pass
