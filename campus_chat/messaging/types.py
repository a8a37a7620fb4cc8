"""Data classes for the messaging core.

Conversations, messages, attachments and reactions travel to and from the
remote admin API as camelCase JSON; ``to_dict``/``from_dict`` translate between
that wire shape and these dataclasses.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional


@dataclass
class Participant:
    """One side of a two-person conversation."""
    user_id: Any
    name: str
    role: str

    def to_dict(self) -> Dict[str, Any]:
        return {"userId": self.user_id, "name": self.name, "role": self.role}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Participant":
        return cls(user_id=data["userId"], name=data.get("name", ""), role=data.get("role", ""))


@dataclass
class Conversation:
    """A direct-message thread between exactly two participants."""
    id: Any
    participants: List[Participant]
    last_message: str = ""
    last_message_timestamp: str = ""
    unread_count: int = 0

    def has_participant(self, user_id: Any) -> bool:
        """Check whether ``user_id`` is one of the two participants."""
        return any(p.user_id == user_id for p in self.participants)

    def other_participant(self, user_id: Any) -> Participant:
        """The participant that is not ``user_id``; the first one if both match."""
        for participant in self.participants:
            if participant.user_id != user_id:
                return participant
        return self.participants[0]

    def validate(self) -> None:
        """Validate conversation data integrity."""
        if len(self.participants) != 2:
            raise ValueError("a conversation must have exactly two participants")
        if self.participants[0].user_id == self.participants[1].user_id:
            raise ValueError("conversation participants must be distinct users")
        if self.unread_count < 0:
            raise ValueError("unread_count must be non-negative")

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "participants": [p.to_dict() for p in self.participants],
            "lastMessage": self.last_message,
            "lastMessageTimestamp": self.last_message_timestamp,
            "unreadCount": self.unread_count,
        }
        if self.id is not None:
            data["id"] = self.id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Conversation":
        return cls(
            id=data.get("id"),
            participants=[Participant.from_dict(p) for p in data.get("participants", [])],
            last_message=data.get("lastMessage") or "",
            last_message_timestamp=data.get("lastMessageTimestamp") or "",
            unread_count=int(data.get("unreadCount") or 0),
        )


@dataclass
class Attachment:
    """A file attached to a message. Never mutated once attached."""
    id: str
    file_name: str
    file_type: str
    file_size: int
    file_url: str
    thumbnail_url: Optional[str] = None

    @property
    def is_image(self) -> bool:
        return self.file_type.startswith("image/")

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "fileName": self.file_name,
            "fileType": self.file_type,
            "fileSize": self.file_size,
            "fileUrl": self.file_url,
        }
        if self.thumbnail_url is not None:
            data["thumbnailUrl"] = self.thumbnail_url
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Attachment":
        return cls(
            id=data.get("id") or "",
            file_name=data["fileName"],
            file_type=data.get("fileType") or "application/octet-stream",
            file_size=int(data.get("fileSize") or 0),
            file_url=data.get("fileUrl") or "",
            thumbnail_url=data.get("thumbnailUrl"),
        )


@dataclass(frozen=True)
class Reaction:
    """A single user's emoji reaction on a message."""
    emoji: str
    user_id: Any
    user_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"emoji": self.emoji, "userId": self.user_id, "userName": self.user_name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Reaction":
        return cls(emoji=data["emoji"], user_id=data["userId"], user_name=data.get("userName", ""))


@dataclass
class Message:
    """A message in a conversation.

    Only ``read`` and ``reactions`` change after the gateway has stored it.
    """
    id: Any
    conversation_id: Any
    sender_id: Any
    receiver_id: Any
    sender_name: str
    receiver_name: str
    sender_role: str
    receiver_role: str
    message: str
    timestamp: str
    read: bool = False
    attachments: List[Attachment] = field(default_factory=list)
    reactions: List[Reaction] = field(default_factory=list)
    has_links: bool = False

    def with_read(self) -> "Message":
        return replace(self, read=True)

    def with_reactions(self, reactions: List[Reaction]) -> "Message":
        return replace(self, reactions=list(reactions))

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "conversationId": self.conversation_id,
            "senderId": self.sender_id,
            "receiverId": self.receiver_id,
            "senderName": self.sender_name,
            "receiverName": self.receiver_name,
            "senderRole": self.sender_role,
            "receiverRole": self.receiver_role,
            "message": self.message,
            "timestamp": self.timestamp,
            "read": self.read,
            "attachments": [a.to_dict() for a in self.attachments],
            "reactions": [r.to_dict() for r in self.reactions],
            "hasLinks": self.has_links,
        }
        if self.id is not None:
            data["id"] = self.id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        return cls(
            id=data.get("id"),
            conversation_id=data["conversationId"],
            sender_id=data["senderId"],
            receiver_id=data["receiverId"],
            sender_name=data.get("senderName", ""),
            receiver_name=data.get("receiverName", ""),
            sender_role=data.get("senderRole", ""),
            receiver_role=data.get("receiverRole", ""),
            message=data.get("message") or "",
            timestamp=data.get("timestamp") or "",
            read=bool(data.get("read", False)),
            attachments=[Attachment.from_dict(a) for a in data.get("attachments") or []],
            reactions=[Reaction.from_dict(r) for r in data.get("reactions") or []],
            has_links=bool(data.get("hasLinks", False)),
        )


@dataclass
class ChatUser:
    """A user that can be picked as a chat partner."""
    user_id: Any
    name: str
    role: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatUser":
        # /users returns ``id``; the picker shape uses ``userId``
        user_id = data["userId"] if "userId" in data else data["id"]
        return cls(user_id=user_id, name=data.get("name", ""), role=data.get("role", ""))

    def to_dict(self) -> Dict[str, Any]:
        return {"userId": self.user_id, "name": self.name, "role": self.role}


@dataclass(frozen=True)
class CurrentUser:
    """The signed-in user, passed explicitly into every operation."""
    id: Any
    name: str
    role: str

    def as_participant(self) -> Participant:
        return Participant(user_id=self.id, name=self.name, role=self.role)


@dataclass
class OperationResult:
    """Outcome of an inbound UI operation. Expected failures never raise."""
    success: bool
    error: Optional[str] = None
    value: Any = None

    @classmethod
    def ok(cls, value: Any = None) -> "OperationResult":
        return cls(success=True, value=value)

    @classmethod
    def failed(cls, error: str) -> "OperationResult":
        return cls(success=False, error=error)
