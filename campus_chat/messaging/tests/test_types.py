"""Tests for messaging data classes"""

import unittest

import pytest

from campus_chat.messaging.exceptions import (
    EntityNotFoundError,
    MessageValidationError,
    MessagingError,
    UploadValidationError,
    ValidationFailure,
)
from campus_chat.messaging.types import (
    Attachment,
    ChatUser,
    Conversation,
    CurrentUser,
    Message,
    OperationResult,
    Participant,
    Reaction,
)


def make_conversation(**overrides):
    data = dict(
        id=1,
        participants=[
            Participant(user_id=3, name="Prof. Maria", role="teacher"),
            Participant(user_id=4, name="João Silva", role="student"),
        ],
    )
    data.update(overrides)
    return Conversation(**data)


class TestConversation(unittest.TestCase):
    """Test cases for Conversation"""

    def test_other_participant(self):
        conversation = make_conversation()
        self.assertEqual(conversation.other_participant(3).user_id, 4)
        self.assertEqual(conversation.other_participant(4).user_id, 3)

    def test_other_participant_falls_back_to_first(self):
        conversation = make_conversation(participants=[
            Participant(user_id=3, name="Prof. Maria", role="teacher"),
            Participant(user_id=3, name="Prof. Maria", role="teacher"),
        ])
        self.assertEqual(conversation.other_participant(3).name, "Prof. Maria")

    def test_has_participant(self):
        conversation = make_conversation()
        self.assertTrue(conversation.has_participant(4))
        self.assertFalse(conversation.has_participant(5))

    def test_validate_requires_two_distinct_participants(self):
        make_conversation().validate()

        with self.assertRaises(ValueError):
            make_conversation(participants=[Participant(3, "A", "teacher")]).validate()

        with self.assertRaises(ValueError):
            make_conversation(participants=[
                Participant(3, "A", "teacher"),
                Participant(3, "A", "teacher"),
            ]).validate()

        with self.assertRaises(ValueError):
            make_conversation(unread_count=-1).validate()

    def test_from_dict_wire_shape(self):
        conversation = Conversation.from_dict({
            "id": "7",
            "participants": [
                {"userId": 3, "name": "Prof. Maria", "role": "teacher"},
                {"userId": 5, "name": "Ana Costa", "role": "student"},
            ],
            "lastMessage": "Oi",
            "lastMessageTimestamp": "2025-08-03T10:00:00.000Z",
            "unreadCount": 2,
        })

        self.assertEqual(conversation.id, "7")
        self.assertEqual(conversation.participants[1].name, "Ana Costa")
        self.assertEqual(conversation.unread_count, 2)

    def test_to_dict_omits_missing_id(self):
        data = make_conversation(id=None).to_dict()
        self.assertNotIn("id", data)
        self.assertEqual(data["participants"][0], {"userId": 3, "name": "Prof. Maria", "role": "teacher"})


class TestMessage:
    """Test the Message data class."""

    def test_from_dict_with_attachments_and_reactions(self):
        message = Message.from_dict({
            "id": 9,
            "conversationId": 1,
            "senderId": 4,
            "receiverId": 3,
            "senderName": "João Silva",
            "receiverName": "Prof. Maria",
            "senderRole": "student",
            "receiverRole": "teacher",
            "message": "Segue o trabalho",
            "timestamp": "2025-08-03T10:00:00.000Z",
            "read": False,
            "attachments": [{
                "id": "file-1",
                "fileName": "foto.jpg",
                "fileType": "image/jpeg",
                "fileSize": 2048,
                "fileUrl": "/uploads/file-1-foto.jpg",
                "thumbnailUrl": "/uploads/thumbnails/file-1-foto.jpg",
            }],
            "reactions": [{"emoji": "👍", "userId": 3, "userName": "Prof. Maria"}],
            "hasLinks": False,
        })

        assert message.attachments[0].is_image is True
        assert message.attachments[0].thumbnail_url == "/uploads/thumbnails/file-1-foto.jpg"
        assert message.reactions == [Reaction("👍", 3, "Prof. Maria")]

    def test_missing_optional_fields_default(self):
        message = Message.from_dict({"conversationId": 1, "senderId": 4, "receiverId": 3})
        assert message.id is None
        assert message.message == ""
        assert message.read is False
        assert message.attachments == []
        assert message.reactions == []

    def test_with_read_returns_copy(self):
        message = Message(1, 1, 4, 3, "João", "Maria", "student", "teacher", "oi", "2025-08-03T10:00:00Z")
        read = message.with_read()
        assert read.read is True
        assert message.read is False

    def test_to_dict_round_trip_keeps_wire_names(self):
        attachment = Attachment("file-1", "a.pdf", "application/pdf", 10, "/uploads/file-1-a.pdf")
        message = Message(None, 1, 4, 3, "João", "Maria", "student", "teacher", "oi", "t",
                          attachments=[attachment])
        data = message.to_dict()
        assert "id" not in data
        assert data["attachments"][0] == {
            "id": "file-1",
            "fileName": "a.pdf",
            "fileType": "application/pdf",
            "fileSize": 10,
            "fileUrl": "/uploads/file-1-a.pdf",
        }
        assert data["hasLinks"] is False


class TestUsersAndResults:
    def test_chat_user_accepts_id_or_user_id(self):
        assert ChatUser.from_dict({"id": 3, "name": "Maria", "role": "teacher"}).user_id == 3
        assert ChatUser.from_dict({"userId": 4, "name": "João", "role": "student"}).user_id == 4

    def test_current_user_as_participant(self):
        user = CurrentUser(id=3, name="Maria", role="teacher")
        assert user.as_participant() == Participant(user_id=3, name="Maria", role="teacher")

    def test_operation_result_helpers(self):
        assert OperationResult.ok(5) == OperationResult(success=True, value=5)
        failed = OperationResult.failed("nope")
        assert failed.success is False
        assert failed.error == "nope"
        assert failed.value is None


class TestExceptionHierarchy:
    def test_validation_errors_share_base(self):
        assert issubclass(MessageValidationError, ValidationFailure)
        assert issubclass(UploadValidationError, ValidationFailure)
        assert issubclass(ValidationFailure, MessagingError)

    def test_entity_not_found_message(self):
        error = EntityNotFoundError("conversation", 42)
        assert str(error) == "conversation not found: 42"
        assert error.entity == "conversation"
        assert error.entity_id == 42
        with pytest.raises(MessagingError):
            raise error
