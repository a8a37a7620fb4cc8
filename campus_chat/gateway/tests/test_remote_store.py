"""Tests for the httpx-backed remote store"""

import json

import httpx
import pytest

from campus_chat.gateway.remote import RemoteChatStore
from campus_chat.messaging.exceptions import EntityNotFoundError, RemoteUnavailableError
from campus_chat.messaging.types import Conversation, Message, Participant, Reaction

CONVERSATIONS = [
    {
        "id": "1",
        "participants": [
            {"userId": 3, "name": "Fernanda Lima", "role": "teacher"},
            {"userId": 4, "name": "João Silva", "role": "student"},
        ],
        "lastMessage": "Oi",
        "lastMessageTimestamp": "2025-08-03T15:00:00.000Z",
        "unreadCount": 0,
    },
    {
        "id": "2",
        "participants": [
            {"userId": 3, "name": "Fernanda Lima", "role": "teacher"},
            {"userId": 5, "name": "Ana Costa", "role": "student"},
        ],
        "lastMessage": "Prova",
        "lastMessageTimestamp": "2025-08-03T15:10:00.000Z",
        "unreadCount": 1,
    },
]


def message_payload(message_id, read=False, receiver_id=3):
    return {
        "id": message_id,
        "conversationId": "1",
        "senderId": 4,
        "receiverId": receiver_id,
        "senderName": "João Silva",
        "receiverName": "Fernanda Lima",
        "senderRole": "student",
        "receiverRole": "teacher",
        "message": "Olá",
        "timestamp": "2025-08-03T14:35:00.000Z",
        "read": read,
        "attachments": [],
        "reactions": [],
        "hasLinks": False,
    }


def make_store(handler):
    return RemoteChatStore("http://api.test/", transport=httpx.MockTransport(handler))


class TestRemoteChatStore:
    """Test request routing and response decoding."""

    @pytest.mark.asyncio
    async def test_list_users(self):
        def handler(request):
            assert request.url.path == "/users"
            return httpx.Response(200, json=[
                {"id": 1, "name": "Administrador", "role": "admin"},
                {"id": 3, "name": "Fernanda Lima", "role": "teacher"},
            ])

        store = make_store(handler)
        users = await store.list_users()

        assert [u.user_id for u in users] == [1, 3]
        assert users[1].role == "teacher"
        await store.aclose()

    @pytest.mark.asyncio
    async def test_list_conversations_filters_by_participant(self):
        store = make_store(lambda request: httpx.Response(200, json=CONVERSATIONS))

        conversations = await store.list_conversations_for_user(5)

        assert [c.id for c in conversations] == ["2"]

    @pytest.mark.asyncio
    async def test_get_conversation_404_is_not_found(self):
        store = make_store(lambda request: httpx.Response(404, json={}))

        with pytest.raises(EntityNotFoundError) as exc_info:
            await store.get_conversation("42")

        assert exc_info.value.entity == "conversation"
        assert exc_info.value.entity_id == "42"

    @pytest.mark.asyncio
    async def test_create_conversation_posts_without_id(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={**seen["body"], "id": "9"})

        store = make_store(handler)
        created = await store.create_conversation(Conversation(
            id=None,
            participants=[Participant(3, "Fernanda Lima", "teacher"), Participant(5, "Ana Costa", "student")],
            last_message_timestamp="2025-08-03T15:00:00.000Z",
        ))

        assert seen["method"] == "POST"
        assert "id" not in seen["body"]
        assert seen["body"]["participants"][1]["userId"] == 5
        assert created.id == "9"

    @pytest.mark.asyncio
    async def test_list_messages_sends_conversation_filter(self):
        def handler(request):
            assert request.url.path == "/chatMessages"
            assert request.url.params["conversationId"] == "1"
            return httpx.Response(200, json=[message_payload("10"), message_payload("11")])

        store = make_store(handler)
        messages = await store.list_messages("1")

        assert [m.id for m in messages] == ["10", "11"]

    @pytest.mark.asyncio
    async def test_mark_read_patches_each_unread_message(self):
        patched = []

        def handler(request):
            if request.method == "GET":
                assert request.url.params["receiverId"] == "3"
                assert request.url.params["read"] == "false"
                return httpx.Response(200, json=[message_payload("10"), message_payload("11")])
            patched.append((request.url.path, json.loads(request.content)))
            return httpx.Response(200, json=message_payload(request.url.path.rsplit("/", 1)[-1], read=True))

        store = make_store(handler)
        changed = await store.mark_read("1", 3)

        assert changed == 2
        assert patched == [
            ("/chatMessages/10", {"read": True}),
            ("/chatMessages/11", {"read": True}),
        ]

    @pytest.mark.asyncio
    async def test_update_reactions_sends_full_list(self):
        def handler(request):
            body = json.loads(request.content)
            assert request.method == "PATCH"
            return httpx.Response(200, json={**message_payload("10"), "reactions": body["reactions"]})

        store = make_store(handler)
        updated = await store.update_reactions("10", [Reaction("🎉", 3, "Fernanda Lima")])

        assert updated.reactions == [Reaction("🎉", 3, "Fernanda Lima")]

    @pytest.mark.asyncio
    async def test_create_message_round_trips_attachments(self):
        def handler(request):
            body = json.loads(request.content)
            return httpx.Response(201, json={**body, "id": "12"})

        store = make_store(handler)
        draft = Message.from_dict(message_payload(None))
        stored = await store.create_message(draft)

        assert stored.id == "12"
        assert stored.message == "Olá"


class TestRemoteFailures:
    """Failures are reported as RemoteUnavailableError."""

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(RemoteUnavailableError):
            await make_store(handler).list_users()

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(RemoteUnavailableError, match="timed out"):
            await make_store(handler).list_users()

    @pytest.mark.asyncio
    async def test_server_error(self):
        store = make_store(lambda request: httpx.Response(503, text="maintenance"))

        with pytest.raises(RemoteUnavailableError, match="HTTP 503"):
            await store.list_messages("1")

    @pytest.mark.asyncio
    async def test_404_without_entity_is_unavailable(self):
        store = make_store(lambda request: httpx.Response(404))

        with pytest.raises(RemoteUnavailableError):
            await store.list_users()

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        store = make_store(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(RemoteUnavailableError, match="invalid JSON"):
            await store.list_users()

    @pytest.mark.asyncio
    async def test_unexpected_shape(self):
        store = make_store(lambda request: httpx.Response(200, json={"users": []}))

        with pytest.raises(RemoteUnavailableError, match="Expected a JSON array"):
            await store.list_users()

    @pytest.mark.asyncio
    async def test_missing_required_field(self):
        store = make_store(lambda request: httpx.Response(200, json=[{"name": "x"}]))

        with pytest.raises(RemoteUnavailableError, match="Unexpected payload shape"):
            await store.list_users()
