"""Tests for the remote-then-mirror persistence gateway"""

import asyncio
from dataclasses import replace
from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest

from campus_chat.gateway.fallback import FallbackChatGateway, build_gateway, summarize_message
from campus_chat.gateway.mirror import MirrorChatStore
from campus_chat.gateway.remote import RemoteChatStore
from campus_chat.gateway.seed import seed_conversations, seed_mirror_store
from campus_chat.messaging.config import ChatConfig
from campus_chat.messaging.exceptions import (
    EntityNotFoundError,
    MessageValidationError,
    RemoteUnavailableError,
)
from campus_chat.messaging.types import Attachment, Conversation, Message, Participant


def unreachable(request):
    raise httpx.ConnectError("connection refused", request=request)


def draft(text="Olá", conversation_id=1, attachments=None, timestamp="1999-01-01T00:00:00Z"):
    return Message(
        id=None,
        conversation_id=conversation_id,
        sender_id=4,
        receiver_id=3,
        sender_name="João Silva",
        receiver_name="Fernanda Lima",
        sender_role="student",
        receiver_role="teacher",
        message=text,
        timestamp=timestamp,
        attachments=attachments or [],
    )


def attachment(name="a.pdf", file_type="application/pdf"):
    return Attachment(id=f"file-{name}", file_name=name, file_type=file_type, file_size=10,
                      file_url=f"/uploads/file-{name}")



class FlakyRemote:
    """Remote store that assigns its own integer ids and can be switched off."""

    def __init__(self, conversations, read_delay=0):
        self.up = True
        self.read_delay = read_delay
        self.conversations = {c.id: c for c in conversations}
        self.messages = []

    def _check(self):
        if not self.up:
            raise RemoteUnavailableError("remote down")

    async def list_conversations_for_user(self, user_id):
        self._check()
        return [replace(c) for c in self.conversations.values() if c.has_participant(user_id)]

    async def get_conversation(self, conversation_id):
        self._check()
        await asyncio.sleep(self.read_delay)
        if conversation_id not in self.conversations:
            raise EntityNotFoundError("conversation", conversation_id)
        return replace(self.conversations[conversation_id])

    async def update_conversation(self, conversation):
        self._check()
        if conversation.id not in self.conversations:
            raise EntityNotFoundError("conversation", conversation.id)
        self.conversations[conversation.id] = replace(conversation)
        return replace(conversation)

    async def create_conversation(self, conversation):
        self._check()
        stored = replace(conversation, id=max(self.conversations, default=0) + 1)
        self.conversations[stored.id] = stored
        return replace(stored)

    async def create_message(self, message):
        self._check()
        stored = replace(message, id=len(self.messages) + 1)
        self.messages.append(stored)
        return replace(stored)

    async def list_messages(self, conversation_id):
        self._check()
        return [replace(m) for m in self.messages if m.conversation_id == conversation_id]

@pytest.fixture
def offline_gateway():
    """Gateway whose remote store is unreachable for the whole session."""
    remote = RemoteChatStore("http://api.test", transport=httpx.MockTransport(unreachable))
    return FallbackChatGateway(mirror=seed_mirror_store(), remote=remote)


class TestSummarizeMessage:
    def test_plain_text(self):
        assert summarize_message(draft("  oi  ")) == "oi"

    def test_attachment_only(self):
        assert summarize_message(draft("", attachments=[attachment()])) == "Enviou um anexo"
        assert summarize_message(draft("", attachments=[attachment()]), "en") == "Sent an attachment"

    def test_several_attachments(self):
        message = draft("Segue", attachments=[attachment("a.pdf"), attachment("b.pdf"), attachment("c.pdf")])
        assert summarize_message(message) == "Segue (+3 anexos)"


class TestFallbackRouting:
    """Test the remote-first call routing."""

    @pytest.mark.asyncio
    async def test_remote_result_is_synced_into_mirror(self):
        remote = Mock()
        remote.get_conversation = AsyncMock(return_value=Conversation(
            id="r1",
            participants=[Participant(3, "Fernanda Lima", "teacher"), Participant(5, "Ana Costa", "student")],
            last_message="remote",
        ))
        gateway = FallbackChatGateway(mirror=MirrorChatStore(), remote=remote)

        conversation = await gateway.get_conversation("r1")

        assert conversation.last_message == "remote"
        assert (await gateway.mirror.get_conversation("r1")).last_message == "remote"
        assert gateway.fallback_count == 0

    @pytest.mark.asyncio
    async def test_remote_unavailable_uses_mirror(self):
        remote = Mock()
        remote.list_users = AsyncMock(side_effect=RemoteUnavailableError("down"))
        gateway = FallbackChatGateway(mirror=seed_mirror_store(), remote=remote)

        users = await gateway.list_users()

        assert len(users) == 4
        assert gateway.fallback_count == 1
        assert gateway.last_remote_error == "down"

    @pytest.mark.asyncio
    async def test_disabled_remote_is_never_called(self):
        remote = Mock()
        remote.list_users = AsyncMock()
        gateway = FallbackChatGateway(mirror=seed_mirror_store(), remote=remote, remote_enabled=False)

        await gateway.list_users()

        remote.list_users.assert_not_called()
        assert gateway.fallback_active is True

    @pytest.mark.asyncio
    async def test_remote_not_found_checks_mirror(self):
        remote = Mock()
        remote.get_conversation = AsyncMock(side_effect=EntityNotFoundError("conversation", 1))
        gateway = FallbackChatGateway(mirror=seed_mirror_store(), remote=remote)

        conversation = await gateway.get_conversation(1)

        assert conversation.id == 1

    @pytest.mark.asyncio
    async def test_not_found_everywhere_raises(self, offline_gateway):
        with pytest.raises(EntityNotFoundError):
            await offline_gateway.get_conversation(404)

    def test_build_gateway_from_config(self):
        gateway = build_gateway(ChatConfig(remote_enabled=False, seed_mirror=True))
        assert gateway.remote is None
        assert gateway.fallback_active is True

        gateway = build_gateway(ChatConfig(api_url="http://api.test"), transport=httpx.MockTransport(unreachable))
        assert isinstance(gateway.remote, RemoteChatStore)
        assert gateway.remote.base_url == "http://api.test"


class TestSendMessage:
    """Test sending through the gateway."""

    @pytest.mark.asyncio
    async def test_fallback_continuity(self, offline_gateway):
        """Messages sent while the remote store is down are listed back in send order."""
        conversation = await offline_gateway.create_conversation(Conversation(
            id=None,
            participants=[Participant(4, "João Silva", "student"), Participant(5, "Ana Costa", "student")],
        ))

        sent = []
        for text in ("um", "dois", "três"):
            sent.append(await offline_gateway.send_message(draft(text, conversation_id=conversation.id)))

        listed = await offline_gateway.list_messages(conversation.id)

        assert [m.message for m in listed] == ["um", "dois", "três"]
        assert [m.id for m in listed] == [m.id for m in sent]
        assert [m.id for m in sent] == ["local-1", "local-2", "local-3"]

    @pytest.mark.asyncio
    async def test_send_stamps_time_and_links(self, offline_gateway):
        stored = await offline_gateway.send_message(draft("  see https://example.com/x now  "))

        assert stored.id is not None
        assert stored.message == "see https://example.com/x now"
        assert stored.has_links is True
        assert stored.read is False
        assert stored.timestamp != "1999-01-01T00:00:00Z"
        assert stored.timestamp.endswith("Z")

    @pytest.mark.asyncio
    async def test_send_updates_conversation_summary(self, offline_gateway):
        before = await offline_gateway.get_conversation(1)

        stored = await offline_gateway.send_message(draft("", attachments=[attachment("a.pdf"), attachment("b.png", "image/png")]))

        after = await offline_gateway.get_conversation(1)
        assert after.last_message == "Enviou um anexo (+2 anexos)"
        assert after.last_message_timestamp == stored.timestamp
        assert after.unread_count == before.unread_count + 1

    @pytest.mark.asyncio
    async def test_empty_send_rejected_before_any_call(self):
        remote = Mock()
        remote.create_message = AsyncMock()
        gateway = FallbackChatGateway(mirror=MirrorChatStore(), remote=remote)

        with pytest.raises(MessageValidationError):
            await gateway.send_message(draft("   "))

        remote.create_message.assert_not_called()

    @pytest.mark.asyncio
    async def test_partial_write_keeps_message(self):
        """A summary update failure does not lose the stored message."""
        gateway = FallbackChatGateway(mirror=MirrorChatStore(), remote=None)

        stored = await gateway.send_message(draft("sem conversa", conversation_id=77))

        assert stored.id == "local-1"
        assert [m.id for m in await gateway.list_messages(77)] == ["local-1"]

    @pytest.mark.asyncio
    async def test_older_message_does_not_move_summary_backwards(self, offline_gateway):
        conversation = await offline_gateway.get_conversation(1)
        future = replace(conversation, last_message="future", last_message_timestamp="2999-01-01T00:00:00Z")
        await offline_gateway.update_conversation(future)

        await offline_gateway.send_message(draft("agora"))

        after = await offline_gateway.get_conversation(1)
        assert after.last_message == "future"
        assert after.last_message_timestamp == "2999-01-01T00:00:00Z"


class TestMarkRead:
    """Test read marking and the unread counter."""

    @pytest.mark.asyncio
    async def test_mark_read_resets_unread_counter(self, offline_gateway):
        assert (await offline_gateway.get_conversation(2)).unread_count == 1

        changed = await offline_gateway.mark_read(2, 5)

        assert changed == 1
        assert (await offline_gateway.get_conversation(2)).unread_count == 0

    @pytest.mark.asyncio
    async def test_read_flag_is_monotonic(self):
        """A stale remote listing cannot flip a message back to unread."""
        mirror = seed_mirror_store()
        await mirror.mark_read(1, 4)

        stale = await MirrorChatStore(messages=[
            Message(7, 1, 3, 4, "Fernanda Lima", "João Silva", "teacher", "student", "x",
                    "2025-08-03T14:40:00-03:00", read=False),
        ]).list_messages(1)
        remote = Mock()
        remote.list_messages = AsyncMock(return_value=stale)
        remote.get_message = AsyncMock(return_value=stale[0])
        gateway = FallbackChatGateway(mirror=mirror, remote=remote)

        listed = await gateway.list_messages(1)
        fetched = await gateway.get_message(7)

        assert listed[0].read is True
        assert fetched.read is True
        assert mirror.is_read(7) is True


class TestRemoteOutage:
    """Test writes made across a remote store outage."""

    @pytest.fixture
    def remote(self):
        return FlakyRemote(seed_conversations())

    @pytest.fixture
    def gateway(self, remote):
        return FallbackChatGateway(mirror=MirrorChatStore(conversations=seed_conversations()), remote=remote)

    @pytest.mark.asyncio
    async def test_offline_message_survives_remote_ids(self, remote, gateway):
        clock = ["2025-08-10T12:00:00.000Z", "2025-08-10T12:01:00.000Z"]
        with patch("campus_chat.gateway.fallback.utc_now_iso", side_effect=clock):
            remote.up = False
            offline = await gateway.send_message(draft("sent while offline"))
            remote.up = True
            online = await gateway.send_message(draft("sent online"))

        assert offline.id == "local-1"
        assert online.id == 1

        listed_online = await gateway.list_messages(1)
        assert [m.message for m in listed_online] == ["sent while offline", "sent online"]

        remote.up = False
        listed_offline = await gateway.list_messages(1)
        assert [m.message for m in listed_offline] == ["sent while offline", "sent online"]

    @pytest.mark.asyncio
    async def test_offline_conversation_routes_to_mirror(self, remote, gateway):
        remote.up = False
        created = await gateway.create_conversation(Conversation(
            id=None,
            participants=[Participant(4, "João Silva", "student"), Participant(5, "Ana Costa", "student")],
        ))
        remote.up = True

        listed = await gateway.list_conversations_for_user(5)
        stored = await gateway.send_message(draft("oi", conversation_id=created.id))

        assert created.id in [c.id for c in listed]
        assert stored.id == "local-1"
        assert remote.messages == []
        assert (await gateway.get_conversation(created.id)).last_message == "oi"

    @pytest.mark.asyncio
    async def test_concurrent_sends_count_every_message(self):
        remote = FlakyRemote(seed_conversations(), read_delay=0.01)
        gateway = FallbackChatGateway(mirror=seed_mirror_store(), remote=remote)
        before = remote.conversations[1].unread_count

        await asyncio.gather(gateway.send_message(draft("um")), gateway.send_message(draft("dois")))

        assert remote.conversations[1].unread_count == before + 2
