"""
Remote admin API client.

Talks REST/JSON to the backing store with httpx. Transport failures,
timeouts, server errors and undecodable payloads are all reported as
``RemoteUnavailableError`` so that the fallback adapter can switch to the
mirror; 404 responses become ``EntityNotFoundError``.
"""

from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

import httpx

from campus_chat.messaging.exceptions import EntityNotFoundError, RemoteUnavailableError
from campus_chat.messaging.types import ChatUser, Conversation, Message, Reaction
from campus_chat.utils.logger_config import get_logger

from .base import ChatStore

logger = get_logger(__name__)

T = TypeVar("T")


class RemoteChatStore(ChatStore):
    """Chat store backed by the remote admin API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the remote store

        Args:
            base_url: Admin API base URL (e.g. http://localhost:3001)
            timeout: Per-request timeout in seconds
            client: Preconfigured client to use instead of creating one
            transport: Custom transport for the created client (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers=self._get_headers(),
        )

        logger.info(f"Remote chat store initialized with base URL: {self.base_url}")

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        not_found: Optional[Tuple[str, Any]] = None,
        **kwargs,
    ) -> Any:
        """
        Issue a request and decode the JSON body

        Args:
            method: HTTP method
            path: Path relative to the base URL
            not_found: (entity, id) reported when the server answers 404

        Returns:
            Decoded JSON payload

        Raises:
            RemoteUnavailableError: On transport failure, timeout, error status or bad JSON
            EntityNotFoundError: On 404 when ``not_found`` is given
        """
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise RemoteUnavailableError(f"{method} {path} timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise RemoteUnavailableError(f"{method} {path} failed: {e}") from e

        if response.status_code == 404 and not_found is not None:
            raise EntityNotFoundError(*not_found)

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RemoteUnavailableError(
                f"{method} {path} returned HTTP {response.status_code}"
            ) from e

        try:
            return response.json()
        except ValueError as e:
            raise RemoteUnavailableError(f"{method} {path} returned invalid JSON") from e

    @staticmethod
    def _parse(parser: Callable[[Dict[str, Any]], T], payload: Any) -> T:
        try:
            return parser(payload)
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteUnavailableError(f"Unexpected payload shape: {e}") from e

    def _parse_list(self, parser: Callable[[Dict[str, Any]], T], payload: Any) -> List[T]:
        if not isinstance(payload, list):
            raise RemoteUnavailableError("Expected a JSON array")
        return [self._parse(parser, item) for item in payload]

    async def list_users(self) -> List[ChatUser]:
        payload = await self._request("GET", "/users")
        return self._parse_list(ChatUser.from_dict, payload)

    async def list_conversations_for_user(self, user_id: Any) -> List[Conversation]:
        payload = await self._request("GET", "/conversations")
        conversations = self._parse_list(Conversation.from_dict, payload)
        return [c for c in conversations if c.has_participant(user_id)]

    async def get_conversation(self, conversation_id: Any) -> Conversation:
        payload = await self._request(
            "GET", f"/conversations/{conversation_id}",
            not_found=("conversation", conversation_id),
        )
        return self._parse(Conversation.from_dict, payload)

    async def create_conversation(self, conversation: Conversation) -> Conversation:
        body = conversation.to_dict()
        body.pop("id", None)
        payload = await self._request("POST", "/conversations", json=body)
        return self._parse(Conversation.from_dict, payload)

    async def update_conversation(self, conversation: Conversation) -> Conversation:
        payload = await self._request(
            "PUT", f"/conversations/{conversation.id}",
            not_found=("conversation", conversation.id),
            json=conversation.to_dict(),
        )
        return self._parse(Conversation.from_dict, payload)

    async def list_messages(self, conversation_id: Any) -> List[Message]:
        payload = await self._request(
            "GET", "/chatMessages", params={"conversationId": conversation_id}
        )
        return self._parse_list(Message.from_dict, payload)

    async def get_message(self, message_id: Any) -> Message:
        payload = await self._request(
            "GET", f"/chatMessages/{message_id}", not_found=("message", message_id)
        )
        return self._parse(Message.from_dict, payload)

    async def create_message(self, message: Message) -> Message:
        body = message.to_dict()
        body.pop("id", None)
        payload = await self._request("POST", "/chatMessages", json=body)
        return self._parse(Message.from_dict, payload)

    async def mark_read(self, conversation_id: Any, reader_id: Any) -> int:
        payload = await self._request(
            "GET", "/chatMessages",
            params={"conversationId": conversation_id, "receiverId": reader_id, "read": "false"},
        )
        unread = self._parse_list(Message.from_dict, payload)

        for message in unread:
            await self._request(
                "PATCH", f"/chatMessages/{message.id}",
                not_found=("message", message.id),
                json={"read": True},
            )

        return len(unread)

    async def update_reactions(self, message_id: Any, reactions: List[Reaction]) -> Message:
        payload = await self._request(
            "PATCH", f"/chatMessages/{message_id}",
            not_found=("message", message_id),
            json={"reactions": [r.to_dict() for r in reactions]},
        )
        return self._parse(Message.from_dict, payload)
