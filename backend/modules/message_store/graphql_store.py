"""
GraphQL-backed message store.

Talks to a pg_graphql style endpoint over HTTP. This is the primary path;
any exception raised here lets the fallback store take over.
"""

import json
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from config import settings
from modules.message_store.base import MessageStore, MessageStoreError
from modules.message_store.queries import (
    CREATE_AI_CONVERSATION,
    GET_AI_CONVERSATION_BY_ID,
    GET_CONVERSATION_MESSAGES,
    GET_USER_CONVERSATIONS,
    INSERT_AI_MESSAGE,
    UPDATE_AI_CONVERSATION,
)
from schemas.conversation import ConversationRecord, MessageRecord, MessageRoleName
from utils.logging import get_logger

logger = get_logger("message_store.graphql")


class GraphQLError(MessageStoreError):
    """Raised when the GraphQL endpoint returns errors or an unusable payload."""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _decode_metadata(node: dict) -> dict:
    # JSON scalars come back serialized as strings
    metadata = node.get("metadata")
    if isinstance(metadata, str):
        try:
            node = {**node, "metadata": json.loads(metadata)}
        except json.JSONDecodeError:
            node = {**node, "metadata": None}
    return node


def _edges(payload: dict, collection: str) -> list[dict]:
    return [edge["node"] for edge in (payload.get(collection) or {}).get("edges") or []]


class GraphQLMessageStore(MessageStore):
    """Message store that executes GraphQL documents against the backend endpoint."""

    name = "graphql"

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url or settings.graphql_url
        self.api_key = api_key if api_key is not None else settings.graphql_api_key
        self.timeout = timeout or settings.graphql_timeout
        self._client = client

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def execute(self, query: str, variables: Optional[dict[str, Any]] = None) -> dict:
        """
        Execute a GraphQL document.

        Args:
            query: GraphQL document
            variables: Variables for the document

        Returns:
            The "data" object of the response

        Raises:
            GraphQLError: On GraphQL-level errors or a missing data object
            httpx.HTTPError: On transport failures
        """
        body = {"query": query, "variables": variables or {}}

        if self._client is not None:
            response = await self._client.post(self.url, json=body, headers=self._headers())
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.url, json=body, headers=self._headers())

        response.raise_for_status()
        payload = response.json()

        if payload.get("errors"):
            messages = "; ".join(e.get("message", str(e)) for e in payload["errors"])
            raise GraphQLError(f"GraphQL error: {messages}")

        data = payload.get("data")
        if data is None:
            raise GraphQLError("GraphQL response contained no data")
        return data

    async def create_conversation(
        self,
        user_id: str,
        user_role: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        previous_response_id: Optional[str] = None,
    ) -> str:
        data = await self.execute(CREATE_AI_CONVERSATION, {
            "objects": [
                {
                    "user_id": user_id,
                    "user_role": user_role,
                    "title": title,
                    "description": description,
                    "metadata": json.dumps(metadata) if metadata is not None else None,
                    "previous_response_id": previous_response_id,
                    "last_message_at": _now_iso(),
                }
            ]
        })

        records = (data.get("insertIntoai_conversationsCollection") or {}).get("records") or []
        if not records:
            raise GraphQLError("Failed to create AI conversation via GraphQL")

        return str(records[0]["id"])

    async def update_conversation(
        self,
        conversation_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        previous_response_id: Optional[str] = None,
    ) -> None:
        values: dict[str, Any] = {"last_message_at": _now_iso()}
        if title is not None:
            values["title"] = title
        if description is not None:
            values["description"] = description
        if previous_response_id is not None:
            values["previous_response_id"] = previous_response_id

        await self.execute(UPDATE_AI_CONVERSATION, {"id": conversation_id, "set": values})

    async def get_user_conversations(self, user_id: str, limit: int = 50) -> list[ConversationRecord]:
        data = await self.execute(GET_USER_CONVERSATIONS, {
            "filter": {"user_id": {"eq": user_id}},
            "limit": limit,
            "offset": 0,
        })
        return [
            ConversationRecord.model_validate(_decode_metadata(node))
            for node in _edges(data, "ai_conversationsCollection")
        ]

    async def get_conversation_by_id(self, conversation_id: str) -> Optional[ConversationRecord]:
        data = await self.execute(GET_AI_CONVERSATION_BY_ID, {"id": conversation_id})
        nodes = _edges(data, "ai_conversationsCollection")
        if not nodes:
            return None
        return ConversationRecord.model_validate(_decode_metadata(nodes[0]))

    async def create_message(
        self,
        conversation_id: str,
        role: MessageRoleName,
        content: str,
        user_id: Optional[str] = None,
        provider_response_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        data = await self.execute(INSERT_AI_MESSAGE, {
            "objects": [
                {
                    "conversation_id": conversation_id,
                    "user_id": user_id,
                    "role": role,
                    "content": content,
                    "provider_response_id": provider_response_id,
                    "metadata": json.dumps(metadata) if metadata is not None else None,
                }
            ]
        })

        affected = (data.get("insertIntoai_messagesCollection") or {}).get("affectedCount")
        if not affected:
            raise GraphQLError("Failed to insert AI message via GraphQL")

    async def get_conversation_messages(self, conversation_id: str, limit: int = 1000) -> list[MessageRecord]:
        data = await self.execute(GET_CONVERSATION_MESSAGES, {
            "filter": {"conversation_id": {"eq": conversation_id}},
            "limit": limit,
            "offset": 0,
        })
        return [
            MessageRecord.model_validate(_decode_metadata(node))
            for node in _edges(data, "ai_messagesCollection")
        ]
