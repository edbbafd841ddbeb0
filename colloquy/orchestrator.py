"""Request/response orchestrator -- one chat-completions exchange per send.

Builds the request from a message list, posts it with httpx in a
background task, and on success appends the reply to the session's
surface as a new assistant turn. Failures never touch the surface: they
are logged, stored on the session, published on the bus and returned as a
Reply carrying the error.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence
from typing import Any

import httpx

from colloquy.config import Settings
from colloquy.credentials import CredentialProvider, build_auth_headers
from colloquy.errors import ChatResponseError, EmptyConversationError, RequestInFlightError
from colloquy.events import (
    ConversationEvent,
    EventBus,
    RequestFailed,
    RequestStarted,
    TurnAppended,
)
from colloquy.schemas import Message, Reply, Role
from colloquy.session import ConversationSession

logger = logging.getLogger(__name__)


def _extract_content(data: Any) -> str:
    """Pull choices[0].message.content out of a parsed response body."""
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        raise ChatResponseError(
            "Chat API response has no choices[0].message.content"
        ) from None
    if not isinstance(content, str):
        raise ChatResponseError(
            f"Chat API returned non-text content ({type(content).__name__})"
        )
    return content


def _error_detail(response: httpx.Response) -> str:
    try:
        error = response.json().get("error", {})
        return f"{error.get('type', 'unknown')} - {error.get('message', 'unknown error')}"
    except Exception:
        return response.text[:500]


class ChatOrchestrator:
    """Sends conversations to the chat endpoint and appends the replies.

    An httpx client can be passed in (tests use a MockTransport); otherwise
    start() creates one and close() releases it.
    """

    def __init__(
        self,
        settings: Settings,
        credentials: CredentialProvider | None = None,
        bus: EventBus | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._credentials = credentials or CredentialProvider(settings)
        self._bus = bus
        self._http = http_client
        self._owns_http = http_client is None

    async def start(self) -> None:
        """Create the httpx client with timeout and connection limits."""
        if self._http is not None:
            return
        timeout = httpx.Timeout(
            connect=self._settings.api_timeout_connect,
            read=self._settings.api_timeout_read,
            write=10.0,
            pool=10.0,
        )
        limits = httpx.Limits(max_connections=5, max_keepalive_connections=2)
        self._http = httpx.AsyncClient(timeout=timeout, limits=limits)
        self._owns_http = True
        logger.debug("httpx client initialized for %s", self._settings.chat_url)

    async def close(self) -> None:
        if self._http and self._owns_http:
            await self._http.aclose()
        self._http = None

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def build_payload(self, messages: Sequence[Message]) -> dict[str, Any]:
        return {
            "model": self._settings.model,
            "messages": [m.to_api() for m in messages],
        }

    def send_conversation(
        self,
        session: ConversationSession,
        messages: Sequence[Message],
    ) -> asyncio.Task[Reply]:
        """Start an exchange for messages and return its task immediately.

        Must be called from a running event loop. Raises before any network
        activity when there is nothing to send, when the session already
        has a request in flight, or (CredentialError) when no API key is
        available.
        """
        messages = list(messages)
        if not messages:
            raise EmptyConversationError(
                f"Conversation {session.name!r} has no turns to send"
            )
        if session.busy:
            raise RequestInFlightError(
                f"Conversation {session.name!r} is still waiting for a reply"
            )
        if not self._http:
            raise RuntimeError("httpx client not initialized -- call start() first")

        api_key = self._credentials.get_api_key()
        body = json.dumps(self.build_payload(messages), ensure_ascii=False).encode("utf-8")
        headers = build_auth_headers(api_key)

        logger.info(
            "Sending %d message(s) for %r to %s",
            len(messages),
            session.name,
            self._settings.model,
        )
        task = asyncio.create_task(
            self._exchange(session, body, headers, len(messages)),
            name=f"chat:{session.name}",
        )
        session.claim(task)
        return task

    async def _exchange(
        self,
        session: ConversationSession,
        body: bytes,
        headers: dict[str, str],
        message_count: int,
    ) -> Reply:
        await self._publish(RequestStarted(session.name, message_count=message_count))
        try:
            content = await self._post(body, headers)
        except ChatResponseError as e:
            return await self._fail(session, e)
        except Exception as e:
            logger.exception("Unexpected error in chat request for %r", session.name)
            return await self._fail(session, ChatResponseError(f"Unexpected error: {e!r}"))

        # No await between here and the append: the reply lands atomically
        # with respect to the user's edits.
        span = session.append_assistant_turn(content)
        session.last_error = None
        await self._publish(TurnAppended(session.name, content=content, span=span))
        return Reply(message=Message(role=Role.ASSISTANT, content=content))

    async def _post(self, body: bytes, headers: dict[str, str]) -> str:
        try:
            response = await self._http.post(
                self._settings.chat_url, content=body, headers=headers
            )
        except httpx.TimeoutException as e:
            raise ChatResponseError(f"API request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ChatResponseError(f"HTTP error: {e}") from e

        if not response.is_success:
            raise ChatResponseError(
                f"Chat API error ({response.status_code}): {_error_detail(response)}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError:
            raise ChatResponseError(
                "Chat API returned a body that is not valid JSON",
                status_code=response.status_code,
            ) from None

        usage = data.get("usage") if isinstance(data, dict) else None
        if isinstance(usage, dict):
            logger.debug(
                "Usage: %s prompt / %s completion tokens",
                usage.get("prompt_tokens"),
                usage.get("completion_tokens"),
            )
        return _extract_content(data)

    async def _fail(self, session: ConversationSession, error: ChatResponseError) -> Reply:
        logger.warning("Chat request for %r failed: %s", session.name, error)
        session.last_error = str(error)
        await self._publish(
            RequestFailed(session.name, error=str(error), status_code=error.status_code)
        )
        return Reply(error=str(error))

    async def _publish(self, event: ConversationEvent) -> None:
        if self._bus is not None:
            await self._bus.publish(event)
