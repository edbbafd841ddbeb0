"""Shared fixtures: settings, a fake chat-completions endpoint, wired components."""

import json

import httpx
import pytest
import pytest_asyncio

from colloquy.config import Settings
from colloquy.controller import ConversationController
from colloquy.events import EventBus
from colloquy.orchestrator import ChatOrchestrator

CHAT_URL = "https://api.openai.com/v1/chat/completions"


def chat_body(content: str) -> dict:
    """Wrap text in the chat-completions response shape."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
        "usage": {"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15},
    }


class FakeChatAPI:
    """Records requests and answers them from a queue of responses.

    With no queued response it answers 500, so a test that forgets to queue
    one fails loudly instead of hanging.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._responses: list[httpx.Response | Exception] = []

    def reply(self, content: str) -> None:
        self._responses.append(httpx.Response(200, json=chat_body(content)))

    def respond(self, response: httpx.Response | Exception) -> None:
        self._responses.append(response)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._responses:
            return httpx.Response(500, json={"error": {"type": "server_error", "message": "no reply queued"}})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture
def settings() -> Settings:
    return Settings(OPENAI_API_KEY="test-key-123", _env_file=None)


@pytest.fixture
def fake_api() -> FakeChatAPI:
    return FakeChatAPI()


@pytest_asyncio.fixture
async def http_client(fake_api):
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_api.handler))
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def orchestrator(settings, http_client):
    o = ChatOrchestrator(settings, http_client=http_client)
    yield o
    await o.close()


@pytest.fixture
def controller(settings, orchestrator) -> ConversationController:
    return ConversationController(settings, orchestrator)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()
