"""Conversation controller -- the two user-facing actions.

Keeps a registry of named sessions. The default session (named by
settings.buffer_name) is what the top-level commands operate on when no
name is given.
"""

from __future__ import annotations

import asyncio
import logging

from colloquy.config import Settings
from colloquy.errors import NoConversationError
from colloquy.orchestrator import ChatOrchestrator
from colloquy.schemas import Message, Reply, Role
from colloquy.segmenter import split_by_role
from colloquy.session import ConversationSession

logger = logging.getLogger(__name__)


class ConversationController:
    """Starts and continues conversations on named sessions."""

    def __init__(self, settings: Settings, orchestrator: ChatOrchestrator) -> None:
        self._settings = settings
        self._orchestrator = orchestrator
        self._sessions: dict[str, ConversationSession] = {}

    @property
    def default_name(self) -> str:
        return self._settings.buffer_name

    def get_session(self, name: str | None = None) -> ConversationSession | None:
        return self._sessions.get(name or self.default_name)

    def start_conversation(
        self, prompt_text: str, name: str | None = None
    ) -> asyncio.Task[Reply]:
        """Clear (or create) the session, seed the prompt and send it.

        Raises RequestInFlightError if the session is still waiting on a
        previous reply, and CredentialError if no API key is configured.
        """
        name = name or self.default_name
        session = self._sessions.get(name)
        if session is None:
            session = ConversationSession(name)
            self._sessions[name] = session
        else:
            session.reset()

        session.seed_user_turn(prompt_text)
        session.activate()
        logger.info("Started conversation %r", name)
        return self._orchestrator.send_conversation(
            session, [Message(role=Role.USER, content=prompt_text)]
        )

    def continue_conversation(self, name: str | None = None) -> asyncio.Task[Reply]:
        """Resend the whole surface, rebuilt from its annotations.

        A surface with no tagged turns is rejected by the orchestrator with
        EmptyConversationError.
        """
        name = name or self.default_name
        session = self._sessions.get(name)
        if session is None or not session.active:
            raise NoConversationError(
                f"No conversation in {name!r}; start one first"
            )
        messages = split_by_role(session)
        logger.info("Continuing conversation %r with %d message(s)", name, len(messages))
        return self._orchestrator.send_conversation(session, messages)
