"""Colloquy command-line client.

An asyncio REPL over the default conversation surface:

    /new <prompt>    start a conversation (clears the surface)
    /continue, /c    send the whole surface again with your latest turn
    /show            print the surface
    /wait            wait for the pending reply
    /quit            exit

Any other line is typed into the surface at the insertion point.

Usage:
    OPENAI_API_KEY=... python -m colloquy

Environment:
    OPENAI_API_KEY      - API key for the chat endpoint (required)
    COLLOQUY_MODEL      - Model name (default: gpt-4o)
    COLLOQUY_LOG_LEVEL  - Logging level (default: info)
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TextIO

import httpx

from colloquy.config import Settings
from colloquy.controller import ConversationController
from colloquy.credentials import CredentialProvider
from colloquy.errors import ColloquyError, CredentialError
from colloquy.events import EventBus, RequestFailed, TurnAppended
from colloquy.orchestrator import ChatOrchestrator

logger = logging.getLogger(__name__)

PROMPT = "colloquy> "


class ColloquyCli:
    """Reads commands from stdin and drives the controller."""

    def __init__(
        self,
        settings: Settings,
        out: TextIO | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._out = out or sys.stdout
        self.bus: EventBus | None = EventBus() if settings.event_bus_enabled else None
        self.orchestrator = ChatOrchestrator(
            settings, CredentialProvider(settings), bus=self.bus, http_client=http_client
        )
        self.controller = ConversationController(settings, self.orchestrator)
        if self.bus is not None:
            self.bus.on(TurnAppended, self._on_turn_appended)
            self.bus.on(RequestFailed, self._on_request_failed)

    async def start(self) -> None:
        await self.orchestrator.start()

    async def close(self) -> None:
        await self.orchestrator.close()

    def _print(self, text: str) -> None:
        print(text, file=self._out, flush=True)

    async def _on_turn_appended(self, event: TurnAppended) -> None:
        self._print(f"\n> Assistant\n{event.content}\n\n> User")

    async def _on_request_failed(self, event: RequestFailed) -> None:
        self._print(f"❌ Request failed: {event.error}")

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def handle_line(self, line: str) -> bool:
        """Run one input line. Returns False when the user asked to quit.

        User errors are printed and the loop carries on; CredentialError
        propagates to the caller.
        """
        stripped = line.strip()
        command, _, argument = stripped.partition(" ")
        try:
            if command in ("/quit", "/exit"):
                return False
            if command == "/new":
                if not argument.strip():
                    self._print("Usage: /new <prompt>")
                    return True
                self.controller.start_conversation(argument.strip())
            elif command in ("/continue", "/c"):
                self.controller.continue_conversation()
            elif command == "/show":
                session = self.controller.get_session()
                self._print(session.transcript() if session else "(no conversation)")
            elif command == "/wait":
                session = self.controller.get_session()
                if session is not None:
                    await session.wait()
            else:
                self._type(line.rstrip("\n"))
        except CredentialError:
            raise
        except ColloquyError as e:
            self._print(f"⚠ {e}")
        return True

    def _type(self, text: str) -> None:
        session = self.controller.get_session()
        if session is None or not session.active:
            self._print("No conversation yet. Start one with /new <prompt>")
            return
        buffer = session.buffer
        if buffer.point > 0 and buffer.substring(buffer.point - 1, buffer.point) != "\n":
            text = "\n" + text
        session.type_text(text)

    async def run(self) -> None:
        """Read stdin until EOF or /quit."""
        while True:
            try:
                line = await asyncio.to_thread(input, PROMPT)
            except EOFError:
                break
            if not await self.handle_line(line):
                break
        session = self.controller.get_session()
        if session is not None and session.busy:
            await session.wait()


async def run(settings: Settings) -> int:
    cli = ColloquyCli(settings)
    await cli.start()
    try:
        await cli.run()
    except CredentialError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await cli.close()
    return 0


def main() -> None:
    """Entry point -- parse settings, configure logging, run the REPL."""
    settings = Settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    logger.info("Model: %s", settings.model)

    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set -- requests will fail")

    sys.exit(asyncio.run(run(settings)))


if __name__ == "__main__":
    main()
