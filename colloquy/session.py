"""Conversation session -- one surface and the state riding on it.

A session owns the text buffer, its annotation store, the conversation-mode
flag, and the single outstanding request (if any). Every component
operation takes a session explicitly; the controller just keeps a default
one for the top-level commands.
"""

from __future__ import annotations

import asyncio
import logging

from colloquy.errors import RequestInFlightError
from colloquy.schemas import Reply, Role, Span
from colloquy.surface import AnnotationStore, TextBuffer

logger = logging.getLogger(__name__)

USER_MARKER = "> User"
ASSISTANT_MARKER = "> Assistant"
SEPARATOR = "\n\n"


class ConversationSession:
    """A named conversation surface in conversation mode (or not yet)."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.buffer = TextBuffer(name)
        self.annotations = AnnotationStore(self.buffer)
        self.active = False
        self.last_error: str | None = None
        self._pending: asyncio.Task[Reply] | None = None

    # ------------------------------------------------------------------
    # Mode and lifecycle
    # ------------------------------------------------------------------

    def activate(self) -> None:
        """Switch into conversation mode and install the live-annotation hook."""
        self.buffer.add_change_listener(self._tag_user_edit)
        self.active = True

    def deactivate(self) -> None:
        self.buffer.remove_change_listener(self._tag_user_edit)
        self.active = False

    def reset(self) -> None:
        """Clear the surface. The only operation that destroys spans."""
        if self.busy:
            raise RequestInFlightError(
                f"Conversation {self.name!r} is still waiting for a reply"
            )
        self.deactivate()
        self.buffer.clear()
        self.annotations.clear()
        self.last_error = None

    # ------------------------------------------------------------------
    # Live annotation
    # ------------------------------------------------------------------

    def _tag_user_edit(self, begin: int, end: int, old_length: int) -> None:
        """Tag freshly edited text as user unless it touches assistant text."""
        if begin == end:
            return
        if self.annotations.has_role(begin, end, Role.ASSISTANT):
            return
        self.annotations.tag_range(begin, end, Role.USER)

    def type_text(self, text: str) -> None:
        """Insert text at the point, as if the user typed it."""
        self.buffer.insert_at_point(text)

    # ------------------------------------------------------------------
    # Programmatic turns
    # ------------------------------------------------------------------

    def seed_user_turn(self, prompt_text: str) -> Span | None:
        """Write the opening marker and prompt, tagging the prompt as user."""
        with self.buffer.inhibit_hooks():
            self.buffer.append(f"{USER_MARKER}\n")
            begin = len(self.buffer)
            self.buffer.append(prompt_text)
            end = len(self.buffer)
        self.annotations.tag_range(begin, end, Role.USER)
        return Span(Role.USER, begin, end) if end > begin else None

    def append_assistant_turn(self, content: str) -> Span | None:
        """Append a reply and open a fresh user region after it.

        Runs without yielding to the event loop, so no user edit can land
        between the reply text and its tag.
        """
        with self.buffer.inhibit_hooks():
            self.buffer.append(f"{SEPARATOR}{ASSISTANT_MARKER}\n")
            begin = len(self.buffer)
            self.buffer.append(content)
            end = len(self.buffer)
            self.annotations.tag_range(begin, end, Role.ASSISTANT)
            self.buffer.append(f"{SEPARATOR}{USER_MARKER}\n")
        return Span(Role.ASSISTANT, begin, end) if end > begin else None

    # ------------------------------------------------------------------
    # Request bookkeeping
    # ------------------------------------------------------------------

    @property
    def busy(self) -> bool:
        return self._pending is not None and not self._pending.done()

    @property
    def pending(self) -> asyncio.Task[Reply] | None:
        return self._pending

    def claim(self, task: asyncio.Task[Reply]) -> None:
        """Record task as this session's single outstanding request."""
        if self.busy:
            raise RequestInFlightError(
                f"Conversation {self.name!r} is still waiting for a reply"
            )
        self._pending = task

    async def wait(self) -> Reply | None:
        """Wait for the outstanding request, if any, and return its reply."""
        if self._pending is None:
            return None
        return await self._pending

    def transcript(self) -> str:
        return self.buffer.text
