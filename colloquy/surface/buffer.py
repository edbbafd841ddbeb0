"""In-memory text buffer with change notification.

Stands in for the editor's display primitive: holds the text and the
insertion point, and notifies listeners after every change using the
(begin, end, old_length) convention, where [begin, end) is the new text
and old_length the length of the text it replaced.

Two listener kinds exist. Trackers (offset bookkeeping such as the
annotation store) always run. Hooks (the live-annotation hook) can be
suppressed with inhibit_hooks() for programmatic insertions.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)

ChangeListener = Callable[[int, int, int], None]


class TextBuffer:
    """A named, mutable text document with an insertion point."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._text = ""
        self.point = 0
        self._trackers: list[ChangeListener] = []
        self._hooks: list[ChangeListener] = []
        self._inhibit = 0

    def __len__(self) -> int:
        return len(self._text)

    @property
    def text(self) -> str:
        return self._text

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_tracker(self, listener: ChangeListener) -> None:
        """Register a listener that runs on every change, even when hooks are inhibited."""
        self._trackers.append(listener)

    def add_change_listener(self, listener: ChangeListener) -> None:
        """Register an after-change hook. Adding the same hook twice is a no-op."""
        if listener not in self._hooks:
            self._hooks.append(listener)

    def remove_change_listener(self, listener: ChangeListener) -> None:
        if listener in self._hooks:
            self._hooks.remove(listener)

    @contextmanager
    def inhibit_hooks(self) -> Iterator[None]:
        """Suppress change hooks (not trackers) for the duration of the block."""
        self._inhibit += 1
        try:
            yield
        finally:
            self._inhibit -= 1

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def insert(self, pos: int, text: str) -> None:
        """Insert text at pos. The point moves with text inserted before it."""
        self._check(pos, pos)
        if not text:
            return
        self._text = self._text[:pos] + text + self._text[pos:]
        if self.point >= pos:
            self.point += len(text)
        self._changed(pos, pos + len(text), 0)

    def delete(self, begin: int, end: int) -> None:
        self._check(begin, end)
        if begin == end:
            return
        self._text = self._text[:begin] + self._text[end:]
        if self.point >= end:
            self.point -= end - begin
        elif self.point > begin:
            self.point = begin
        self._changed(begin, begin, end - begin)

    def insert_at_point(self, text: str) -> None:
        self.insert(self.point, text)

    def append(self, text: str) -> None:
        """Insert text at the end and leave the point there."""
        self.insert(len(self._text), text)
        self.point = len(self._text)

    def goto(self, pos: int) -> None:
        self._check(pos, pos)
        self.point = pos

    def substring(self, begin: int, end: int) -> str:
        self._check(begin, end)
        return self._text[begin:end]

    def clear(self) -> None:
        """Erase the whole buffer."""
        self.delete(0, len(self._text))
        self.point = 0

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check(self, begin: int, end: int) -> None:
        if not 0 <= begin <= end <= len(self._text):
            raise IndexError(
                f"Range [{begin}, {end}) out of bounds for buffer "
                f"{self.name!r} of length {len(self._text)}"
            )

    def _changed(self, begin: int, end: int, old_length: int) -> None:
        for tracker in self._trackers:
            tracker(begin, end, old_length)
        if self._inhibit:
            return
        for hook in list(self._hooks):
            hook(begin, end, old_length)
