"""Role annotations over a TextBuffer.

Keeps an explicit ordered list of Span records alongside the raw text and
updates it incrementally on every buffer change. Spans are sorted,
non-overlapping and non-empty, and adjacent spans with the same role are
coalesced, so a run of keystrokes tagged one at a time is a single span.

Offset maintenance follows the usual text-property stickiness rules:
text inserted strictly inside a span joins it, text inserted at a span
boundary starts out untagged.
"""

from __future__ import annotations

import bisect
import logging
from collections.abc import Iterator

from colloquy.schemas import Role, Span
from colloquy.surface.buffer import TextBuffer

logger = logging.getLogger(__name__)


class AnnotationStore:
    """Ordered span list bound to one buffer."""

    def __init__(self, buffer: TextBuffer) -> None:
        self._buffer = buffer
        self._spans: list[Span] = []
        buffer.add_tracker(self._on_change)

    def __len__(self) -> int:
        return len(self._spans)

    def spans(self) -> list[Span]:
        """Snapshot of all spans in document order."""
        return list(self._spans)

    def clear(self) -> None:
        self._spans.clear()

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    def tag_range(self, begin: int, end: int, role: Role) -> None:
        """Attach role to [begin, end), replacing whatever was there.

        Only the spans overlapping the range and their two neighbours are
        rebuilt, so tagging a keystroke costs a bisect plus a small splice.
        """
        self._check(begin, end)
        if begin == end:
            return
        spans = self._spans
        lo, hi = self._window(begin, end)
        middle: list[Span] = []
        if lo < hi and spans[lo].begin < begin:
            middle.append(Span(spans[lo].role, spans[lo].begin, begin))
        middle.append(Span(Role(role), begin, end))
        if lo < hi and spans[hi - 1].end > end:
            middle.append(Span(spans[hi - 1].role, end, spans[hi - 1].end))

        left, right = max(lo - 1, 0), min(hi + 1, len(spans))
        spans[left:right] = self._coalesce(spans[left:lo] + middle + spans[hi:right])

    def has_role(self, begin: int, end: int, role: Role = Role.ASSISTANT) -> bool:
        """True if any character in [begin, end) carries role.

        An empty range asks whether the position sits strictly inside a
        span of that role.
        """
        self._check(begin, end)
        lo, hi = self._window(begin, end)
        if begin == end:
            # lo is the first span ending after begin; hi counts those starting before it.
            return lo < hi and self._spans[lo].role == role
        return any(span.role == role for span in self._spans[lo:hi])

    def find_spans_backward(self) -> Iterator[Span]:
        """Yield spans from the end of the buffer towards the start.

        Each call scans a fresh snapshot, so edits made while iterating
        do not disturb the walk and no cursor outlives it.
        """
        snapshot = list(self._spans)
        for span in reversed(snapshot):
            yield span

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _window(self, begin: int, end: int) -> tuple[int, int]:
        """Index range of the spans overlapping [begin, end).

        For an empty range it is the span containing begin strictly inside,
        if any. Spans are sorted and disjoint, so both ends are sorted too.
        """
        lo = bisect.bisect_right(self._spans, begin, key=lambda s: s.end)
        hi = bisect.bisect_left(self._spans, end, key=lambda s: s.begin)
        return lo, hi

    def _check(self, begin: int, end: int) -> None:
        if not 0 <= begin <= end <= len(self._buffer):
            raise IndexError(
                f"Range [{begin}, {end}) out of bounds for buffer "
                f"{self._buffer.name!r} of length {len(self._buffer)}"
            )

    def _on_change(self, begin: int, end: int, old_length: int) -> None:
        spans = self._spans
        if old_length:
            spans = self._shift_for_delete(spans, begin, begin + old_length)
        inserted = end - begin
        if inserted:
            spans = self._shift_for_insert(spans, begin, inserted)
        self._spans = self._coalesce(spans)

    @staticmethod
    def _shift_for_delete(spans: list[Span], begin: int, end: int) -> list[Span]:
        removed = end - begin

        def move(pos: int) -> int:
            if pos <= begin:
                return pos
            if pos <= end:
                return begin
            return pos - removed

        out: list[Span] = []
        for span in spans:
            new_begin, new_end = move(span.begin), move(span.end)
            if new_begin < new_end:
                out.append(Span(span.role, new_begin, new_end))
        return out

    @staticmethod
    def _shift_for_insert(spans: list[Span], pos: int, length: int) -> list[Span]:
        out: list[Span] = []
        for span in spans:
            if span.begin < pos < span.end:
                out.append(Span(span.role, span.begin, span.end + length))
            elif span.begin >= pos:
                out.append(Span(span.role, span.begin + length, span.end + length))
            else:
                out.append(span)
        return out

    @staticmethod
    def _coalesce(spans: list[Span]) -> list[Span]:
        # Input is already in document order.
        out: list[Span] = []
        for span in spans:
            if out and out[-1].role == span.role and out[-1].end == span.begin:
                out[-1] = Span(span.role, out[-1].begin, span.end)
            else:
                out.append(span)
        return out
