"""Turn segmenter -- rebuilds the message list from the annotated surface."""

from __future__ import annotations

from collections import deque

from colloquy.schemas import Message
from colloquy.session import ConversationSession


def split_by_role(session: ConversationSession) -> list[Message]:
    """Return one Message per tagged span, oldest first.

    Spans are discovered back to front and prepended, so the result is in
    document order. Untagged text (markers, separators) never appears in
    the output. A surface with no tagged spans yields an empty list.
    """
    messages: deque[Message] = deque()
    for span in session.annotations.find_spans_backward():
        content = session.buffer.substring(span.begin, span.end)
        messages.appendleft(Message(role=span.role, content=content))
    return list(messages)
