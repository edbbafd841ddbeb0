"""Data contract shared by the surface, segmenter and orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel


class Role(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """A single message exchanged with the chat endpoint."""

    role: Role
    content: str

    def to_api(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class Span:
    """A role-tagged half-open range [begin, end) of the surface."""

    role: Role
    begin: int
    end: int

    def __len__(self) -> int:
        return self.end - self.begin


@dataclass
class Reply:
    """Outcome of one request/response exchange."""

    message: Message | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.message is not None and self.error is None
