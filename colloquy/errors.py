"""Exception hierarchy for Colloquy.

CredentialError is fatal to the command that raised it. Everything else is
a user-facing error: reported, and the conversation stays usable.
"""

from __future__ import annotations


class ColloquyError(RuntimeError):
    """Base class for all Colloquy errors."""


class CredentialError(ColloquyError):
    """The API key could not be obtained from the credential provider."""


class NoConversationError(ColloquyError):
    """No active conversation surface to operate on."""


class EmptyConversationError(ColloquyError):
    """The surface holds no tagged turns, so there is nothing to send."""


class RequestInFlightError(ColloquyError):
    """A request for this conversation has not resolved yet."""


class ChatResponseError(ColloquyError):
    """The chat endpoint failed or returned a body we cannot use."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
