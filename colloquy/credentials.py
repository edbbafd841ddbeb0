"""Credential lookup for the chat endpoint.

Keys come from Settings, which pydantic-settings fills from the
environment or a .env file.
"""

from __future__ import annotations

import logging

from colloquy.config import Settings
from colloquy.errors import CredentialError

logger = logging.getLogger(__name__)

SERVICE = "openai"

# service -> (settings attribute, environment variable)
_SOURCES: dict[str, tuple[str, str]] = {
    "openai": ("openai_api_key", "OPENAI_API_KEY"),
}


class CredentialProvider:
    """Resolves API keys by service identifier."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def get_api_key(self, service: str = SERVICE) -> str:
        """Return the secret for service or raise CredentialError.

        The error message tells the user how to provision the key.
        """
        try:
            attr, env_var = _SOURCES[service]
        except KeyError:
            raise CredentialError(f"Unknown credential service: {service!r}") from None
        key = (getattr(self._settings, attr, "") or "").strip()
        if not key:
            raise CredentialError(
                f"No API key found for {service}. Set {env_var} in your "
                f"environment or in a .env file, e.g.\n\n"
                f"    export {env_var}=sk-...\n"
            )
        return key


def build_auth_headers(api_key: str) -> dict[str, str]:
    """Headers for every chat-completions request."""
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }
