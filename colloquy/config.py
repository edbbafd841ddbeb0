"""Settings via pydantic-settings with COLLOQUY_ env prefix.

The API key reads from the unprefixed OPENAI_API_KEY variable so the same
.env file works for other OpenAI tooling.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="COLLOQUY_", env_file=".env")

    openai_api_key: str = Field("", validation_alias="OPENAI_API_KEY")
    log_level: str = "info"

    # Chat completions endpoint
    model: str = "gpt-4o"
    api_base_url: str = "https://api.openai.com"
    api_path: str = "/v1/chat/completions"
    api_timeout_connect: int = 10  # seconds
    api_timeout_read: int = 120  # seconds

    # Conversation surface
    buffer_name: str = "*Colloquy*"

    # Event Bus
    event_bus_enabled: bool = True

    @model_validator(mode="after")
    def _validate_api_path(self) -> "Settings":
        if not self.api_path.startswith("/"):
            raise ValueError(f"api_path must start with '/': {self.api_path!r}")
        return self

    @property
    def chat_url(self) -> str:
        return f"{self.api_base_url.rstrip('/')}{self.api_path}"
