"""Configuration management using Pydantic Settings"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant inside a Baseten-powered chat application."
)


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CHAT_GATEWAY_",
        extra="ignore",
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:3000"]

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Storage
    database_path: Path = Path("data/chat_gateway.db")

    # LLM provider (OpenAI-compatible)
    llm_api_key: str | None = None
    llm_model: str | None = None
    llm_base_url: str = "https://inference.baseten.co/v1"
    llm_provider: str = "baseten"
    llm_timeout_seconds: float | None = None
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    # Identity provider
    identity_url: str | None = None
    identity_api_key: str | None = None

    # Admission control
    rate_limit_window_seconds: float = 60
    rate_limit_max_requests: int = 20
    rate_limit_max_keys: int = 10_000
    max_guest_messages: int = 12
    max_auth_messages: int = 40

    # Conversations
    conversation_title_length: int = 80
    verify_conversation_owner: bool = False

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> LogLevel:
        """Validate log level, fallback to INFO if invalid."""
        upper_v = v.upper()
        if upper_v not in VALID_LOG_LEVELS:
            return "INFO"
        return upper_v  # type: ignore[return-value]

    @property
    def llm_configured(self) -> bool:
        """Whether both the provider key and model identifier are set."""
        return bool(self.llm_api_key and self.llm_model)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance. Use this for dependency injection."""
    return Settings()


settings = get_settings()
