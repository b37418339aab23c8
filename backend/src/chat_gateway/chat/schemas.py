"""Pydantic request/response models for the chat endpoint."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exchanging camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatTurn(BaseModel):
    """One turn of the submitted history."""

    role: Literal["user", "assistant", "system"]
    content: str


class ChatRequest(CamelModel):
    """Body for the chat endpoint."""

    messages: list[ChatTurn] = Field(min_length=1)
    conversation_id: str | None = None
    guest_id: str | None = None

    @field_validator("conversation_id", "guest_id")
    @classmethod
    def blank_as_none(cls, v: str | None) -> str | None:
        """Treat empty identifiers as absent."""
        return v or None

    def first_user_turn(self) -> ChatTurn | None:
        """Earliest user-role turn, if any."""
        return next((m for m in self.messages if m.role == "user"), None)

    def last_user_turn(self) -> ChatTurn | None:
        """Most recent user-role turn, if any."""
        return next((m for m in reversed(self.messages) if m.role == "user"), None)


class AssistantMessage(BaseModel):
    """Assistant reply as rendered by the client."""

    id: str
    role: Literal["assistant"] = "assistant"
    content: str


class ChatResponse(CamelModel):
    """Response from the chat endpoint.

    ``conversation_id`` is only set when this turn created the conversation.
    """

    conversation_id: str | None
    message: AssistantMessage


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: str
