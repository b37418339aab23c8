"""Exception hierarchy for the chat pipeline.

Every error carries the HTTP status it maps to and a short public message.
Internal context goes in ``detail`` and is logged, never returned to callers.
"""

from typing import Any


class ChatGatewayError(Exception):
    """Base class for errors surfaced as ``{"error": message}`` responses."""

    status_code: int = 500
    default_message: str = "Internal server error."

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        detail: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail or {}


class InvalidRequestError(ChatGatewayError):
    """Malformed or missing request body (400)."""

    status_code = 400
    default_message = "Invalid request."


class AdmissionDeniedError(ChatGatewayError):
    """Request refused by admission control."""


class RateLimitExceededError(AdmissionDeniedError):
    """Client exceeded its request allowance for the current window (429)."""

    status_code = 429
    default_message = "Rate limit exceeded. Please wait a moment and try again."

    def __init__(self, message: str | None = None, *, retry_after: int = 0, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class GuestLimitExceededError(AdmissionDeniedError):
    """Guest history is longer than the guest tier allows (403)."""

    status_code = 403
    default_message = (
        "Guest conversations are limited. Sign in to continue this conversation."
    )


class ConversationNotFoundError(ChatGatewayError):
    """Supplied conversation id is unknown or owned by someone else (404)."""

    status_code = 404
    default_message = "Conversation not found."


class ConversationCreateError(ChatGatewayError):
    """The store could not create a conversation (500)."""

    status_code = 500
    default_message = "Failed to create conversation."


class ProviderRequestError(ChatGatewayError):
    """Model provider returned a non-success status or was unreachable (502)."""

    status_code = 502
    default_message = "Model provider request failed."


class ProviderResponseError(ChatGatewayError):
    """Model provider reply could not be parsed or had no content (500)."""

    status_code = 500
    default_message = "Unexpected response from model provider."


class ConfigurationError(ChatGatewayError):
    """Required server configuration is missing (500)."""

    status_code = 500
    default_message = "Model provider configuration is missing."
