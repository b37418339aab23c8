"""Base classes for the LLM service layer."""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from chat_gateway.core.config import DEFAULT_SYSTEM_PROMPT

# Provider usage field names, most common naming first.
_INPUT_TOKEN_KEYS = ("prompt_tokens", "input_tokens", "request_tokens")
_OUTPUT_TOKEN_KEYS = ("completion_tokens", "output_tokens", "response_tokens")


@dataclass
class ConversationContext:
    """Builds the provider payload from a submitted history.

    Keeps the last ``max_messages`` turns behind a fixed system instruction.
    """

    max_messages: int = 40
    messages: list[dict[str, str]] = field(default_factory=list)
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    @classmethod
    def from_history(
        cls,
        history: Iterable[Mapping[str, str]],
        max_messages: int,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ) -> "ConversationContext":
        """Create a context from already-ordered turns."""
        ctx = cls(max_messages=max_messages, system_prompt=system_prompt)
        ctx.messages = [
            {"role": turn["role"], "content": turn["content"]} for turn in history
        ]
        ctx._trim()
        return ctx

    def get_messages(self) -> list[dict[str, str]]:
        """Get all messages including system prompt for LLM API call."""
        return [
            {"role": "system", "content": self.system_prompt},
            *self.messages,
        ]

    def _trim(self) -> None:
        """Trim old messages to stay within max_messages limit."""
        if len(self.messages) > self.max_messages:
            self.messages = self.messages[-self.max_messages :]


def _first_present(usage: Mapping[str, Any], keys: tuple[str, ...]) -> int | None:
    """First numeric value among ``keys``; non-numeric values count as absent."""
    for key in keys:
        value = usage.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        if isinstance(value, float) and not value.is_integer():
            continue
        return int(value)
    return None


@dataclass(frozen=True)
class TokenUsage:
    """Token counts normalized across provider naming conventions."""

    input_tokens: int | None = None
    output_tokens: int | None = None
    total_tokens: int | None = None

    @classmethod
    def from_usage(cls, usage: Mapping[str, Any] | None) -> "TokenUsage":
        """Normalize a provider ``usage`` object.

        Accepts prompt/completion, input/output and request/response naming.
        The total is taken from ``total_tokens`` or, when the provider omits
        it, summed from both parts; otherwise it stays ``None``.
        """
        if not usage:
            return cls()

        input_tokens = _first_present(usage, _INPUT_TOKEN_KEYS)
        output_tokens = _first_present(usage, _OUTPUT_TOKEN_KEYS)
        total_tokens = _first_present(usage, ("total_tokens",))
        if total_tokens is None and input_tokens is not None and output_tokens is not None:
            total_tokens = input_tokens + output_tokens

        return cls(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=total_tokens,
        )


@dataclass(frozen=True)
class Completion:
    """A single non-streamed assistant reply.

    Attributes:
        content: Assistant message text (never empty).
        usage: Normalized token accounting.
        latency_ms: Wall-clock duration of the provider call.
    """

    content: str
    usage: TokenUsage
    latency_ms: int


class BaseLLM(ABC):
    """Abstract base class for LLM services."""

    provider: str = "openai"
    model: str

    @abstractmethod
    async def complete(self, messages: list[dict[str, str]]) -> Completion:
        """Request one chat completion.

        Args:
            messages: List of message dicts with 'role' and 'content' keys.

        Returns:
            The assistant reply with latency and token usage.

        Raises:
            ProviderRequestError: The provider was unreachable or returned
                a non-success status.
            ProviderResponseError: The reply body was unparseable or empty.
        """
