"""OpenAI-compatible LLM client implementation."""

import json
import time
from typing import Any

import httpx
from openai import APIConnectionError, APIStatusError, AsyncOpenAI

from chat_gateway.core.errors import ProviderRequestError, ProviderResponseError
from chat_gateway.core.logging import get_logger
from chat_gateway.llm.base import BaseLLM, Completion, TokenUsage

logger = get_logger(__name__)


class OpenAICompatLLM(BaseLLM):
    """OpenAI API-compatible LLM client.

    Supports Baseten, OpenAI, Groq, Ollama and other OpenAI-compatible APIs.
    Retries are disabled: one request per call, failures surface immediately.

    Example usage:
        # For Baseten
        llm = OpenAICompatLLM(
            api_key=os.getenv("BASETEN_API_KEY"),
            base_url="https://inference.baseten.co/v1",
            model="deepseek-ai/DeepSeek-V3",
            provider="baseten",
        )

        # For Ollama
        llm = OpenAICompatLLM(
            api_key="ollama",
            base_url="http://localhost:11434/v1",
            model="llama3.2",
            provider="ollama",
        )
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        provider: str = "openai",
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize OpenAI-compatible LLM client.

        Args:
            api_key: API key sent as a bearer token.
            model: Model identifier to request.
            base_url: Base URL for the API. Defaults to OpenAI.
            provider: Provider name recorded with each invocation.
            timeout: Seconds before the call is abandoned. None waits indefinitely.
            http_client: Optional pre-built httpx client (used by tests).
        """
        self.model = model
        self.provider = provider

        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
            http_client=http_client,
        )

        logger.info(
            "llm_client_initialized",
            provider=provider,
            model=model,
            base_url=base_url or "default",
        )

    async def complete(self, messages: list[dict[str, str]]) -> Completion:
        """Request one chat completion and measure its latency.

        Args:
            messages: List of message dicts with 'role' and 'content' keys.

        Returns:
            The assistant reply with latency and token usage.
        """
        logger.info(
            "llm_request_start",
            provider=self.provider,
            model=self.model,
            message_count=len(messages),
        )

        start_time = time.perf_counter()
        try:
            raw = await self.client.chat.completions.with_raw_response.create(
                model=self.model,
                messages=messages,  # type: ignore[arg-type]
            )
        except APIStatusError as e:
            logger.error(
                "llm_provider_error",
                provider=self.provider,
                status_code=e.status_code,
                body=e.response.text[:500],
            )
            raise ProviderRequestError(
                detail={"status_code": e.status_code}
            ) from e
        except APIConnectionError as e:
            logger.error(
                "llm_provider_unreachable",
                provider=self.provider,
                error=str(e),
            )
            raise ProviderRequestError(detail={"error": str(e)}) from e
        latency_ms = int((time.perf_counter() - start_time) * 1000)

        try:
            payload = json.loads(raw.http_response.text)
        except ValueError as e:
            logger.error("llm_response_unparseable", provider=self.provider)
            raise ProviderResponseError(detail={"error": str(e)}) from e

        content = _extract_content(payload)
        if not content:
            logger.error(
                "llm_response_empty",
                provider=self.provider,
                body=raw.http_response.text[:500],
            )
            raise ProviderResponseError()

        usage = payload.get("usage") if isinstance(payload, dict) else None
        token_usage = TokenUsage.from_usage(usage if isinstance(usage, dict) else None)

        logger.info(
            "llm_completed",
            provider=self.provider,
            model=self.model,
            latency_ms=latency_ms,
            response_length=len(content),
            total_tokens=token_usage.total_tokens,
        )
        return Completion(content=content, usage=token_usage, latency_ms=latency_ms)


def _extract_content(payload: Any) -> str | None:
    """Return ``choices[0].message.content`` if it is a string."""
    if not isinstance(payload, dict):
        return None
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    return content if isinstance(content, str) else None
