"""Test helpers: a mock OpenAI-compatible provider and static identities."""

import json
from typing import Any

import httpx

from chat_gateway.identity import BaseIdentityResolver
from chat_gateway.llm import OpenAICompatLLM

PROVIDER_URL = "https://llm.test/v1"


def completion_body(
    content: str | None = "Hi there!",
    usage: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """OpenAI-style chat completion body."""
    body: dict[str, Any] = {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "test-model",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
    }
    if usage is not None:
        body["usage"] = usage
    return body


class ProviderStub:
    """Records provider requests and answers with a fixed response."""

    def __init__(
        self,
        status_code: int = 200,
        body: Any = None,
        text: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.body = completion_body() if body is None else body
        self.text = text
        self.requests: list[dict[str, Any]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if self.text is not None:
            return httpx.Response(
                self.status_code,
                text=self.text,
                headers={"content-type": "application/json"},
            )
        return httpx.Response(self.status_code, json=self.body)

    @property
    def last_messages(self) -> list[dict[str, str]]:
        return self.requests[-1]["messages"]


class StaticIdentityResolver(BaseIdentityResolver):
    """Maps known tokens to user ids; everything else is anonymous."""

    def __init__(self, tokens: dict[str, str] | None = None) -> None:
        self.tokens = tokens or {}

    async def verify(self, token: str) -> str | None:
        return self.tokens.get(token)


def make_llm(stub: ProviderStub, model: str = "test-model") -> OpenAICompatLLM:
    """OpenAICompatLLM whose HTTP traffic goes to ``stub``."""
    return OpenAICompatLLM(
        api_key="test-key",
        model=model,
        base_url=PROVIDER_URL,
        provider="baseten",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(stub)),
    )
