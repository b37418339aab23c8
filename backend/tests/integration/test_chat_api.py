"""Integration tests for POST /api/chat."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from chat_gateway.admission import InMemoryRateLimiter
from chat_gateway.api.chat import get_orchestrator
from chat_gateway.db import Conversation, Message, MessageRepository, ModelInvocation
from chat_gateway.main import app

from helpers import ProviderStub, completion_body


def count(engine, model) -> int:
    with Session(engine) as session:
        return len(session.exec(select(model)).all())


@pytest.fixture
def client_for(make_orchestrator):
    """Build a TestClient wired to an orchestrator over the temp database."""

    def _client(
        stub: ProviderStub | None, raise_server_exceptions: bool = True, **kwargs
    ) -> TestClient:
        orchestrator = make_orchestrator(stub, **kwargs)
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        return TestClient(app, raise_server_exceptions=raise_server_exceptions)

    yield _client
    app.dependency_overrides.clear()


class TestChatSuccess:
    """Successful turns."""

    def test_guest_first_turn(self, client_for, provider, temp_db):
        client = client_for(provider)

        response = client.post(
            "/api/chat",
            json={"messages": [{"role": "user", "content": "Hello"}], "guestId": "guest-1"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["conversationId"]
        assert data["message"]["role"] == "assistant"
        assert data["message"]["content"] == "Hi there!"
        assert data["message"]["id"].startswith("assistant-")
        assert count(temp_db, Conversation) == 1
        assert count(temp_db, ModelInvocation) == 1

    def test_existing_conversation_returns_null_id(self, client_for, provider, temp_db):
        client = client_for(provider)
        first = client.post(
            "/api/chat",
            json={"messages": [{"role": "user", "content": "Hello"}], "guestId": "g"},
        ).json()

        second = client.post(
            "/api/chat",
            json={
                "messages": [
                    {"role": "user", "content": "Hello"},
                    {"role": "assistant", "content": "Hi there!"},
                    {"role": "user", "content": "More"},
                ],
                "conversationId": first["conversationId"],
                "guestId": "g",
            },
        )

        assert second.status_code == 200
        assert second.json()["conversationId"] is None
        assert count(temp_db, Conversation) == 1
        assert count(temp_db, Message) == 4

    def test_request_id_echoed(self, client_for, provider):
        client = client_for(provider)
        response = client.post(
            "/api/chat",
            json={"messages": [{"role": "user", "content": "Hello"}]},
            headers={"X-Request-ID": "req-42"},
        )
        assert response.headers["x-request-id"] == "req-42"

    def test_assistant_write_failure_still_returns_reply(
        self, client_for, provider, temp_db, monkeypatch
    ):
        original = MessageRepository.create

        def fail_assistant(self, conversation_id, role, content):
            if role == "assistant":
                raise OperationalError("INSERT", {}, Exception("disk I/O error"))
            return original(self, conversation_id, role, content)

        monkeypatch.setattr(MessageRepository, "create", fail_assistant)
        client = client_for(provider)

        response = client.post(
            "/api/chat",
            json={"messages": [{"role": "user", "content": "Hello"}], "guestId": "g"},
        )

        assert response.status_code == 200
        assert response.json()["message"]["content"] == "Hi there!"

    def test_malformed_usage_keeps_reply_and_metrics(self, client_for, temp_db):
        stub = ProviderStub(
            body=completion_body(usage={"prompt_tokens": "n/a", "completion_tokens": 5})
        )
        client = client_for(stub)

        response = client.post(
            "/api/chat",
            json={"messages": [{"role": "user", "content": "Hello"}], "guestId": "g"},
        )

        assert response.status_code == 200
        assert response.json()["message"]["content"] == "Hi there!"
        with Session(temp_db) as session:
            roles = [m.role for m in session.exec(select(Message)).all()]
            (inv,) = session.exec(select(ModelInvocation)).all()
        assert roles == ["user", "assistant"]
        assert (inv.input_tokens, inv.output_tokens, inv.total_tokens) == (None, 5, None)


class TestChatErrors:
    """Error statuses and bodies."""

    def test_malformed_json(self, client_for, provider):
        client = client_for(provider)
        response = client.post(
            "/api/chat",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON body."}

    @pytest.mark.parametrize("body", [{}, {"messages": []}, {"messages": "hi"}])
    def test_missing_messages(self, client_for, provider, body):
        client = client_for(provider)
        response = client.post("/api/chat", json=body)
        assert response.status_code == 400
        assert response.json() == {"error": "'messages' array is required."}

    def test_rate_limited(self, client_for, provider):
        client = client_for(
            provider, rate_limiter=InMemoryRateLimiter(max_requests=1, window_seconds=60)
        )
        body = {"messages": [{"role": "user", "content": "Hello"}], "guestId": "g"}

        assert client.post("/api/chat", json=body).status_code == 200
        response = client.post("/api/chat", json=body)

        assert response.status_code == 429
        assert "Rate limit exceeded" in response.json()["error"]
        assert int(response.headers["retry-after"]) >= 1

    def test_rate_limit_falls_back_to_forwarded_address(self, client_for, provider):
        client = client_for(
            provider, rate_limiter=InMemoryRateLimiter(max_requests=1, window_seconds=60)
        )
        body = {"messages": [{"role": "user", "content": "Hello"}]}

        ok = client.post("/api/chat", json=body, headers={"X-Forwarded-For": "203.0.113.5, 10.0.0.1"})
        other = client.post("/api/chat", json=body, headers={"X-Forwarded-For": "203.0.113.6"})
        limited = client.post("/api/chat", json=body, headers={"X-Forwarded-For": "203.0.113.5"})

        assert ok.status_code == 200
        assert other.status_code == 200
        assert limited.status_code == 429

    def test_guest_over_cap(self, client_for, provider, temp_db):
        client = client_for(provider)
        messages = [{"role": "user", "content": f"m{i}"} for i in range(13)]

        response = client.post("/api/chat", json={"messages": messages, "guestId": "g"})

        assert response.status_code == 403
        assert "Sign in" in response.json()["error"]
        assert count(temp_db, Conversation) == 0
        assert count(temp_db, Message) == 0

    def test_authenticated_over_guest_cap_allowed(self, client_for, provider):
        client = client_for(provider)
        messages = [{"role": "user", "content": f"m{i}"} for i in range(41)]

        response = client.post(
            "/api/chat",
            json={"messages": messages},
            headers={"Authorization": "Bearer valid-token"},
        )

        assert response.status_code == 200
        assert len(provider.last_messages) == 41

    def test_conversation_create_failure(self, client_for, provider, monkeypatch):
        from chat_gateway.db import ConversationRepository

        def db_down(*args, **kwargs):
            raise OperationalError("INSERT", {}, Exception("connection refused"))

        monkeypatch.setattr(ConversationRepository, "create", db_down)
        client = client_for(provider)

        response = client.post(
            "/api/chat", json={"messages": [{"role": "user", "content": "Hello"}]}
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to create conversation."}
        assert "connection refused" not in response.text

    def test_provider_failure(self, client_for, temp_db):
        client = client_for(ProviderStub(status_code=503, body={"error": "busy"}))

        response = client.post(
            "/api/chat",
            json={"messages": [{"role": "user", "content": "Hello"}], "guestId": "g"},
        )

        assert response.status_code == 502
        assert response.json() == {"error": "Model provider request failed."}
        assert count(temp_db, Message) == 1
        assert count(temp_db, ModelInvocation) == 0

    def test_provider_empty_reply(self, client_for):
        client = client_for(ProviderStub(body=completion_body(content=None)))

        response = client.post(
            "/api/chat", json={"messages": [{"role": "user", "content": "Hello"}]}
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Unexpected response from model provider."}

    def test_missing_configuration(self, client_for):
        client = client_for(None)

        response = client.post("/api/chat", content=b"{not json")

        assert response.status_code == 500
        assert response.json() == {"error": "Model provider configuration is missing."}

    def test_unexpected_error_returns_json_body(self, client_for, provider, monkeypatch):
        from chat_gateway.db import ConversationRepository

        def store_down(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("no such table"))

        monkeypatch.setattr(ConversationRepository, "get", store_down)
        client = client_for(
            provider, raise_server_exceptions=False, verify_conversation_owner=True
        )

        response = client.post(
            "/api/chat",
            json={
                "messages": [{"role": "user", "content": "Hello"}],
                "conversationId": "conv-1",
                "guestId": "g",
            },
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error."}
        assert "no such table" not in response.text
        assert provider.requests == []

    def test_non_string_guest_id(self, client_for, provider):
        client = client_for(provider)

        response = client.post(
            "/api/chat",
            json={"messages": [{"role": "user", "content": "Hello"}], "guestId": 42},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "'guestId' must be a string or null."}
