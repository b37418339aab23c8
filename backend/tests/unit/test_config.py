"""Unit tests for settings and application wiring."""

from chat_gateway.core.config import DEFAULT_SYSTEM_PROMPT, Settings
from chat_gateway.identity import AnonymousIdentityResolver, SupabaseIdentityResolver
from chat_gateway.llm import OpenAICompatLLM
from chat_gateway.main import build_identity_resolver, build_llm, build_orchestrator


class TestSettings:
    """Tests for Settings defaults and validation."""

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.rate_limit_window_seconds == 60
        assert settings.rate_limit_max_requests == 20
        assert settings.max_guest_messages == 12
        assert settings.max_auth_messages == 40
        assert settings.conversation_title_length == 80
        assert settings.llm_provider == "baseten"
        assert settings.system_prompt == DEFAULT_SYSTEM_PROMPT
        assert settings.verify_conversation_owner is False

    def test_invalid_log_level_falls_back(self):
        assert Settings(_env_file=None, log_level="chatty").log_level == "INFO"
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("CHAT_GATEWAY_LLM_MODEL", "deepseek-v3")
        monkeypatch.setenv("CHAT_GATEWAY_MAX_GUEST_MESSAGES", "6")
        settings = Settings(_env_file=None)
        assert settings.llm_model == "deepseek-v3"
        assert settings.max_guest_messages == 6

    def test_llm_configured_needs_key_and_model(self):
        assert not Settings(_env_file=None, llm_api_key="k").llm_configured
        assert not Settings(_env_file=None, llm_model="m").llm_configured
        assert Settings(_env_file=None, llm_api_key="k", llm_model="m").llm_configured


class TestWiring:
    """Tests for the component builders used by the app lifespan."""

    def test_llm_missing_configuration(self):
        assert build_llm(Settings(_env_file=None)) is None

    def test_llm_built_from_settings(self):
        llm = build_llm(
            Settings(_env_file=None, llm_api_key="k", llm_model="m", llm_provider="baseten")
        )
        assert isinstance(llm, OpenAICompatLLM)
        assert llm.model == "m"
        assert llm.provider == "baseten"

    def test_identity_resolver_selection(self):
        assert isinstance(
            build_identity_resolver(Settings(_env_file=None)), AnonymousIdentityResolver
        )
        resolver = build_identity_resolver(
            Settings(_env_file=None, identity_url="https://auth.test", identity_api_key="anon")
        )
        assert isinstance(resolver, SupabaseIdentityResolver)

    def test_orchestrator_uses_configured_caps(self):
        orchestrator = build_orchestrator(
            Settings(_env_file=None, max_guest_messages=5, max_auth_messages=9, rate_limit_max_requests=3)
        )
        assert orchestrator.admission.max_guest_messages == 5
        assert orchestrator.admission.max_auth_messages == 9
        assert orchestrator.admission.rate_limiter.max_requests == 3
        assert orchestrator.llm is None
