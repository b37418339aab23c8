"""FastAPI application entry point for Chat Gateway"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from uuid import uuid4

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from chat_gateway.admission import AdmissionController, InMemoryRateLimiter
from chat_gateway.api import chat_router, register_exception_handlers
from chat_gateway.chat import TurnOrchestrator
from chat_gateway.core.config import Settings, settings
from chat_gateway.core.logging import configure_logging, get_logger
from chat_gateway.db import init_db
from chat_gateway.identity import (
    AnonymousIdentityResolver,
    BaseIdentityResolver,
    SupabaseIdentityResolver,
)
from chat_gateway.llm import BaseLLM, OpenAICompatLLM

logger = get_logger(__name__)


def build_identity_resolver(config: Settings) -> BaseIdentityResolver:
    """Identity resolver for the configured provider, anonymous if none."""
    if config.identity_url and config.identity_api_key:
        return SupabaseIdentityResolver(
            base_url=config.identity_url,
            api_key=config.identity_api_key,
        )
    logger.warning("identity_provider_not_configured")
    return AnonymousIdentityResolver()


def build_llm(config: Settings) -> BaseLLM | None:
    """Model client, or None when the key or model is missing."""
    if not config.llm_configured:
        logger.warning("llm_not_configured")
        return None
    return OpenAICompatLLM(
        api_key=config.llm_api_key,  # type: ignore[arg-type]
        model=config.llm_model,  # type: ignore[arg-type]
        base_url=config.llm_base_url,
        provider=config.llm_provider,
        timeout=config.llm_timeout_seconds,
    )


def build_orchestrator(config: Settings) -> TurnOrchestrator:
    """Wire the process-wide pipeline components."""
    rate_limiter = InMemoryRateLimiter(
        max_requests=config.rate_limit_max_requests,
        window_seconds=config.rate_limit_window_seconds,
        max_keys=config.rate_limit_max_keys,
    )
    admission = AdmissionController(
        rate_limiter,
        max_guest_messages=config.max_guest_messages,
        max_auth_messages=config.max_auth_messages,
    )
    return TurnOrchestrator(
        admission=admission,
        identity=build_identity_resolver(config),
        llm=build_llm(config),
        system_prompt=config.system_prompt,
        title_length=config.conversation_title_length,
        verify_conversation_owner=config.verify_conversation_owner,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan context manager for startup/shutdown."""
    configure_logging()
    init_db(settings.database_path)
    logger.info("database_initialized", path=str(settings.database_path))

    orchestrator = build_orchestrator(settings)
    app.state.orchestrator = orchestrator
    yield
    await orchestrator.identity.aclose()


app = FastAPI(
    title="Chat Gateway API",
    description="Conversational chat endpoint backed by an OpenAI-compatible model",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
)


@app.middleware("http")
async def bind_request_id(request: Request, call_next):
    """Bind a request id to every log line emitted while handling a request."""
    request_id = request.headers.get("x-request-id") or str(uuid4())
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


register_exception_handlers(app)
app.include_router(chat_router)


@app.get("/api/v1/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint.

    Returns:
        dict with status "ok" if the service is healthy.
    """
    return {"status": "ok"}


def serve() -> None:
    """Start the uvicorn server using configured host and port."""
    uvicorn.run("chat_gateway.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    serve()
