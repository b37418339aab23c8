"""Chat endpoint."""

import json

from fastapi import APIRouter, Depends, Request

from chat_gateway.chat import ChatResponse, TurnOrchestrator
from chat_gateway.chat.schemas import ErrorResponse
from chat_gateway.core.errors import InvalidRequestError

router = APIRouter()


def get_orchestrator(request: Request) -> TurnOrchestrator:
    """Retrieve the shared TurnOrchestrator from app state."""
    return request.app.state.orchestrator


def client_address(request: Request) -> str | None:
    """First ``X-Forwarded-For`` hop, else the socket peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else None


@router.post(
    "/api/chat",
    response_model=ChatResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def chat(
    request: Request,
    orchestrator: TurnOrchestrator = Depends(get_orchestrator),
) -> ChatResponse:
    """Send the conversation so far and receive one assistant reply.

    The body is decoded by hand so malformed JSON and a missing
    ``messages`` array both answer 400 with an ``error`` string.
    """
    orchestrator.ensure_configured()

    raw = await request.body()
    try:
        payload = json.loads(raw)
    except ValueError as e:
        raise InvalidRequestError("Invalid JSON body.") from e

    return await orchestrator.handle(
        payload,
        authorization=request.headers.get("authorization"),
        remote_addr=client_address(request),
    )
