"""Exception handlers rendering pipeline errors as ``{"error": ...}``."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from chat_gateway.core.errors import ChatGatewayError, RateLimitExceededError
from chat_gateway.core.logging import get_logger

logger = get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error."


def error_response(
    status_code: int, message: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    """Build the JSON error body shared by every failure response."""
    return JSONResponse(
        status_code=status_code, content={"error": message}, headers=headers
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers for ChatGatewayError and for anything unexpected."""

    @app.exception_handler(ChatGatewayError)
    async def handle_chat_gateway_error(request: Request, exc: ChatGatewayError):
        log_fn = logger.error if exc.status_code >= 500 else logger.warning
        log_fn(
            "request_failed",
            path=request.url.path,
            method=request.method,
            status_code=exc.status_code,
            error_type=type(exc).__name__,
            message=exc.message,
            detail=exc.detail,
        )
        headers = None
        if isinstance(exc, RateLimitExceededError) and exc.retry_after:
            headers = {"Retry-After": str(exc.retry_after)}
        return error_response(exc.status_code, exc.message, headers)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception(
            "unhandled_error",
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        return error_response(500, INTERNAL_ERROR_MESSAGE)
