"""HTTP API for the chat gateway."""

from chat_gateway.api.chat import router as chat_router
from chat_gateway.api.errors import register_exception_handlers

__all__ = ["chat_router", "register_exception_handlers"]
