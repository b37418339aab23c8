"""Chat turn pipeline."""

from chat_gateway.chat.conversations import ConversationResolver
from chat_gateway.chat.metrics import MetricsRecorder
from chat_gateway.chat.orchestrator import TurnOrchestrator, parse_chat_request
from chat_gateway.chat.schemas import AssistantMessage, ChatRequest, ChatResponse, ChatTurn

__all__ = [
    "AssistantMessage",
    "ChatRequest",
    "ChatResponse",
    "ChatTurn",
    "ConversationResolver",
    "MetricsRecorder",
    "TurnOrchestrator",
    "parse_chat_request",
]
