"""Database module for conversation persistence."""

from chat_gateway.db.models import Conversation, Message, ModelInvocation
from chat_gateway.db.repository import (
    ConversationRepository,
    MessageRepository,
    ModelInvocationRepository,
    get_engine,
    init_db,
)

__all__ = [
    "Conversation",
    "Message",
    "ModelInvocation",
    "ConversationRepository",
    "MessageRepository",
    "ModelInvocationRepository",
    "get_engine",
    "init_db",
]
