"""LLM service layer for the chat gateway."""

from chat_gateway.llm.base import BaseLLM, Completion, ConversationContext, TokenUsage
from chat_gateway.llm.openai_compat import OpenAICompatLLM

__all__ = ["BaseLLM", "Completion", "ConversationContext", "TokenUsage", "OpenAICompatLLM"]
