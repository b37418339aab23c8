"""Core utilities for Chat Gateway"""

from chat_gateway.core.config import settings
from chat_gateway.core.logging import configure_logging

__all__ = ["settings", "configure_logging"]
