"""Best-effort recording of model invocation metrics."""

from chat_gateway.chat.conversations import SessionFactory
from chat_gateway.core.logging import get_logger
from chat_gateway.db import ModelInvocation, ModelInvocationRepository
from chat_gateway.llm.base import Completion

logger = get_logger(__name__)


class MetricsRecorder:
    """Writes one ModelInvocation row per successful model call.

    Failures are logged and swallowed; they never affect the reply.
    """

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def record(
        self,
        conversation_id: str | None,
        provider: str,
        model: str,
        completion: Completion,
    ) -> ModelInvocation | None:
        """Persist the invocation record.

        Returns:
            The stored record, or None if the write failed.
        """
        try:
            with self._session_factory() as session:
                invocation = ModelInvocationRepository(session).create(
                    conversation_id=conversation_id,
                    provider=provider,
                    model=model,
                    latency_ms=completion.latency_ms,
                    input_tokens=completion.usage.input_tokens,
                    output_tokens=completion.usage.output_tokens,
                    total_tokens=completion.usage.total_tokens,
                    estimated_cost_usd=None,
                )
                logger.debug(
                    "model_invocation_saved",
                    invocation_id=invocation.id,
                    conversation_id=conversation_id,
                )
                return invocation
        except Exception as e:
            logger.error(
                "save_model_invocation_error",
                conversation_id=conversation_id,
                error=str(e),
            )
            return None
