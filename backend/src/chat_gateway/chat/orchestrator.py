"""The chat turn pipeline.

A turn runs strictly in order: validate input, resolve identity, admit,
resolve the conversation, save the user turn, call the model, save the
assistant turn, record metrics, respond. Saving turns and recording metrics
are best-effort; every other step aborts the turn by raising.
"""

import asyncio
from collections.abc import Mapping
from typing import Any
from uuid import uuid4

from pydantic import ValidationError
from sqlmodel import Session

from chat_gateway.admission import AdmissionController
from chat_gateway.chat.conversations import ConversationResolver, SessionFactory
from chat_gateway.chat.metrics import MetricsRecorder
from chat_gateway.chat.schemas import AssistantMessage, ChatRequest, ChatResponse
from chat_gateway.core.config import DEFAULT_SYSTEM_PROMPT
from chat_gateway.core.errors import ConfigurationError, InvalidRequestError
from chat_gateway.core.logging import get_logger
from chat_gateway.db import MessageRepository, get_engine
from chat_gateway.db.models import MessageRole
from chat_gateway.identity import BaseIdentityResolver
from chat_gateway.llm import BaseLLM, ConversationContext

logger = get_logger(__name__)

_FIELD_ERRORS = {
    "messages": "Each message needs a role of user, assistant or system and text content.",
    "conversationId": "'conversationId' must be a string or null.",
    "guestId": "'guestId' must be a string or null.",
    "conversation_id": "'conversationId' must be a string or null.",
    "guest_id": "'guestId' must be a string or null.",
}


def default_session_factory() -> Session:
    """Open a session on the module engine."""
    return Session(get_engine())


def make_client_message_id() -> str:
    """Client-facing id for an assistant reply (not the stored row id)."""
    return f"assistant-{uuid4().hex[:12]}"


def parse_chat_request(payload: Any) -> ChatRequest:
    """Validate a decoded JSON body.

    Raises:
        InvalidRequestError: The body is not an object, ``messages`` is
            missing or empty, or a turn is malformed.
    """
    if not isinstance(payload, Mapping):
        raise InvalidRequestError("Request body must be a JSON object.")

    messages = payload.get("messages")
    if not isinstance(messages, list) or not messages:
        raise InvalidRequestError("'messages' array is required.")

    try:
        return ChatRequest.model_validate(payload)
    except ValidationError as e:
        errors = e.errors(include_url=False)
        field = errors[0]["loc"][0] if errors and errors[0]["loc"] else "messages"
        raise InvalidRequestError(
            _FIELD_ERRORS.get(str(field), "Invalid request body."),
            detail={"errors": errors},
        ) from e


class TurnOrchestrator:
    """Runs one chat turn end to end.

    Args:
        admission: Admission controller holding the process-wide rate limiter.
        identity: Resolver for bearer credentials.
        llm: Model client, or None when provider configuration is missing.
        session_factory: Opens store sessions. Defaults to the module engine.
        system_prompt: Instruction placed before the history.
        title_length: Length of titles derived from the first user message.
        verify_conversation_owner: Check supplied conversation ids.
    """

    def __init__(
        self,
        admission: AdmissionController,
        identity: BaseIdentityResolver,
        llm: BaseLLM | None,
        session_factory: SessionFactory = default_session_factory,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        title_length: int = 80,
        verify_conversation_owner: bool = False,
    ) -> None:
        self.admission = admission
        self.identity = identity
        self.llm = llm
        self.system_prompt = system_prompt
        self._session_factory = session_factory
        self.conversations = ConversationResolver(
            session_factory,
            title_length=title_length,
            verify_owner=verify_conversation_owner,
        )
        self.metrics = MetricsRecorder(session_factory)

    def ensure_configured(self) -> BaseLLM:
        """Return the model client.

        Raises:
            ConfigurationError: Provider key or model is not configured.
        """
        if self.llm is None:
            logger.error("llm_configuration_missing")
            raise ConfigurationError()
        return self.llm

    async def handle(
        self,
        payload: Any,
        authorization: str | None = None,
        remote_addr: str | None = None,
    ) -> ChatResponse:
        """Process one turn and return the assistant reply.

        Args:
            payload: Decoded JSON request body.
            authorization: Raw ``Authorization`` header value.
            remote_addr: Client network address used as a rate-limit fallback.

        Raises:
            ChatGatewayError: Any fatal step failed; the subclass carries
                the status code and public message.
        """
        llm = self.ensure_configured()

        request = parse_chat_request(payload)

        user_id = await self.identity.resolve(authorization)

        max_messages = self.admission.admit(
            user_id=user_id,
            guest_id=request.guest_id,
            remote_addr=remote_addr,
            message_count=len(request.messages),
        )

        conversation_id, created = await asyncio.to_thread(
            self.conversations.resolve, request, user_id
        )

        last_user = request.last_user_turn()
        if last_user is not None:
            await asyncio.to_thread(
                self._save_message, conversation_id, "user", last_user.content
            )

        context = ConversationContext.from_history(
            (turn.model_dump() for turn in request.messages),
            max_messages=max_messages,
            system_prompt=self.system_prompt,
        )
        completion = await llm.complete(context.get_messages())

        await asyncio.to_thread(
            self._save_message, conversation_id, "assistant", completion.content
        )
        await asyncio.to_thread(
            self.metrics.record,
            conversation_id,
            llm.provider,
            llm.model,
            completion,
        )

        return ChatResponse(
            conversation_id=conversation_id if created else None,
            message=AssistantMessage(
                id=make_client_message_id(),
                content=completion.content,
            ),
        )

    def _save_message(
        self, conversation_id: str, role: MessageRole, content: str
    ) -> str | None:
        """Append a message, logging instead of raising on failure.

        Returns:
            The message ID if saved, None on error.
        """
        try:
            with self._session_factory() as session:
                msg = MessageRepository(session).create(
                    conversation_id=conversation_id,
                    role=role,
                    content=content,
                )
                logger.debug(
                    f"{role}_message_saved",
                    message_id=msg.id,
                    conversation_id=conversation_id,
                )
                return msg.id
        except Exception as e:
            logger.error(
                f"save_{role}_message_error",
                conversation_id=conversation_id,
                error=str(e),
            )
            return None
