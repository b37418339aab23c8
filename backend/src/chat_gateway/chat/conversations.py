"""Find or create the conversation a chat turn belongs to."""

from collections.abc import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from chat_gateway.chat.schemas import ChatRequest
from chat_gateway.core.errors import ConversationCreateError, ConversationNotFoundError
from chat_gateway.core.logging import get_logger
from chat_gateway.db import Conversation, ConversationRepository

logger = get_logger(__name__)

SessionFactory = Callable[[], Session]


def make_title(request: ChatRequest, max_length: int = 80) -> str | None:
    """Title from the first user message, cut to ``max_length`` characters."""
    first = request.first_user_turn()
    if first is None or not first.content:
        return None
    return first.content[:max_length]


class ConversationResolver:
    """Resolves a request to a durable conversation id.

    A supplied conversation id is trusted as-is unless ``verify_owner`` is
    set, in which case it must exist and belong to the caller.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        title_length: int = 80,
        verify_owner: bool = False,
    ) -> None:
        self._session_factory = session_factory
        self.title_length = title_length
        self.verify_owner = verify_owner

    def resolve(
        self,
        request: ChatRequest,
        user_id: str | None,
    ) -> tuple[str, bool]:
        """Return ``(conversation_id, created)``.

        Raises:
            ConversationCreateError: The store failed to create the row.
            ConversationNotFoundError: Ownership verification is enabled and
                the supplied id is unknown or owned by someone else.
        """
        if request.conversation_id:
            if self.verify_owner:
                self._check_owner(request.conversation_id, user_id, request.guest_id)
            return request.conversation_id, False

        title = make_title(request, self.title_length)
        try:
            with self._session_factory() as session:
                repo = ConversationRepository(session)
                conv = repo.create(
                    user_id=user_id,
                    guest_id=request.guest_id,
                    title=title,
                )
        except SQLAlchemyError as e:
            logger.error("create_conversation_error", error=str(e))
            raise ConversationCreateError(detail={"error": str(e)}) from e

        logger.info(
            "conversation_created",
            conversation_id=conv.id,
            owner="user" if conv.user_id else "guest",
        )
        return conv.id, True

    def _check_owner(
        self,
        conversation_id: str,
        user_id: str | None,
        guest_id: str | None,
    ) -> None:
        with self._session_factory() as session:
            conv = ConversationRepository(session).get(conversation_id)
        if conv is None or not _owned_by(conv, user_id, guest_id):
            logger.warning(
                "conversation_owner_mismatch",
                conversation_id=conversation_id,
                found=conv is not None,
            )
            raise ConversationNotFoundError()


def _owned_by(conv: Conversation, user_id: str | None, guest_id: str | None) -> bool:
    if conv.user_id:
        return conv.user_id == user_id
    if conv.guest_id:
        return user_id is None and conv.guest_id == guest_id
    return user_id is None
