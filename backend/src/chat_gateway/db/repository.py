"""Repository layer for database operations.

Provides CRUD operations for Conversation, Message and ModelInvocation
entities. Uses SQLite for persistence (data/chat_gateway.db by default).
"""

from decimal import Decimal
from pathlib import Path

from sqlalchemy import event
from sqlmodel import Session, SQLModel, create_engine, select

from chat_gateway.db.models import (
    Conversation,
    Message,
    MessageRole,
    ModelInvocation,
    generate_id,
    utc_now,
)


def _enable_sqlite_fk(dbapi_connection, connection_record):
    """Enable foreign key constraints for SQLite connections."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# Default database path
DEFAULT_DB_PATH = Path("data/chat_gateway.db")

# Module-level engine (initialized on first use)
_engine = None


def get_engine(db_path: Path | None = None):
    """Get or create the database engine.

    Args:
        db_path: Optional custom database path. Defaults to data/chat_gateway.db

    Returns:
        SQLModel engine instance
    """
    global _engine
    if _engine is None:
        path = db_path or DEFAULT_DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        database_url = f"sqlite:///{path}"
        _engine = create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
        )
        event.listen(_engine, "connect", _enable_sqlite_fk)
    return _engine


def init_db(db_path: Path | None = None) -> None:
    """Initialize the database by creating all tables.

    Args:
        db_path: Optional custom database path
    """
    engine = get_engine(db_path)
    SQLModel.metadata.create_all(engine)


class ConversationRepository:
    """Repository for Conversation CRUD operations."""

    def __init__(self, session: Session):
        """Initialize repository with a database session.

        Args:
            session: SQLModel session for database operations
        """
        self.session = session

    def create(
        self,
        user_id: str | None = None,
        guest_id: str | None = None,
        title: str | None = None,
    ) -> Conversation:
        """Create a new conversation.

        Args:
            user_id: Owning user id, if signed in
            guest_id: Owning guest id, ignored when ``user_id`` is set
            title: Optional conversation title

        Returns:
            Created Conversation instance
        """
        conversation = Conversation(
            id=generate_id(),
            user_id=user_id,
            guest_id=None if user_id else guest_id,
            title=title,
            created_at=utc_now(),
        )
        self.session.add(conversation)
        self.session.commit()
        self.session.refresh(conversation)
        return conversation

    def get(self, conversation_id: str) -> Conversation | None:
        """Get a conversation by ID.

        Args:
            conversation_id: The conversation ID

        Returns:
            Conversation if found, None otherwise
        """
        return self.session.get(Conversation, conversation_id)

    def delete(self, conversation_id: str) -> bool:
        """Delete a conversation and all its messages.

        Model invocations keep their row with the conversation link cleared.

        Args:
            conversation_id: The conversation ID

        Returns:
            True if deleted, False if not found
        """
        conversation = self.get(conversation_id)
        if conversation is None:
            return False

        self.session.delete(conversation)
        self.session.commit()
        return True


class MessageRepository:
    """Repository for Message operations. Messages are append-only."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        conversation_id: str,
        role: MessageRole,
        content: str,
    ) -> Message:
        """Append a message to a conversation.

        Args:
            conversation_id: Parent conversation ID
            role: Message role (user, assistant or system)
            content: Message text content

        Returns:
            Created Message instance
        """
        message = Message(
            id=generate_id(),
            conversation_id=conversation_id,
            role=role,
            content=content,
            created_at=utc_now(),
        )
        self.session.add(message)
        self.session.commit()
        self.session.refresh(message)
        return message

    def list_by_conversation(
        self, conversation_id: str, limit: int = 100, offset: int = 0
    ) -> list[Message]:
        """List messages for a conversation ordered by created_at ascending."""
        statement = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc())
            .offset(offset)
            .limit(limit)
        )
        return list(self.session.exec(statement).all())

    def count(self) -> int:
        """Count all stored messages."""
        return len(self.session.exec(select(Message.id)).all())


class ModelInvocationRepository:
    """Repository for ModelInvocation records. Append-only."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        conversation_id: str | None,
        provider: str,
        model: str,
        latency_ms: int | None = None,
        input_tokens: int | None = None,
        output_tokens: int | None = None,
        total_tokens: int | None = None,
        estimated_cost_usd: Decimal | None = None,
    ) -> ModelInvocation:
        """Record one completed model call.

        Args:
            conversation_id: Conversation the call answered
            provider: Provider name, e.g. "baseten"
            model: Provider model identifier
            latency_ms: Wall-clock latency of the call
            input_tokens: Prompt-side token count, if reported
            output_tokens: Completion-side token count, if reported
            total_tokens: Total token count, if reported or derivable
            estimated_cost_usd: Reserved for pricing

        Returns:
            Created ModelInvocation instance
        """
        invocation = ModelInvocation(
            id=generate_id(),
            conversation_id=conversation_id,
            provider=provider,
            model=model,
            latency_ms=latency_ms,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=total_tokens,
            estimated_cost_usd=estimated_cost_usd,
            created_at=utc_now(),
        )
        self.session.add(invocation)
        self.session.commit()
        self.session.refresh(invocation)
        return invocation

    def list_by_conversation(self, conversation_id: str) -> list[ModelInvocation]:
        """List invocations recorded against a conversation, oldest first."""
        statement = (
            select(ModelInvocation)
            .where(ModelInvocation.conversation_id == conversation_id)
            .order_by(ModelInvocation.created_at.asc())
        )
        return list(self.session.exec(statement).all())

    def count(self) -> int:
        """Count all stored invocations."""
        return len(self.session.exec(select(ModelInvocation.id)).all())
