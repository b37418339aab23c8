"""SQLModel models for conversation persistence.

Schema design:
- Table names: snake_case plural (conversations, messages, model_invocations)
- Column names: snake_case
- Foreign keys: {table_singular}_id
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Literal
from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, String
from sqlmodel import Field, Relationship, SQLModel

# Type alias for message role
MessageRole = Literal["user", "assistant", "system"]


def generate_id() -> str:
    """Generate a UUID-based ID for database records."""
    return str(uuid4())


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


class Conversation(SQLModel, table=True):
    """Conversation owned by either a signed-in user or a guest.

    Attributes:
        id: UUID-based primary key
        user_id: Identity provider user id (None for guests)
        guest_id: Browser-generated guest id (None for signed-in users)
        title: Prefix of the first user message, if any
        created_at: When the conversation was created
    """

    __tablename__ = "conversations"
    __table_args__ = {"extend_existing": True}

    id: str = Field(default_factory=generate_id, primary_key=True)
    user_id: str | None = Field(default=None, index=True)
    guest_id: str | None = Field(default=None, index=True)
    title: str | None = None
    created_at: datetime = Field(default_factory=utc_now)

    messages: list["Message"] = Relationship(
        back_populates="conversation",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class Message(SQLModel, table=True):
    """A single turn in a conversation.

    Attributes:
        id: UUID-based primary key
        conversation_id: Foreign key to parent conversation
        role: user, assistant or system
        content: Message text content
        created_at: When the message was created
    """

    __tablename__ = "messages"
    __table_args__ = (
        Index("idx_messages_conversation_id_created_at", "conversation_id", "created_at"),
        CheckConstraint("role in ('user', 'assistant', 'system')", name="ck_messages_role"),
        {"extend_existing": True},
    )

    id: str = Field(default_factory=generate_id, primary_key=True)
    conversation_id: str = Field(
        sa_column=Column(
            String,
            ForeignKey("conversations.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    role: str  # "user", "assistant" or "system" - stored as string in DB
    content: str
    created_at: datetime = Field(default_factory=utc_now)

    conversation: Conversation | None = Relationship(back_populates="messages")


class ModelInvocation(SQLModel, table=True):
    """One completed LLM call with its latency and token accounting.

    The conversation link is nullable so the record outlives its conversation.
    """

    __tablename__ = "model_invocations"
    __table_args__ = {"extend_existing": True}

    id: str = Field(default_factory=generate_id, primary_key=True)
    conversation_id: str | None = Field(
        default=None,
        sa_column=Column(
            String,
            ForeignKey("conversations.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
    )
    provider: str
    model: str
    latency_ms: int | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None
    total_tokens: int | None = None
    estimated_cost_usd: Decimal | None = Field(
        default=None, max_digits=10, decimal_places=6
    )
    created_at: datetime = Field(default_factory=utc_now)
