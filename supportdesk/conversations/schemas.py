"""Pydantic schemas for the chat API.

Field names are snake_case in Python and camelCase on the wire
(``userId``, ``agentType``...). Models read directly from ORM rows via
``from_attributes``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Generic, Literal, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")

MESSAGE_MAX_LENGTH = 2000


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageOut(CamelModel):
    id: int
    conversation_id: UUID
    role: Literal["user", "assistant"]
    content: str
    agent_type: Optional[str] = None
    routing_reason: Optional[str] = None
    tools_used: list[str] = Field(default_factory=list)
    created_at: datetime


class ConversationOut(CamelModel):
    id: UUID
    user_id: str
    title: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ConversationSummary(ConversationOut):
    """Conversation listing entry with at most its latest message attached."""

    messages: list[MessageOut] = Field(default_factory=list)


class ConversationDetail(CamelModel):
    conversation: ConversationOut
    messages: list[MessageOut] = Field(default_factory=list)


class CreateConversationRequest(CamelModel):
    user_id: str = Field(..., min_length=1, description="Caller supplied user id")


class SendMessageRequest(CamelModel):
    conversation_id: UUID
    user_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1, max_length=MESSAGE_MAX_LENGTH)


class SendMessageResult(CamelModel):
    user_message: MessageOut
    agent_message: MessageOut
    agent_type: str
    routing_reason: str


class ApiResponse(CamelModel, Generic[T]):
    success: bool = True
    data: T


class DeletedResponse(CamelModel):
    success: bool = True
    message: str = "Conversation deleted"
