"""Database repository for conversations and messages."""

from __future__ import annotations

import datetime as dt
from typing import Optional, Protocol, Sequence
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from ..models import Conversation, Message
from . import schemas


class ConversationRepository(Protocol):
    """Abstraction for persisting conversations and their messages."""

    def create_conversation(self, user_id: str) -> schemas.ConversationOut: ...

    def get_conversation(self, conversation_id: UUID) -> Optional[schemas.ConversationOut]: ...

    def list_conversations(self, user_id: str) -> list[schemas.ConversationSummary]: ...

    def list_messages(self, conversation_id: UUID) -> list[schemas.MessageOut]: ...

    def recent_messages(self, conversation_id: UUID, limit: int) -> list[schemas.MessageOut]: ...

    def add_message(
        self,
        conversation_id: UUID,
        role: str,
        content: str,
        *,
        agent_type: Optional[str] = None,
        routing_reason: Optional[str] = None,
        tools_used: Sequence[str] = (),
    ) -> schemas.MessageOut: ...

    def touch_conversation(self, conversation_id: UUID, *, title_candidate: str) -> None: ...

    def delete_conversation(self, conversation_id: UUID) -> bool: ...


class SqlAlchemyConversationRepository:
    """SQLAlchemy implementation of :class:`ConversationRepository`.

    Every method runs in its own short transaction so the repository can be
    shared across requests and called from worker threads.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    # Conversations -------------------------------------------------------------
    def create_conversation(self, user_id: str) -> schemas.ConversationOut:
        with self._session_factory.begin() as session:
            conversation = Conversation(user_id=user_id)
            session.add(conversation)
            session.flush()
            return schemas.ConversationOut.model_validate(conversation)

    def get_conversation(self, conversation_id: UUID) -> Optional[schemas.ConversationOut]:
        with self._session_factory() as session:
            conversation = session.get(Conversation, conversation_id)
            if conversation is None:
                return None
            return schemas.ConversationOut.model_validate(conversation)

    def list_conversations(self, user_id: str) -> list[schemas.ConversationSummary]:
        with self._session_factory() as session:
            conversations = session.scalars(
                select(Conversation)
                .where(Conversation.user_id == user_id)
                .order_by(Conversation.updated_at.desc(), Conversation.created_at.desc())
            ).all()
            summaries: list[schemas.ConversationSummary] = []
            for conversation in conversations:
                latest = session.scalars(
                    select(Message)
                    .where(Message.conversation_id == conversation.id)
                    .order_by(Message.created_at.desc(), Message.id.desc())
                    .limit(1)
                ).all()
                summary = schemas.ConversationSummary.model_validate(
                    {
                        "id": conversation.id,
                        "user_id": conversation.user_id,
                        "title": conversation.title,
                        "created_at": conversation.created_at,
                        "updated_at": conversation.updated_at,
                        "messages": [schemas.MessageOut.model_validate(m) for m in latest],
                    }
                )
                summaries.append(summary)
        return summaries

    def touch_conversation(self, conversation_id: UUID, *, title_candidate: str) -> None:
        with self._session_factory.begin() as session:
            conversation = session.get(Conversation, conversation_id)
            if conversation is None:
                return
            conversation.updated_at = dt.datetime.now(dt.timezone.utc)
            if not conversation.title:
                conversation.title = title_candidate

    def delete_conversation(self, conversation_id: UUID) -> bool:
        with self._session_factory.begin() as session:
            result = session.execute(
                delete(Conversation).where(Conversation.id == conversation_id)
            )
            return bool(result.rowcount)

    # Messages ------------------------------------------------------------------
    def list_messages(self, conversation_id: UUID) -> list[schemas.MessageOut]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(Message)
                .where(Message.conversation_id == conversation_id)
                .order_by(Message.created_at.asc(), Message.id.asc())
            ).all()
            return [schemas.MessageOut.model_validate(row) for row in rows]

    def recent_messages(self, conversation_id: UUID, limit: int) -> list[schemas.MessageOut]:
        """Return the ``limit`` most recent messages, oldest first."""

        if limit <= 0:
            return []
        with self._session_factory() as session:
            rows = session.scalars(
                select(Message)
                .where(Message.conversation_id == conversation_id)
                .order_by(Message.created_at.desc(), Message.id.desc())
                .limit(limit)
            ).all()
            return [schemas.MessageOut.model_validate(row) for row in reversed(rows)]

    def add_message(
        self,
        conversation_id: UUID,
        role: str,
        content: str,
        *,
        agent_type: Optional[str] = None,
        routing_reason: Optional[str] = None,
        tools_used: Sequence[str] = (),
    ) -> schemas.MessageOut:
        with self._session_factory.begin() as session:
            message = Message(
                conversation_id=conversation_id,
                role=role,
                content=content,
                agent_type=agent_type,
                routing_reason=routing_reason,
                tools_used=list(tools_used),
            )
            session.add(message)
            session.flush()
            return schemas.MessageOut.model_validate(message)
