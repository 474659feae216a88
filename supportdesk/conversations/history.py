"""Bounded conversation history for reasoning-provider context."""

from __future__ import annotations

from typing import Iterable, TypedDict
from uuid import UUID

from .repository import ConversationRepository
from .schemas import MessageOut

# Max messages handed to the provider per turn.
MAX_CONTEXT_MESSAGES = 12


class HistoryEntry(TypedDict):
    role: str
    content: str


def project_history(
    messages: Iterable[MessageOut], limit: int = MAX_CONTEXT_MESSAGES
) -> list[HistoryEntry]:
    """Project messages (oldest first) to role/content pairs, keeping the last ``limit``."""

    entries = [HistoryEntry(role=m.role, content=m.content) for m in messages]
    if limit <= 0:
        return []
    return entries[-limit:]


def load_history(
    repository: ConversationRepository,
    conversation_id: UUID,
    limit: int = MAX_CONTEXT_MESSAGES,
) -> list[HistoryEntry]:
    """Return the most recent ``limit`` messages of a conversation, oldest first."""

    limit = min(limit, MAX_CONTEXT_MESSAGES)
    return project_history(repository.recent_messages(conversation_id, limit), limit)
