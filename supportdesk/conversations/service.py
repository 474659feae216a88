"""Chat orchestration: classify, dispatch, persist.

One message send runs these steps in order:

1. load the conversation (``ConversationNotFoundError`` if missing);
2. persist the inbound user message;
3. load bounded history;
4. classify the message (never fails);
5. run the chosen specialist agent;
6. persist the assistant message;
7. refresh ``updated_at`` and set the title if it is still empty.

:meth:`ChatService.stream_message` performs steps 1-4 before returning a
:class:`PendingReply`; the caller drains it (step 5) and awaits
:meth:`PendingReply.finalize` for steps 6-7. :meth:`ChatService.send_message`
does exactly that in one call.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from uuid import UUID

from ..agents.responder import (
    Responder,
    ResponderEvent,
    ResponderResult,
    ResponderStream,
    static_stream,
)
from ..agents.router import QueryRouter
from ..errors import ConversationNotFoundError
from . import schemas
from .history import MAX_CONTEXT_MESSAGES, load_history
from .repository import ConversationRepository

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 60
FALLBACK_REPLY = (
    "I'm not sure how to help with that. Could you rephrase your question? "
    "I can help with orders, billing, or general support questions."
)


class PendingReply:
    """A routed reply whose assistant message is persisted on :meth:`finalize`."""

    def __init__(
        self,
        *,
        conversation_id: UUID,
        agent_type: str,
        routing_reason: str,
        user_message: schemas.MessageOut,
        stream: ResponderStream,
        persist: Callable[[ResponderResult], Awaitable[schemas.MessageOut]],
    ) -> None:
        self.conversation_id = conversation_id
        self.agent_type = agent_type
        self.routing_reason = routing_reason
        self.user_message = user_message
        self._stream = stream
        self._persist = persist
        self._finalized = False

    def __aiter__(self) -> AsyncIterator[ResponderEvent]:
        return self._stream.__aiter__()

    @property
    def finalized(self) -> bool:
        return self._finalized

    async def finalize(self) -> schemas.MessageOut:
        """Persist the assistant message. Valid once, after the stream is drained."""

        if self._finalized:
            raise RuntimeError("finalize() has already been called for this reply")
        result = await self._stream.finalize()
        self._finalized = True
        return await self._persist(result)

    async def aclose(self) -> None:
        await self._stream.aclose()


class ChatService:
    """Coordinates persistence, routing and the specialist agents."""

    def __init__(
        self,
        repository: ConversationRepository,
        router: QueryRouter,
        responders: Mapping[str, Responder],
        *,
        history_limit: int = MAX_CONTEXT_MESSAGES,
    ) -> None:
        self._repo = repository
        self._router = router
        self._responders = dict(responders)
        self._history_limit = history_limit

    # Conversations -------------------------------------------------------------
    async def create_conversation(self, user_id: str) -> schemas.ConversationOut:
        conversation = await asyncio.to_thread(self._repo.create_conversation, user_id)
        logger.info("Created conversation %s for user %s", conversation.id, user_id)
        return conversation

    async def list_conversations(self, user_id: str) -> list[schemas.ConversationSummary]:
        return await asyncio.to_thread(self._repo.list_conversations, user_id)

    async def get_conversation_with_messages(
        self, conversation_id: UUID
    ) -> schemas.ConversationDetail:
        conversation = await asyncio.to_thread(self._repo.get_conversation, conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        messages = await asyncio.to_thread(self._repo.list_messages, conversation_id)
        return schemas.ConversationDetail(conversation=conversation, messages=messages)

    async def delete_conversation(self, conversation_id: UUID) -> None:
        deleted = await asyncio.to_thread(self._repo.delete_conversation, conversation_id)
        if not deleted:
            raise ConversationNotFoundError(conversation_id)
        logger.info("Deleted conversation %s", conversation_id)

    # Messages ------------------------------------------------------------------
    async def stream_message(
        self, conversation_id: UUID, user_id: str, text: str
    ) -> PendingReply:
        conversation = await asyncio.to_thread(self._repo.get_conversation, conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)

        user_message = await asyncio.to_thread(
            self._repo.add_message, conversation_id, "user", text
        )
        history = await asyncio.to_thread(
            load_history, self._repo, conversation_id, self._history_limit
        )
        decision = await self._router.route(text, history)
        agent_type = decision.category
        routing_reason = decision.reason

        responder = self._responders.get(agent_type)
        if responder is None:
            logger.warning("No agent registered for %r; sending fallback reply", agent_type)
            stream = static_stream(FALLBACK_REPLY)
        else:
            context_value = (
                str(conversation_id)
                if responder.config.context_source == "conversation"
                else user_id
            )
            stream = responder.stream(text, history, context_value)

        async def persist(result: ResponderResult) -> schemas.MessageOut:
            agent_message = await asyncio.to_thread(
                self._repo.add_message,
                conversation_id,
                "assistant",
                result.text,
                agent_type=agent_type,
                routing_reason=routing_reason,
                tools_used=result.tools_used,
            )
            await asyncio.to_thread(
                self._repo.touch_conversation,
                conversation_id,
                title_candidate=text[:TITLE_MAX_LENGTH],
            )
            return agent_message

        return PendingReply(
            conversation_id=conversation_id,
            agent_type=agent_type,
            routing_reason=routing_reason,
            user_message=user_message,
            stream=stream,
            persist=persist,
        )

    async def send_message(
        self, conversation_id: UUID, user_id: str, text: str
    ) -> schemas.SendMessageResult:
        reply = await self.stream_message(conversation_id, user_id, text)
        async for _ in reply:
            pass
        agent_message = await reply.finalize()
        return schemas.SendMessageResult(
            user_message=reply.user_message,
            agent_message=agent_message,
            agent_type=reply.agent_type,
            routing_reason=reply.routing_reason,
        )
