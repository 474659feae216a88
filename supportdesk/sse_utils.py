"""SSE framing for streamed agent replies.

Every event is a single ``data:`` line carrying a JSON object followed by a
blank line::

    data: {"type": "text", "content": "Your order"}
    data: {"type": "tool_call", "tool": "get_order_details"}
    data: {"type": "done", "messageId": 42, "agentType": "order"}
    data: {"type": "error", "message": "Stream interrupted"}

:func:`reply_event_stream` adapts a :class:`PendingReply` to these events and
runs its ``finalize`` step once the agent stream is exhausted.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from .agents.providers import TextDelta
from .agents.responder import ToolInvoked
from .conversations.service import PendingReply

logger = logging.getLogger(__name__)

STREAM_ERROR_MESSAGE = "Stream interrupted"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_sse(payload: dict[str, Any]) -> str:
    """Serialise ``payload`` as one SSE ``data:`` event."""

    return f"data: {json.dumps(payload, ensure_ascii=False, default=str)}\n\n"


def header_safe(value: str, limit: int = 256) -> str:
    """Collapse ``value`` to a single latin-1 safe header line."""

    flattened = " ".join(value.split())
    return flattened.encode("latin-1", errors="replace").decode("latin-1")[:limit]


async def reply_event_stream(
    reply: PendingReply,
    is_disconnected: Callable[[], Awaitable[bool]] | None = None,
) -> AsyncIterator[str]:
    """Yield SSE events for ``reply`` and persist it after the last token.

    If ``is_disconnected`` reports the client went away, forwarding stops and
    the reply is left unfinalized.
    """

    try:
        async for event in reply:
            if is_disconnected is not None and await is_disconnected():
                logger.info(
                    "Client disconnected from conversation %s; reply not persisted",
                    reply.conversation_id,
                )
                return
            if isinstance(event, TextDelta):
                yield format_sse({"type": "text", "content": event.content})
            elif isinstance(event, ToolInvoked):
                yield format_sse({"type": "tool_call", "tool": event.tool})

        agent_message = await reply.finalize()
        yield format_sse(
            {"type": "done", "messageId": agent_message.id, "agentType": reply.agent_type}
        )
    except Exception:
        logger.exception("Stream failed for conversation %s", reply.conversation_id)
        yield format_sse({"type": "error", "message": STREAM_ERROR_MESSAGE})
    finally:
        await reply.aclose()
