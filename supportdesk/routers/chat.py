"""Conversation and message API routes."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import StreamingResponse

from ..conversations import schemas
from ..conversations.service import ChatService
from ..core.deps import get_chat_service
from ..core.rate_limit import enforce_rate_limit
from ..errors import SupportDeskError
from ..sse_utils import SSE_HEADERS, header_safe, reply_event_stream

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.post(
    "/conversations",
    response_model=schemas.ApiResponse[schemas.ConversationOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_conversation(
    payload: schemas.CreateConversationRequest,
    service: ChatService = Depends(get_chat_service),
) -> schemas.ApiResponse[schemas.ConversationOut]:
    conversation = await service.create_conversation(payload.user_id)
    return schemas.ApiResponse[schemas.ConversationOut](data=conversation)


def required_user_id(user_id: str | None = Query(None, alias="userId")) -> str:
    """Resolve the ``userId`` query parameter, rejecting the request without it."""

    if not user_id:
        raise SupportDeskError(
            "userId query parameter is required",
            status_code=status.HTTP_400_BAD_REQUEST,
            code="VALIDATION_ERROR",
        )
    return user_id


@router.get(
    "/conversations",
    response_model=schemas.ApiResponse[list[schemas.ConversationSummary]],
)
async def list_conversations(
    # Declared first so a missing userId is rejected before the service is built.
    user_id: str = Depends(required_user_id),
    service: ChatService = Depends(get_chat_service),
) -> schemas.ApiResponse[list[schemas.ConversationSummary]]:
    conversations = await service.list_conversations(user_id)
    return schemas.ApiResponse[list[schemas.ConversationSummary]](data=conversations)


@router.get(
    "/conversations/{conversation_id}",
    response_model=schemas.ApiResponse[schemas.ConversationDetail],
)
async def get_conversation(
    conversation_id: UUID,
    service: ChatService = Depends(get_chat_service),
) -> schemas.ApiResponse[schemas.ConversationDetail]:
    detail = await service.get_conversation_with_messages(conversation_id)
    return schemas.ApiResponse[schemas.ConversationDetail](data=detail)


@router.delete("/conversations/{conversation_id}", response_model=schemas.DeletedResponse)
async def delete_conversation(
    conversation_id: UUID,
    service: ChatService = Depends(get_chat_service),
) -> schemas.DeletedResponse:
    await service.delete_conversation(conversation_id)
    return schemas.DeletedResponse()


@router.post(
    "/messages",
    response_model=schemas.ApiResponse[schemas.SendMessageResult],
    dependencies=[Depends(enforce_rate_limit)],
)
async def send_message(
    payload: schemas.SendMessageRequest,
    service: ChatService = Depends(get_chat_service),
) -> schemas.ApiResponse[schemas.SendMessageResult]:
    """Blocking send: route, run the agent and return both persisted messages."""

    result = await service.send_message(
        payload.conversation_id, payload.user_id, payload.message
    )
    return schemas.ApiResponse[schemas.SendMessageResult](data=result)


@router.post("/messages/stream", dependencies=[Depends(enforce_rate_limit)])
async def stream_message(
    payload: schemas.SendMessageRequest,
    request: Request,
    service: ChatService = Depends(get_chat_service),
) -> StreamingResponse:
    """Streaming send (SSE).

    Routing happens before the response starts so the chosen agent and the
    routing reason are available as ``X-Agent-Type`` / ``X-Routing-Reason``.
    The assistant message is persisted after the last token, and its id is
    reported in the final ``done`` event.
    """

    reply = await service.stream_message(
        payload.conversation_id, payload.user_id, payload.message
    )
    headers = {
        **SSE_HEADERS,
        **getattr(request.state, "rate_limit_headers", {}),
        "X-Agent-Type": reply.agent_type,
        "X-Routing-Reason": header_safe(reply.routing_reason),
    }
    return StreamingResponse(
        reply_event_stream(reply, request.is_disconnected),
        media_type="text/event-stream; charset=utf-8",
        headers=headers,
    )
