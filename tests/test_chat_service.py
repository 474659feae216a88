import asyncio
from uuid import uuid4

import pytest
from conftest import ScriptedProvider, route, text, tool_call
from sqlalchemy import func, select

from supportdesk.conversations.repository import SqlAlchemyConversationRepository
from supportdesk.conversations.service import FALLBACK_REPLY, TITLE_MAX_LENGTH
from supportdesk.core.deps import build_chat_service
from supportdesk.errors import ConversationNotFoundError, ProviderUnavailableError
from supportdesk.models import Message


def _message_count(factory, conversation_id) -> int:
    with factory() as session:
        return session.scalar(
            select(func.count(Message.id)).where(Message.conversation_id == conversation_id)
        )


def _drain(reply):
    async def _run():
        events = [event async for event in reply]
        message = await reply.finalize()
        return events, message

    return asyncio.run(_run())


def test_send_message_persists_both_turns(chat_service, provider, seeded):
    provider.routes.append(route("support", "General question"))
    provider.rounds.append(text("We offer a ", "30-day return policy."))
    conversation = asyncio.run(chat_service.create_conversation("user_1"))

    result = asyncio.run(
        chat_service.send_message(conversation.id, "user_1", "What is your return policy?")
    )

    assert result.agent_type == "support"
    assert result.routing_reason == "General question"
    assert result.user_message.role == "user"
    assert result.agent_message.content == "We offer a 30-day return policy."
    assert result.agent_message.agent_type == "support"

    detail = asyncio.run(chat_service.get_conversation_with_messages(conversation.id))
    assert [m.role for m in detail.messages] == ["user", "assistant"]
    assert detail.conversation.title == "What is your return policy?"


def test_stream_and_blocking_persist_same_reply(seeded):
    def run(streaming: bool):
        provider = ScriptedProvider(
            routes=[route("order")],
            rounds=[
                [tool_call("get_order_details", '{"identifier": "ORD-001"}')],
                text("Shipped, ", "arriving soon."),
            ],
        )
        service = build_chat_service(seeded, provider)
        conversation = asyncio.run(service.create_conversation("user_demo"))
        if streaming:
            reply = asyncio.run(service.stream_message(conversation.id, "user_demo", "Where is ORD-001?"))
            _, message = _drain(reply)
        else:
            message = asyncio.run(
                service.send_message(conversation.id, "user_demo", "Where is ORD-001?")
            ).agent_message
        return message

    streamed = run(streaming=True)
    blocking = run(streaming=False)
    assert streamed.content == blocking.content == "Shipped, arriving soon."
    assert streamed.tools_used == blocking.tools_used == ["get_order_details"]
    assert streamed.agent_type == blocking.agent_type == "order"


def test_order_question_invokes_order_tool(chat_service, provider):
    provider.routes.append(route("order", "Query references order number"))
    provider.rounds.extend(
        [
            [tool_call("get_order_details", '{"identifier": "ORD-001"}')],
            text("Your order ORD-001 has shipped."),
        ]
    )
    conversation = asyncio.run(chat_service.create_conversation("user_demo"))
    reply = asyncio.run(
        chat_service.stream_message(conversation.id, "user_demo", "Where is my order ORD-001?")
    )
    events, message = _drain(reply)

    assert reply.agent_type == "order"
    assert any(getattr(e, "tool", None) == "get_order_details" for e in events)
    assert message.tools_used == ["get_order_details"]
    assert "Current user ID: user_demo" in provider.turns[0].system


def test_support_agent_gets_conversation_id(chat_service, provider):
    conversation = asyncio.run(chat_service.create_conversation("user_1"))
    asyncio.run(chat_service.send_message(conversation.id, "user_1", "How do I reset my password?"))
    assert f"Conversation ID: {conversation.id}" in provider.turns[0].system


def test_history_includes_previous_turns(chat_service, provider):
    conversation = asyncio.run(chat_service.create_conversation("user_1"))
    asyncio.run(chat_service.send_message(conversation.id, "user_1", "first question"))
    asyncio.run(chat_service.send_message(conversation.id, "user_1", "second question"))

    contents = [m["content"] for m in provider.turns[-1].messages]
    assert contents[0] == "first question"
    assert contents[1] == provider.default_reply
    assert contents[-1] == "second question"
    assert "assistant: Happy to help." in provider.route_prompts[-1]


def test_missing_conversation_records_nothing(seeded, provider):
    service = build_chat_service(seeded, provider)
    missing = uuid4()

    def assistant_messages():
        with seeded() as session:
            return session.scalar(
                select(func.count(Message.id)).where(Message.role == "assistant")
            )

    before = assistant_messages()
    with pytest.raises(ConversationNotFoundError):
        asyncio.run(service.send_message(missing, "user_1", "hello"))

    assert assistant_messages() == before
    assert _message_count(seeded, missing) == 0
    assert provider.route_prompts == []
    assert provider.turns == []


def test_title_is_truncated_and_kept(chat_service):
    conversation = asyncio.run(chat_service.create_conversation("user_1"))
    long_message = "x" * 100
    asyncio.run(chat_service.send_message(conversation.id, "user_1", long_message))
    asyncio.run(chat_service.send_message(conversation.id, "user_1", "another one"))

    detail = asyncio.run(chat_service.get_conversation_with_messages(conversation.id))
    assert detail.conversation.title == "x" * TITLE_MAX_LENGTH
    assert detail.conversation.updated_at >= detail.conversation.created_at


def test_provider_failure_keeps_user_message(chat_service, provider, seeded):
    provider.rounds.append(ProviderUnavailableError())
    conversation = asyncio.run(chat_service.create_conversation("user_1"))

    with pytest.raises(ProviderUnavailableError):
        asyncio.run(chat_service.send_message(conversation.id, "user_1", "help please"))

    messages = SqlAlchemyConversationRepository(seeded).list_messages(conversation.id)
    assert [m.role for m in messages] == ["user"]
    assert messages[0].content == "help please"


def test_finalize_is_single_use(chat_service):
    conversation = asyncio.run(chat_service.create_conversation("user_1"))
    reply = asyncio.run(chat_service.stream_message(conversation.id, "user_1", "hi there"))
    _drain(reply)
    assert reply.finalized
    with pytest.raises(RuntimeError):
        asyncio.run(reply.finalize())


def test_unregistered_category_uses_fallback_reply(seeded, provider):
    service = build_chat_service(seeded, provider)
    service._responders.pop("support")
    conversation = asyncio.run(service.create_conversation("user_1"))

    result = asyncio.run(service.send_message(conversation.id, "user_1", "hello"))
    assert result.agent_message.content == FALLBACK_REPLY
    assert provider.turns == []


def test_delete_and_listing(chat_service, seeded):
    first = asyncio.run(chat_service.create_conversation("user_9"))
    second = asyncio.run(chat_service.create_conversation("user_9"))
    asyncio.run(chat_service.send_message(first.id, "user_9", "bump me"))

    listing = asyncio.run(chat_service.list_conversations("user_9"))
    assert [c.id for c in listing] == [first.id, second.id]
    assert len(listing[0].messages) == 1
    assert listing[0].messages[0].role == "assistant"
    assert listing[1].messages == []

    asyncio.run(chat_service.delete_conversation(first.id))
    with pytest.raises(ConversationNotFoundError):
        asyncio.run(chat_service.get_conversation_with_messages(first.id))
    with pytest.raises(ConversationNotFoundError):
        asyncio.run(chat_service.delete_conversation(first.id))
    assert _message_count(seeded, first.id) == 0
