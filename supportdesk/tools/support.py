"""Knowledge-base and conversation-context lookups for the support agent."""

from __future__ import annotations

from functools import partial
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ..conversations.repository import ConversationRepository
from .base import Tool, ToolResult, not_found
from .store import LookupStore

SUPPORT_CATEGORIES = [
    {"name": "Shipping & Delivery", "topics": ["Shipping times", "International shipping", "Tracking"]},
    {"name": "Returns & Refunds", "topics": ["Return policy", "How to return", "Refund timeline"]},
    {"name": "Account Management", "topics": ["Password reset", "Update info", "Privacy settings"]},
    {"name": "Product Information", "topics": ["Warranty", "Compatibility", "Specifications"]},
    {"name": "Order Issues", "topics": ["Wrong item", "Damaged package", "Missing items"]},
]

DEFAULT_CONTEXT_MESSAGES = 10


class SearchFaqArgs(BaseModel):
    query: str = Field(..., min_length=1, description="The search query or topic to look up")
    category: Optional[Literal["shipping", "returns", "account", "product", "all"]] = None


class ConversationContextArgs(BaseModel):
    conversation_id: str = Field(..., min_length=1, description="The current conversation ID")
    limit: int = Field(
        DEFAULT_CONTEXT_MESSAGES,
        ge=1,
        le=50,
        description="Number of recent messages to get (default 10)",
    )


class NoArgs(BaseModel):
    pass


def search_faq(store: LookupStore, args: SearchFaqArgs) -> ToolResult:
    faqs = store.search_faqs(args.query, args.category)
    if not faqs:
        return not_found(f'No FAQ found for "{args.query}". Answering from general knowledge.')
    return {
        "found": True,
        "results": [
            {"category": faq.category, "question": faq.question, "answer": faq.answer}
            for faq in faqs
        ],
    }


def get_conversation_context(
    conversations: ConversationRepository, args: ConversationContextArgs
) -> ToolResult:
    empty = not_found("No previous messages in this conversation.")
    try:
        conversation_id = UUID(args.conversation_id)
    except ValueError:
        return empty
    messages = conversations.recent_messages(conversation_id, args.limit)
    if not messages:
        return empty
    return {
        "found": True,
        "messageCount": len(messages),
        "messages": [
            {"role": m.role, "content": m.content, "agentType": m.agent_type or "user"}
            for m in messages
        ],
    }


def get_support_categories(args: NoArgs) -> ToolResult:
    return {
        "found": True,
        "categories": [dict(entry, topics=list(entry["topics"])) for entry in SUPPORT_CATEGORIES],
    }


def build_support_tools(
    store: LookupStore, conversations: ConversationRepository
) -> list[Tool]:
    return [
        Tool(
            "search_faq",
            "Search the knowledge base for answers to common customer questions.",
            SearchFaqArgs,
            partial(search_faq, store),
            failure_message="Failed to search knowledge base.",
        ),
        Tool(
            "get_conversation_context",
            "Retrieve previous messages in this conversation for context.",
            ConversationContextArgs,
            partial(get_conversation_context, conversations),
            failure_message="Failed to retrieve conversation history.",
        ),
        Tool(
            "get_support_categories",
            "Get a list of available support topics we can help with.",
            NoArgs,
            get_support_categories,
            failure_message="Failed to load support categories.",
        ),
    ]
