"""Agent catalog and responder wiring."""

from __future__ import annotations

from ..conversations.repository import ConversationRepository
from ..tools import LookupStore, build_billing_tools, build_order_tools, build_support_tools
from .prompts import PromptTemplateStore
from .providers import ReasoningProvider
from .responder import Responder, ResponderConfig
from .responses import ResponseParameterStore
from .schemas import AgentCapability, AgentInfo

AGENTS: list[AgentInfo] = [
    AgentInfo(
        type="support",
        name="Support Agent",
        description="Handles general inquiries, FAQs, and troubleshooting",
    ),
    AgentInfo(
        type="order",
        name="Order Agent",
        description="Specializes in order status, tracking, and order management",
    ),
    AgentInfo(
        type="billing",
        name="Billing Agent",
        description="Handles payments, invoices, refunds, and subscription queries",
    ),
]

CAPABILITIES: dict[str, AgentCapability] = {
    "support": AgentCapability(
        type="support",
        name="Support Agent",
        description="General customer support specialist with access to knowledge base",
        tools=["search_faq", "get_conversation_context", "get_support_categories"],
        examples=[
            "How do I return a product?",
            "What is your shipping policy?",
            "How do I reset my password?",
            "Do you offer international shipping?",
        ],
    ),
    "order": AgentCapability(
        type="order",
        name="Order Agent",
        description="Order management specialist with live database access",
        tools=["get_order_details", "check_delivery_status", "list_user_orders"],
        examples=[
            "Where is my order ORD-001?",
            "What's the status of tracking number TRK-9876543210?",
            "Show me all my orders",
            "Has my order been shipped?",
        ],
    ),
    "billing": AgentCapability(
        type="billing",
        name="Billing Agent",
        description="Billing and payments specialist with invoice access",
        tools=["get_invoice_details", "check_refund_status", "list_user_payments"],
        examples=[
            "I need an invoice for my last purchase",
            "What's the status of my refund?",
            "Show me my payment history",
            "I was charged incorrectly",
        ],
    ),
}

ROUND_CAPS = {"order": 5, "billing": 5, "support": 4}


def responder_configs(
    store: LookupStore, conversations: ConversationRepository
) -> dict[str, ResponderConfig]:
    """Return the three specialist configurations keyed by agent type."""

    return {
        "order": ResponderConfig(
            name="order",
            tools=tuple(build_order_tools(store)),
            round_cap=ROUND_CAPS["order"],
            context_label="Current user ID",
            context_source="user",
        ),
        "billing": ResponderConfig(
            name="billing",
            tools=tuple(build_billing_tools(store)),
            round_cap=ROUND_CAPS["billing"],
            context_label="Current user ID",
            context_source="user",
        ),
        "support": ResponderConfig(
            name="support",
            tools=tuple(build_support_tools(store, conversations)),
            round_cap=ROUND_CAPS["support"],
            context_label="Conversation ID",
            context_source="conversation",
        ),
    }


def build_responders(
    provider: ReasoningProvider,
    store: LookupStore,
    conversations: ConversationRepository,
    *,
    prompt_store: PromptTemplateStore | None = None,
    response_store: ResponseParameterStore | None = None,
    reply_language: str | None = None,
    detect_language: bool = True,
) -> dict[str, Responder]:
    prompt_store = prompt_store or PromptTemplateStore()
    response_store = response_store or ResponseParameterStore()
    return {
        agent_type: Responder(
            config,
            provider,
            prompt_store=prompt_store,
            response_store=response_store,
            reply_language=reply_language,
            detect_language=detect_language,
        )
        for agent_type, config in responder_configs(store, conversations).items()
    }
