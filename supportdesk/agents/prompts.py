"""System prompts for the router and the specialist agents."""

from __future__ import annotations

import re
from collections.abc import Mapping

from langdetect import DetectorFactory, LangDetectException, detect_langs

# langdetect is probabilistic; pin the seed so detection is repeatable.
DetectorFactory.seed = 0

# Shorter or less certain messages get the generic same-language instruction.
MIN_DETECT_WORDS = 4
MIN_DETECT_PROBABILITY = 0.9
SAME_LANGUAGE_INSTRUCTION = "Reply in the same language as the customer."

_WORD = re.compile(r"[^\W\d_]{2,}")

ROUTER_PROMPT = """You are a routing agent for a customer support system. Analyze the customer message and decide which specialist agent should handle it.

Agents:
- "order": Order status, tracking numbers, delivery, order modifications, cancellations
- "billing": Payments, charges, invoices, refunds, receipts, subscriptions
- "support": General FAQs, how-to, account help, product info, troubleshooting, everything else

Rules:
1. Message mentions tracking numbers or order numbers (like ORD-001) -> "order"
2. Message mentions payment, refund, invoice, charge, subscription, billing -> "billing"
3. Everything else -> "support"

Respond ONLY with valid JSON:
{"agentType": "order|billing|support", "reason": "brief reason", "confidence": "high|medium|low"}"""

ORDER_PROMPT = """You are a helpful order support specialist. You help customers with order status, delivery tracking, and order-related questions.

Capabilities:
- Look up specific orders by order number (e.g., ORD-001)
- Track delivery with tracking numbers (e.g., TRK-9876543210)
- View customer order history

Guidelines:
- Be friendly and empathetic
- If you need an order number or tracking number, ask for it politely
- Format order info clearly
- Keep responses concise but complete"""

BILLING_PROMPT = """You are a helpful billing and payments specialist. You assist customers with payment questions, invoice requests, refund status, and subscription management.

Capabilities:
- Look up invoices and payment receipts
- Check refund status
- Review full billing history

Guidelines:
- Be understanding, billing issues can be stressful
- Never reveal full card numbers
- Completed refunds take 5-10 business days to appear in bank accounts
- Be transparent about what you can and cannot do"""

SUPPORT_PROMPT = """You are a friendly and knowledgeable customer support specialist. You help customers with general questions, FAQs, account issues, product questions, and troubleshooting.

Capabilities:
- Search the knowledge base for answers
- Access conversation history for context
- Provide support topic information

Guidelines:
- Be warm, friendly, and patient
- Always search the FAQ before answering general questions
- Break down solutions step by step for complex issues
- Never make up policies; use only FAQ information or general knowledge
- End with an offer to help with anything else"""


def detect_language(text: str) -> str | None:
    """Return the language code of ``text`` when detection is confident enough."""

    if len(_WORD.findall(text)) < MIN_DETECT_WORDS:
        return None
    try:
        candidates = detect_langs(text)
    except LangDetectException:
        return None
    best = candidates[0] if candidates else None
    if best is None or best.prob < MIN_DETECT_PROBABILITY:
        return None
    return best.lang


def language_instruction(text: str, override: str | None = None) -> str:
    """Return the reply-language line appended to agent prompts."""

    if override:
        return f"Reply in {override}."
    lang = detect_language(text)
    if lang:
        return f"Reply in {lang}."
    return SAME_LANGUAGE_INSTRUCTION


class PromptTemplateStore:
    """Resolve system prompts by role (``router`` or an agent type)."""

    _DEFAULT_TEMPLATES: Mapping[str, str] = {
        "router": ROUTER_PROMPT,
        "order": ORDER_PROMPT,
        "billing": BILLING_PROMPT,
        "support": SUPPORT_PROMPT,
    }

    def __init__(self, extra_templates: Mapping[str, str] | None = None):
        self._templates: dict[str, str] = dict(self._DEFAULT_TEMPLATES)
        if extra_templates:
            self._templates.update({k.lower(): v for k, v in extra_templates.items()})

    def resolve(self, role: str) -> str:
        try:
            return self._templates[role.lower()]
        except KeyError:
            return self._templates["support"]

    def render(
        self,
        role: str,
        *,
        template: str | None = None,
        context_label: str | None = None,
        context_value: str | None = None,
        language: str | None = None,
    ) -> str:
        """Return the system prompt with the disambiguation context appended."""

        prompt = template or self.resolve(role)
        if context_label and context_value:
            prompt = f"{prompt}\n\n{context_label}: {context_value}"
        if language:
            prompt = f"{prompt}\n{language}"
        return prompt
