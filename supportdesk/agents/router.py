"""Classifier deciding which specialist agent handles a message.

The provider is asked for a JSON object ``{"agentType", "reason",
"confidence"}``. Whatever comes back, :meth:`QueryRouter.route` returns a valid
:class:`RoutingDecision`; unusable output and provider failures degrade to the
``support`` agent with ``low`` confidence.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping, Sequence

from pydantic import ValidationError

from .prompts import PromptTemplateStore
from .providers import ReasoningProvider
from .responses import ResponseParameterStore
from .schemas import AGENT_TYPES, RoutingDecision

logger = logging.getLogger(__name__)

FALLBACK_CATEGORY = "support"
FALLBACK_REASON = "Fallback: routing error, defaulting to support"

# History entries included in the routing prompt.
ROUTING_CONTEXT_MESSAGES = 3

_CODE_FENCE = re.compile(r"```(?:json)?\s*|\s*```", re.IGNORECASE)
_ORDER_REFERENCE = re.compile(r"\b(?:ORD|TRK)-\d+\b", re.IGNORECASE)
_CONFIDENCE_LEVELS = ("high", "medium", "low")


def fallback_decision(reason: str = FALLBACK_REASON) -> RoutingDecision:
    return RoutingDecision(category=FALLBACK_CATEGORY, reason=reason, confidence="low")


def build_routing_prompt(
    message: str, history: Sequence[Mapping[str, str]] = ()
) -> str:
    """Render the last few history entries and the new message for the router."""

    recent = "\n".join(
        f"{entry['role']}: {entry['content']}"
        for entry in list(history)[-ROUTING_CONTEXT_MESSAGES:]
    )
    if not recent:
        return message
    return f"Recent conversation:\n{recent}\n\nNew message: {message}"


def references_order(message: str) -> bool:
    """Return ``True`` when ``message`` contains an order or tracking number."""

    return _ORDER_REFERENCE.search(message) is not None


def parse_decision(raw: str) -> RoutingDecision:
    """Parse provider output into a decision.

    Raises:
        ValueError: when the output is not a JSON object.
    """

    cleaned = _CODE_FENCE.sub("", raw.strip()).strip()
    payload = json.loads(cleaned)
    if not isinstance(payload, dict):
        raise ValueError("routing output is not a JSON object")

    reason = str(payload.get("reason") or "").strip() or "No reason given"
    confidence = str(payload.get("confidence") or "").lower()
    if confidence not in _CONFIDENCE_LEVELS:
        confidence = "medium"

    category = str(payload.get("agentType") or "").lower()
    if category not in AGENT_TYPES:
        return RoutingDecision(
            category=FALLBACK_CATEGORY,
            reason=f"Fallback: unrecognised agent type {category!r} ({reason})",
            confidence="low",
        )
    return RoutingDecision(category=category, reason=reason, confidence=confidence)


class QueryRouter:
    """Route inbound messages to an agent category via the reasoning provider."""

    def __init__(
        self,
        provider: ReasoningProvider,
        *,
        prompt_store: PromptTemplateStore | None = None,
        response_store: ResponseParameterStore | None = None,
    ) -> None:
        self._provider = provider
        self._prompts = prompt_store or PromptTemplateStore()
        self._params = response_store or ResponseParameterStore()

    async def route(
        self, message: str, history: Sequence[Mapping[str, str]] = ()
    ) -> RoutingDecision:
        try:
            raw = await self._provider.generate_text(
                system=self._prompts.resolve("router"),
                prompt=build_routing_prompt(message, history),
                params=self._params.merge("router"),
            )
            decision = parse_decision(raw)
        except (ValueError, ValidationError) as exc:
            logger.warning("Unusable routing output, falling back: %s", exc)
            decision = fallback_decision()
        except Exception as exc:
            logger.warning("Routing call failed, falling back: %s", exc)
            decision = fallback_decision()

        if decision.category == "billing" and references_order(message):
            decision = RoutingDecision(
                category="order",
                reason="Message references an order or tracking number",
                confidence=decision.confidence,
            )

        logger.info(
            "Routed message to %s (confidence=%s): %s",
            decision.category,
            decision.confidence,
            decision.reason,
        )
        return decision


async def route_query(
    provider: ReasoningProvider,
    message: str,
    history: Sequence[Mapping[str, str]] = (),
) -> RoutingDecision:
    """Convenience wrapper around :class:`QueryRouter` with default stores."""

    return await QueryRouter(provider).route(message, history)
