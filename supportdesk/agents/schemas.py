"""Pydantic schemas for routing decisions and the agent catalog API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from ..conversations.schemas import CamelModel

AgentType = Literal["order", "billing", "support"]
Confidence = Literal["high", "medium", "low"]

AGENT_TYPES: tuple[str, ...] = ("order", "billing", "support")


class RoutingDecision(BaseModel):
    """Classifier output; only category and reason outlive the routing step."""

    category: AgentType
    reason: str
    confidence: Confidence = "medium"


class AgentInfo(CamelModel):
    type: AgentType
    name: str
    description: str
    is_active: bool = True


class AgentCapability(CamelModel):
    type: AgentType
    name: str
    description: str
    tools: list[str] = Field(default_factory=list)
    examples: list[str] = Field(default_factory=list)
