"""Routing and specialist agents."""

from .catalog import AGENTS, CAPABILITIES, build_responders
from .responder import Responder, ResponderConfig, ResponderResult, ResponderStream, ToolInvoked
from .router import QueryRouter, route_query

__all__ = [
    "AGENTS",
    "CAPABILITIES",
    "QueryRouter",
    "Responder",
    "ResponderConfig",
    "ResponderResult",
    "ResponderStream",
    "ToolInvoked",
    "build_responders",
    "route_query",
]
