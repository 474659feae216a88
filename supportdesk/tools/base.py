"""Tool abstraction shared by the specialist agents.

A :class:`Tool` couples a pydantic argument model with a synchronous handler.
:meth:`Tool.invoke` is the only entry point the responder uses and it never
raises: argument errors and handler failures both come back as a
``found=False`` record the model can narrate to the customer.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

ToolResult = dict[str, Any]


def not_found(message: str) -> ToolResult:
    return {"found": False, "message": message}


class Tool:
    """A named, read-only lookup exposed to the reasoning provider."""

    def __init__(
        self,
        name: str,
        description: str,
        args_model: type[BaseModel],
        handler: Callable[[Any], ToolResult],
        *,
        failure_message: str,
    ) -> None:
        self.name = name
        self.description = description
        self.args_model = args_model
        self._handler = handler
        self.failure_message = failure_message

    def __repr__(self) -> str:
        return f"Tool({self.name!r})"

    def to_openai_schema(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.args_model.model_json_schema(),
            },
        }

    def parse_arguments(self, raw: str | Mapping[str, Any] | None) -> BaseModel:
        if raw is None or raw == "":
            return self.args_model.model_validate({})
        if isinstance(raw, Mapping):
            return self.args_model.model_validate(dict(raw))
        return self.args_model.model_validate_json(raw)

    async def invoke(self, raw: str | Mapping[str, Any] | None) -> ToolResult:
        try:
            args = self.parse_arguments(raw)
        except ValidationError as exc:
            logger.info("Rejected arguments for %s: %s", self.name, exc)
            return not_found(f"Invalid arguments for {self.name}.")
        try:
            return await asyncio.to_thread(self._handler, args)
        except Exception:
            logger.exception("Tool %s failed", self.name)
            return not_found(self.failure_message)


class ToolSet:
    """Ordered, name-indexed collection of tools bound to one agent."""

    def __init__(self, tools: list[Tool]) -> None:
        self._tools = {tool.name: tool for tool in tools}

    def __iter__(self):
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def names(self) -> list[str]:
        return list(self._tools)

    def schemas(self) -> list[dict[str, Any]]:
        return [tool.to_openai_schema() for tool in self._tools.values()]

    async def invoke(self, name: str, raw: str | Mapping[str, Any] | None) -> ToolResult:
        tool = self._tools.get(name)
        if tool is None:
            return not_found(f"Unknown tool {name!r}.")
        return await tool.invoke(raw)
