"""Generic tool-using specialist agent.

A :class:`Responder` is configured with a system prompt, a tool set and a
round cap. Each round streams one provider turn; any tool calls requested in
that round are executed and their results fed back before the next round. The
last allowed round disables tools so the provider has to answer in text.

:meth:`Responder.stream` is the primary operation and returns a
:class:`ResponderStream` of :class:`TextDelta` / :class:`ToolInvoked` events.
Once the stream is drained, :meth:`ResponderStream.finalize` returns the
accumulated :class:`ResponderResult`. :meth:`Responder.respond` is a thin
blocking wrapper that drains the stream itself.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, Union

from ..tools.base import Tool, ToolSet
from .prompts import PromptTemplateStore, language_instruction
from .providers import ReasoningProvider, TextDelta, ToolCallRequest
from .responses import ResponseParameterStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolInvoked:
    tool: str


ResponderEvent = Union[TextDelta, ToolInvoked]


@dataclass(frozen=True)
class ResponderResult:
    text: str
    tools_used: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ResponderConfig:
    """Everything that distinguishes one specialist from another."""

    name: str
    tools: tuple[Tool, ...]
    round_cap: int
    context_label: str
    context_source: Literal["user", "conversation"] = "user"
    system_prompt: str | None = None


class ResponderStream:
    """Async iterable of responder events with a deferred result.

    The stream can be iterated once. :meth:`finalize` may only be awaited after
    the iteration finished normally.
    """

    def __init__(self, events: AsyncIterator[ResponderEvent]) -> None:
        self._events = events
        self._text: list[str] = []
        self._tools: list[str] = []
        self._drained = False
        self._iterator = self._collect()

    def __aiter__(self) -> AsyncIterator[ResponderEvent]:
        return self._iterator

    async def _collect(self) -> AsyncIterator[ResponderEvent]:
        async for event in self._events:
            if isinstance(event, TextDelta):
                self._text.append(event.content)
            elif isinstance(event, ToolInvoked):
                self._tools.append(event.tool)
            yield event
        self._drained = True

    @property
    def drained(self) -> bool:
        return self._drained

    async def finalize(self) -> ResponderResult:
        if not self._drained:
            raise RuntimeError("Responder stream must be fully consumed before finalize()")
        return ResponderResult(text="".join(self._text), tools_used=list(self._tools))

    async def aclose(self) -> None:
        await self._iterator.aclose()
        close = getattr(self._events, "aclose", None)
        if close is not None:
            await close()


def static_stream(text: str) -> ResponderStream:
    """A stream that emits ``text`` once without calling any provider."""

    async def _events() -> AsyncIterator[ResponderEvent]:
        yield TextDelta(text)

    return ResponderStream(_events())


class Responder:
    """One specialist agent: prompt + tools + round cap over a provider."""

    def __init__(
        self,
        config: ResponderConfig,
        provider: ReasoningProvider,
        *,
        prompt_store: PromptTemplateStore | None = None,
        response_store: ResponseParameterStore | None = None,
        reply_language: str | None = None,
        detect_language: bool = True,
    ) -> None:
        self.config = config
        self._provider = provider
        self._prompts = prompt_store or PromptTemplateStore()
        self._params = response_store or ResponseParameterStore()
        self._tools = ToolSet(list(config.tools))
        self._reply_language = reply_language
        self._detect_language = detect_language

    @property
    def tool_names(self) -> list[str]:
        return self._tools.names()

    def system_prompt(self, message: str, context_value: str) -> str:
        language = None
        if self._reply_language or self._detect_language:
            language = language_instruction(message, self._reply_language)
        return self._prompts.render(
            self.config.name,
            template=self.config.system_prompt,
            context_label=self.config.context_label,
            context_value=context_value,
            language=language,
        )

    def stream(
        self,
        message: str,
        history: Sequence[Mapping[str, str]],
        context_value: str,
    ) -> ResponderStream:
        return ResponderStream(self._run(message, history, context_value))

    async def respond(
        self,
        message: str,
        history: Sequence[Mapping[str, str]],
        context_value: str,
    ) -> ResponderResult:
        stream = self.stream(message, history, context_value)
        async for _ in stream:
            pass
        return await stream.finalize()

    async def _run(
        self,
        message: str,
        history: Sequence[Mapping[str, str]],
        context_value: str,
    ) -> AsyncIterator[ResponderEvent]:
        system = self.system_prompt(message, context_value)
        messages: list[dict[str, Any]] = [
            {"role": entry["role"], "content": entry["content"]} for entry in history
        ]
        messages.append({"role": "user", "content": message})
        params = self._params.merge(self.config.name)
        schemas = self._tools.schemas() or None

        for round_number in range(1, self.config.round_cap + 1):
            final_round = round_number == self.config.round_cap
            text_parts: list[str] = []
            calls: list[ToolCallRequest] = []

            async for item in self._provider.stream_turn(
                system=system,
                messages=messages,
                tools=schemas,
                tool_choice="none" if final_round else "auto",
                params=params,
            ):
                if isinstance(item, TextDelta):
                    text_parts.append(item.content)
                    yield item
                elif isinstance(item, ToolCallRequest):
                    calls.append(item)

            if not calls:
                return
            if final_round:
                logger.warning(
                    "%s agent requested tools after its last round; ignoring %d call(s)",
                    self.config.name,
                    len(calls),
                )
                return

            messages.append(
                {
                    "role": "assistant",
                    "content": "".join(text_parts) or None,
                    "tool_calls": [
                        {
                            "id": call.call_id,
                            "type": "function",
                            "function": {"name": call.name, "arguments": call.arguments},
                        }
                        for call in calls
                    ],
                }
            )
            for call in calls:
                yield ToolInvoked(call.name)
                result = await self._tools.invoke(call.name, call.arguments)
                logger.debug("%s -> found=%s", call.name, result.get("found"))
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": call.call_id,
                        "content": json.dumps(result, default=str),
                    }
                )
