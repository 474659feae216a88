"""Reasoning provider adapters and credential helpers.

The rest of the package talks to the language model through the
:class:`ReasoningProvider` protocol:

- ``generate_text`` for single-shot completions (used by the classifier).
- ``stream_turn`` for one tool-enabled round, yielding :class:`TextDelta`
  items as tokens arrive and :class:`ToolCallRequest` items once the round's
  tool calls are fully assembled.

:class:`OpenAIReasoningProvider` implements the protocol on top of the
``openai`` async client; tests substitute a scripted fake.
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, Union

import openai
from openai import AsyncOpenAI

from ..errors import ProviderUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextDelta:
    content: str


@dataclass(frozen=True)
class ToolCallRequest:
    call_id: str
    name: str
    arguments: str = "{}"


ProviderEvent = Union[TextDelta, ToolCallRequest]


class ReasoningProvider(Protocol):
    async def generate_text(
        self,
        *,
        system: str,
        prompt: str,
        params: Mapping[str, Any] | None = None,
    ) -> str: ...

    def stream_turn(
        self,
        *,
        system: str,
        messages: Sequence[Mapping[str, Any]],
        tools: Sequence[Mapping[str, Any]] | None = None,
        tool_choice: str = "auto",
        params: Mapping[str, Any] | None = None,
    ) -> AsyncIterator[ProviderEvent]: ...


@dataclass(frozen=True)
class ProviderCredentials:
    """Container for credentials resolved for a provider."""

    provider: str
    api_key: str | None
    extras: dict[str, str] = field(default_factory=dict)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


class ProviderRegistry:
    """Resolve provider credentials from environment or explicit overrides."""

    _DEFAULT_ENV_MAP: Mapping[str, str] = {
        "openai": "OPENAI_API_KEY",
        "azure": "AZURE_OPENAI_API_KEY",
    }

    def __init__(self, overrides: Mapping[str, Mapping[str, str]] | None = None):
        self._overrides = {k.lower(): dict(v) for k, v in (overrides or {}).items()}

    def get_credentials(self, provider: str = "openai") -> ProviderCredentials:
        """Return credentials for ``provider``, preferring explicit overrides."""

        key = provider.lower()
        if key in self._overrides:
            override = self._overrides[key]
            return ProviderCredentials(
                provider=key,
                api_key=override.get("api_key"),
                extras={k: v for k, v in override.items() if k != "api_key"},
            )
        env_var = self._DEFAULT_ENV_MAP.get(key)
        api_key = os.getenv(env_var) if env_var else None
        extras: dict[str, str] = {}
        base_url = os.getenv("OPENAI_BASE_URL") if key == "openai" else os.getenv(
            "AZURE_OPENAI_ENDPOINT"
        )
        if base_url:
            extras["base_url"] = base_url
        return ProviderCredentials(provider=key, api_key=api_key or None, extras=extras)

    def is_available(self, provider: str = "openai") -> bool:
        return self.get_credentials(provider).is_configured

    def build_client(self, provider: str = "openai") -> AsyncOpenAI:
        credentials = self.get_credentials(provider)
        return AsyncOpenAI(
            api_key=credentials.api_key,
            base_url=credentials.extras.get("base_url"),
        )


class OpenAIReasoningProvider:
    """:class:`ReasoningProvider` backed by the OpenAI chat completions API."""

    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        router_model: str,
        agent_model: str,
    ) -> None:
        self._client = client
        self._router_model = router_model
        self._agent_model = agent_model

    async def generate_text(
        self,
        *,
        system: str,
        prompt: str,
        params: Mapping[str, Any] | None = None,
    ) -> str:
        try:
            completion = await self._client.chat.completions.create(
                model=self._router_model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                **dict(params or {}),
            )
        except openai.OpenAIError as exc:
            logger.warning("Completion request failed: %s", exc)
            raise ProviderUnavailableError() from exc
        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""

    async def stream_turn(
        self,
        *,
        system: str,
        messages: Sequence[Mapping[str, Any]],
        tools: Sequence[Mapping[str, Any]] | None = None,
        tool_choice: str = "auto",
        params: Mapping[str, Any] | None = None,
    ) -> AsyncIterator[ProviderEvent]:
        request: dict[str, Any] = {
            "model": self._agent_model,
            "messages": [{"role": "system", "content": system}, *messages],
            "stream": True,
            **dict(params or {}),
        }
        if tools:
            request["tools"] = list(tools)
            request["tool_choice"] = tool_choice

        # Tool call fragments arrive spread over chunks, keyed by index.
        pending: dict[int, dict[str, str]] = {}
        try:
            stream = await self._client.chat.completions.create(**request)
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                if delta.content:
                    yield TextDelta(delta.content)
                for call in delta.tool_calls or []:
                    slot = pending.setdefault(
                        call.index, {"id": "", "name": "", "arguments": ""}
                    )
                    if call.id:
                        slot["id"] = call.id
                    if call.function is not None:
                        slot["name"] += call.function.name or ""
                        slot["arguments"] += call.function.arguments or ""
        except openai.OpenAIError as exc:
            logger.warning("Streaming request failed: %s", exc)
            raise ProviderUnavailableError() from exc

        for index in sorted(pending):
            slot = pending[index]
            yield ToolCallRequest(
                call_id=slot["id"] or f"call_{index}",
                name=slot["name"],
                arguments=slot["arguments"] or "{}",
            )


class UnavailableProvider:
    """Stand-in used when no API key is configured; every call fails with 503."""

    async def generate_text(
        self,
        *,
        system: str,
        prompt: str,
        params: Mapping[str, Any] | None = None,
    ) -> str:
        raise ProviderUnavailableError()

    async def stream_turn(
        self,
        *,
        system: str,
        messages: Sequence[Mapping[str, Any]],
        tools: Sequence[Mapping[str, Any]] | None = None,
        tool_choice: str = "auto",
        params: Mapping[str, Any] | None = None,
    ) -> AsyncIterator[ProviderEvent]:
        raise ProviderUnavailableError()
        yield  # pragma: no cover - unreachable, marks an async generator


__all__ = [
    "OpenAIReasoningProvider",
    "ProviderCredentials",
    "ProviderEvent",
    "ProviderRegistry",
    "ReasoningProvider",
    "TextDelta",
    "ToolCallRequest",
    "UnavailableProvider",
]
