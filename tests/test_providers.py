import asyncio
from types import SimpleNamespace

import httpx
import openai
import pytest

from supportdesk.agents.providers import (
    OpenAIReasoningProvider,
    ProviderRegistry,
    TextDelta,
    ToolCallRequest,
    UnavailableProvider,
)
from supportdesk.core import deps
from supportdesk.errors import ProviderUnavailableError


def _chunk(content=None, tool_calls=None):
    delta = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta)])


def _call_fragment(index, call_id=None, name=None, arguments=None):
    return SimpleNamespace(
        index=index,
        id=call_id,
        function=SimpleNamespace(name=name, arguments=arguments),
    )


class FakeCompletions:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.requests = []

    async def create(self, **request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if request.get("stream"):
            return self._stream()
        return self.result

    async def _stream(self):
        for chunk in self.result:
            yield chunk


def _provider(completions):
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return OpenAIReasoningProvider(client, router_model="router-m", agent_model="agent-m")


async def _events(provider, **kwargs):
    return [
        event
        async for event in provider.stream_turn(
            system="sys", messages=[{"role": "user", "content": "hi"}], **kwargs
        )
    ]


def test_stream_turn_assembles_tool_calls():
    completions = FakeCompletions(
        result=[
            _chunk(content="Let me check"),
            _chunk(tool_calls=[_call_fragment(0, "call_a", "get_order_", '{"ident')]),
            _chunk(tool_calls=[_call_fragment(0, None, "details", 'ifier": "ORD-001"}')]),
            _chunk(tool_calls=[_call_fragment(1, "call_b", "list_user_orders", None)]),
            SimpleNamespace(choices=[]),
        ]
    )
    tools = [{"type": "function", "function": {"name": "get_order_details"}}]
    events = asyncio.run(_events(_provider(completions), tools=tools, tool_choice="none"))

    assert events == [
        TextDelta("Let me check"),
        ToolCallRequest("call_a", "get_order_details", '{"identifier": "ORD-001"}'),
        ToolCallRequest("call_b", "list_user_orders", "{}"),
    ]
    request = completions.requests[0]
    assert request["model"] == "agent-m"
    assert request["messages"][0] == {"role": "system", "content": "sys"}
    assert request["tool_choice"] == "none"


def test_stream_turn_without_tools_omits_tool_choice():
    completions = FakeCompletions(result=[_chunk(content="ok")])
    asyncio.run(_events(_provider(completions)))
    assert "tools" not in completions.requests[0]
    assert "tool_choice" not in completions.requests[0]


def test_openai_errors_become_provider_unavailable():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    error = openai.APIConnectionError(request=request)
    provider = _provider(FakeCompletions(error=error))

    with pytest.raises(ProviderUnavailableError):
        asyncio.run(_events(provider))
    with pytest.raises(ProviderUnavailableError):
        asyncio.run(provider.generate_text(system="s", prompt="p"))


def test_generate_text_uses_router_model():
    message = SimpleNamespace(content='{"agentType": "order"}')
    completion = SimpleNamespace(choices=[SimpleNamespace(message=message)])
    completions = FakeCompletions(result=completion)
    text = asyncio.run(
        _provider(completions).generate_text(system="s", prompt="p", params={"temperature": 0})
    )
    assert text == '{"agentType": "order"}'
    assert completions.requests[0]["model"] == "router-m"
    assert completions.requests[0]["temperature"] == 0


def test_unavailable_provider_raises():
    provider = UnavailableProvider()
    with pytest.raises(ProviderUnavailableError):
        asyncio.run(provider.generate_text(system="s", prompt="p"))
    with pytest.raises(ProviderUnavailableError):
        asyncio.run(_events(provider))


def test_registry_resolves_environment(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("OPENAI_BASE_URL", "http://localhost:9999/v1")
    credentials = ProviderRegistry().get_credentials()
    assert credentials.is_configured
    assert credentials.extras == {"base_url": "http://localhost:9999/v1"}

    monkeypatch.delenv("OPENAI_API_KEY")
    assert not ProviderRegistry().is_available()
    assert ProviderRegistry({"openai": {"api_key": "x"}}).is_available()


def test_missing_key_wires_unavailable_provider(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    deps.reset_dependencies()
    try:
        assert isinstance(deps.get_provider(), UnavailableProvider)
    finally:
        deps.reset_dependencies()
