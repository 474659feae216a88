import copy
import pathlib
import sys
from dataclasses import dataclass, field
from typing import Any

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from seed import seed_demo_data
from supportdesk.agents.providers import TextDelta, ToolCallRequest
from supportdesk.config import reset_settings_cache
from supportdesk.core.deps import build_chat_service, reset_dependencies
from supportdesk.core.rate_limit import reset_rate_counter
from supportdesk.models.session import create_schema, get_sessionmaker


@dataclass
class TurnCall:
    """One ``stream_turn`` invocation as seen by the fake provider."""

    system: str
    messages: list[dict[str, Any]]
    tool_names: list[str]
    tool_choice: str


@dataclass
class ScriptedProvider:
    """Reasoning provider fake replaying canned classifier output and rounds.

    ``routes`` entries are returned by ``generate_text`` in order (exceptions
    are raised). ``rounds`` entries are lists of events yielded by successive
    ``stream_turn`` calls.
    """

    routes: list[Any] = field(default_factory=list)
    rounds: list[Any] = field(default_factory=list)
    default_route: str = '{"agentType": "support", "reason": "General question", "confidence": "high"}'
    default_reply: str = "Happy to help."
    route_prompts: list[str] = field(default_factory=list)
    turns: list[TurnCall] = field(default_factory=list)

    async def generate_text(self, *, system, prompt, params=None):
        self.route_prompts.append(prompt)
        item = self.routes.pop(0) if self.routes else self.default_route
        if isinstance(item, Exception):
            raise item
        return item

    async def stream_turn(self, *, system, messages, tools=None, tool_choice="auto", params=None):
        self.turns.append(
            TurnCall(
                system=system,
                messages=copy.deepcopy(list(messages)),
                tool_names=[t["function"]["name"] for t in tools or []],
                tool_choice=tool_choice,
            )
        )
        events = self.rounds.pop(0) if self.rounds else [TextDelta(self.default_reply)]
        if isinstance(events, Exception):
            raise events
        for event in events:
            yield event


def route(agent_type: str, reason: str = "test routing", confidence: str = "high") -> str:
    return (
        f'{{"agentType": "{agent_type}", "reason": "{reason}", '
        f'"confidence": "{confidence}"}}'
    )


def tool_call(name: str, arguments: str = "{}", call_id: str = "call_1") -> ToolCallRequest:
    return ToolCallRequest(call_id=call_id, name=name, arguments=arguments)


def text(*chunks: str) -> list[TextDelta]:
    return [TextDelta(chunk) for chunk in chunks]


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path):
    monkeypatch.delenv("OPENAI_LANG", raising=False)
    monkeypatch.delenv("APP_ENV", raising=False)
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{tmp_path / 'default.db'}")
    reset_settings_cache()
    reset_rate_counter()
    reset_dependencies()
    yield
    reset_settings_cache()
    reset_rate_counter()
    reset_dependencies()


@pytest.fixture
def session_factory(tmp_path):
    factory = get_sessionmaker(f"sqlite+pysqlite:///{tmp_path / 'supportdesk.db'}")
    create_schema(factory)
    yield factory
    factory.kw["bind"].dispose()


@pytest.fixture
def seeded(session_factory):
    seed_demo_data(session_factory)
    return session_factory


@pytest.fixture
def provider():
    return ScriptedProvider()


@pytest.fixture
def chat_service(seeded, provider):
    return build_chat_service(seeded, provider)

