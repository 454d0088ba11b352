"""Shared fixtures: scripted provider streams shaped like OpenAI Responses API events."""

from types import SimpleNamespace
from typing import List

import pytest
from httpx import ASGITransport, AsyncClient

from tool_chat.app import create_app
from tool_chat.config import Settings
from tool_chat.registry import AgentConfig, AgentRegistry
from tool_chat.session_store import SessionStore
from tool_chat.tools import create_tool_registry


# =============================================================================
# PROVIDER EVENTS
# =============================================================================


def created():
    return SimpleNamespace(
        type="response.created", response=SimpleNamespace(status="in_progress")
    )


def text(delta: str):
    return SimpleNamespace(type="response.output_text.delta", delta=delta)


def tool_added(call_id: str, name: str):
    item = SimpleNamespace(type="function_call", call_id=call_id, name=name, arguments="")
    return SimpleNamespace(type="response.output_item.added", item=item)


def tool_args(delta: str):
    return SimpleNamespace(type="response.function_call_arguments.delta", delta=delta)


def tool_done(call_id: str, name: str):
    item = SimpleNamespace(type="function_call", call_id=call_id, name=name)
    return SimpleNamespace(type="response.output_item.done", item=item)


def message_done():
    return SimpleNamespace(
        type="response.output_item.done", item=SimpleNamespace(type="message")
    )


def completed():
    return SimpleNamespace(
        type="response.completed",
        response=SimpleNamespace(status="completed", incomplete_details=None),
    )


def incomplete(reason: str = "max_output_tokens"):
    return SimpleNamespace(
        type="response.incomplete",
        response=SimpleNamespace(
            status="incomplete", incomplete_details=SimpleNamespace(reason=reason)
        ),
    )


def text_round(*parts: str) -> list:
    """A round that only streams text."""
    return [created(), *(text(p) for p in parts), message_done(), completed()]


def tool_round(call_id: str, name: str, fragments: List[str], *parts: str) -> list:
    """A round that streams optional text, then one tool call."""
    events = [created(), *(text(p) for p in parts)]
    events.append(tool_added(call_id, name))
    events.extend(tool_args(f) for f in fragments)
    events.extend([tool_done(call_id, name), completed()])
    return events


# =============================================================================
# FAKE PROVIDER
# =============================================================================


class FakeStream:
    """Async-iterable stand-in for ``openai.AsyncStream``."""

    def __init__(self, events, error: Exception = None):
        self.events = list(events)
        self.error = error
        self.closed = False
        self.consumed = 0

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for event in self.events:
            self.consumed += 1
            yield event
        if self.error is not None:
            raise self.error

    async def close(self):
        self.closed = True


class FakeProvider:
    """Provider that replays one scripted stream per round.

    A script entry may be a list of events, a ``FakeStream``, or an
    exception to raise when the round's request is created.
    """

    def __init__(self, rounds):
        self.rounds = list(rounds)
        self.calls = []
        self.streams: List[FakeStream] = []

    async def stream_round(self, history, agent, tools):
        self.calls.append({"history": list(history), "agent": agent, "tools": tools})
        if not self.rounds:
            raise AssertionError("Unexpected provider call")
        script = self.rounds.pop(0)
        if isinstance(script, Exception):
            raise script
        stream = script if isinstance(script, FakeStream) else FakeStream(script)
        self.streams.append(stream)
        return stream


# =============================================================================
# APP
# =============================================================================


@pytest.fixture
def tool_registry():
    return create_tool_registry()


@pytest.fixture
def agent_registry() -> AgentRegistry:
    registry = AgentRegistry()
    registry.register(
        AgentConfig(
            id="job-agent",
            name="Job Description Generator",
            system_prompt="You write job descriptions.",
            enabled_tools=["generate_job_description"],
            temperature=0.7,
        )
    )
    registry.register(
        AgentConfig(id="plain-agent", name="Plain", system_prompt="You are helpful.")
    )
    return registry


@pytest.fixture
def job_agent(agent_registry) -> AgentConfig:
    return agent_registry.lookup("job-agent")


@pytest.fixture
def plain_agent(agent_registry) -> AgentConfig:
    return agent_registry.lookup("plain-agent")


@pytest.fixture
def session_store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def make_app(agent_registry, tool_registry, session_store):
    """Build an app around a scripted provider."""

    def _make(provider, max_rounds: int = 8):
        return create_app(
            settings=Settings(openai_api_key="test-key", max_rounds=max_rounds),
            provider=provider,
            agent_registry=agent_registry,
            tool_registry=tool_registry,
            session_store=session_store,
        )

    return _make


def http_client_for(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
