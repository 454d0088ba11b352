"""Unit tests for the agent registry, session store and turn model."""

import asyncio

import pytest

from tool_chat.config import DEFAULT_MAX_ROUNDS, DEFAULT_MODEL, Settings
from tool_chat.events import TextBlock, ToolResultBlock, ToolUseBlock, Turn, block_from_dict
from tool_chat.exceptions import AgentNotFoundError, PersistenceError
from tool_chat.registry import AgentConfig, create_agent_registry
from tool_chat.session_store import SessionStore


class TestAgentRegistry:
    def test_seeded_agents(self):
        registry = create_agent_registry()

        job = registry.lookup("job-desc-agent-001")
        assert job.enabled_tools == ["generate_job_description"]
        assert job.temperature == 0.7
        assert job.max_tokens == 4096
        assert registry.lookup("assistant").enabled_tools == []
        assert len(registry.list_agents()) == len(registry)

    def test_unknown_agent(self):
        with pytest.raises(AgentNotFoundError) as exc_info:
            create_agent_registry().lookup("missing")

        assert exc_info.value.agent_id == "missing"

    def test_from_record_defaults(self):
        agent = AgentConfig.from_record(
            {"id": "x", "systemPrompt": "p", "tools": None, "config": {"temperature": 0}}
        )

        assert agent.name == "x"
        assert agent.enabled_tools == []
        assert agent.temperature == 1.0
        assert agent.max_tokens == 4096

    def test_from_record_values(self):
        agent = AgentConfig.from_record(
            {
                "id": "seo",
                "name": "SEO",
                "systemPrompt": "p",
                "tools": ["generate_seo_content"],
                "config": {"temperature": 0.8, "max_tokens": 2048},
            }
        )

        assert (agent.temperature, agent.max_tokens) == (0.8, 2048)
        assert agent.enabled_tools == ["generate_seo_content"]


@pytest.mark.asyncio
class TestSessionStore:
    async def test_append_creates_session(self):
        store = SessionStore()

        session = await store.append_message("s1", "agent", {"role": "user", "content": "hi"})

        assert store.get_session_count() == 1
        assert session.agent_id == "agent"
        assert session.messages[0]["timestamp"]

    async def test_append_keeps_order(self):
        store = SessionStore()
        await store.append_message("s1", "agent", {"role": "user", "content": "1"})
        await store.append_message("s1", "agent", {"role": "assistant", "content": "2"})

        assert [m["content"] for m in store.get_messages("s1")] == ["1", "2"]

    async def test_concurrent_appends_all_recorded(self):
        store = SessionStore()

        await asyncio.gather(
            *(
                store.append_message("s1", "agent", {"role": "user", "content": str(i)})
                for i in range(20)
            )
        )

        assert len(store.get_messages("s1")) == 20

    @pytest.mark.parametrize(
        "session_id,agent_id,message",
        [
            ("", "agent", {"role": "user"}),
            ("s1", "", {"role": "user"}),
            ("s1", "agent", {"role": "system"}),
        ],
    )
    async def test_invalid_append(self, session_id, agent_id, message):
        with pytest.raises(PersistenceError):
            await SessionStore().append_message(session_id, agent_id, message)

    async def test_missing_session(self):
        store = SessionStore()

        assert store.get_session("nope") is None
        assert store.get_messages("nope") == []


class TestTurns:
    def test_string_content(self):
        turn = Turn.from_message("user", "hello")

        assert turn.content == [TextBlock("hello")]
        assert turn.text() == "hello"

    def test_block_content(self):
        turn = Turn.from_message(
            "assistant",
            [
                {"type": "text", "text": "a"},
                {"type": "tool_use", "id": "c1", "name": "t", "input": {"k": 1}},
            ],
        )

        assert turn.content == [TextBlock("a"), ToolUseBlock("c1", "t", {"k": 1})]

    def test_tool_result_block_list_content(self):
        block = block_from_dict(
            {"type": "tool_result", "tool_use_id": "c1", "content": [{"type": "text", "text": "ok"}]}
        )

        assert block == ToolResultBlock("c1", "ok")

    @pytest.mark.parametrize(
        "data",
        [{"type": "image"}, {"type": "text"}, {"type": "tool_use", "id": "c1"}],
    )
    def test_invalid_blocks(self, data):
        with pytest.raises(ValueError):
            block_from_dict(data)

    def test_invalid_role(self):
        with pytest.raises(ValueError):
            Turn.from_message("system", "x")


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("OPENAI_API_KEY", "TOOL_CHAT_MODEL", "TOOL_CHAT_MAX_ROUNDS", "TOOL_CHAT_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()

        assert settings.openai_api_key is None
        assert settings.model_name == DEFAULT_MODEL
        assert settings.max_rounds == DEFAULT_MAX_ROUNDS
        assert settings.log_level == "INFO"

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("TOOL_CHAT_MODEL", "gpt-test")
        monkeypatch.setenv("TOOL_CHAT_MAX_ROUNDS", "3")
        monkeypatch.setenv("TOOL_CHAT_LOG_LEVEL", "debug")

        settings = Settings.from_env()

        assert (settings.openai_api_key, settings.model_name) == ("sk-test", "gpt-test")
        assert settings.max_rounds == 3
        assert settings.log_level == "DEBUG"

    def test_round_budget_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("TOOL_CHAT_MAX_ROUNDS", "0")

        with pytest.raises(ValueError):
            Settings.from_env()
