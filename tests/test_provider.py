"""Unit tests for the OpenAI Responses API adapter."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from openai import OpenAIError

from tool_chat.events import TextBlock, ToolResultBlock, ToolUseBlock, Turn
from tool_chat.exceptions import ProviderError
from tool_chat.provider import ModelProvider, turns_to_input


def test_turns_to_input_text():
    items = turns_to_input([Turn.from_message("user", "hello"), Turn.from_message("assistant", "hi")])

    assert items == [
        {"role": "user", "content": "hello"},
        {"role": "assistant", "content": "hi"},
    ]


def test_turns_to_input_tool_exchange():
    turns = [
        Turn("user", [TextBlock("JD please")]),
        Turn(
            "assistant",
            [TextBlock("Drafting."), ToolUseBlock("call_1", "generate_job_description", {"job_title": "Eng"})],
        ),
        Turn("user", [ToolResultBlock("call_1", "Tool executed successfully.")]),
    ]

    items = turns_to_input(turns)

    assert items[1] == {"role": "assistant", "content": "Drafting."}
    assert items[2]["type"] == "function_call"
    assert items[2]["call_id"] == "call_1"
    assert json.loads(items[2]["arguments"]) == {"job_title": "Eng"}
    assert items[3] == {
        "type": "function_call_output",
        "call_id": "call_1",
        "output": "Tool executed successfully.",
    }


class TestBuildRequest:
    def test_with_tools(self, job_agent, tool_registry):
        provider = ModelProvider(client=MagicMock(), model_name="gpt-test")
        tools = tool_registry.get_schemas(job_agent.enabled_tools)

        args = provider.build_request([Turn.from_message("user", "hi")], job_agent, tools)

        assert args["model"] == "gpt-test"
        assert args["instructions"] == job_agent.system_prompt
        assert args["temperature"] == 0.7
        assert args["max_output_tokens"] == 4096
        assert args["stream"] is True
        assert args["tools"] == tools
        assert args["parallel_tool_calls"] is False

    def test_without_tools(self, plain_agent):
        provider = ModelProvider(client=MagicMock())

        args = provider.build_request([Turn.from_message("user", "hi")], plain_agent, [])

        assert "tools" not in args
        assert "parallel_tool_calls" not in args


@pytest.mark.asyncio
class TestStreamRound:
    async def test_returns_stream(self, plain_agent):
        client = MagicMock()
        client.responses.create = AsyncMock(return_value="stream")
        provider = ModelProvider(client=client)

        assert await provider.stream_round([Turn.from_message("user", "hi")], plain_agent, []) == "stream"
        client.responses.create.assert_awaited_once()

    async def test_wraps_openai_errors(self, plain_agent):
        client = MagicMock()
        client.responses.create = AsyncMock(side_effect=OpenAIError("invalid api key"))
        provider = ModelProvider(client=client)

        with pytest.raises(ProviderError, match="invalid api key"):
            await provider.stream_round([Turn.from_message("user", "hi")], plain_agent, [])
