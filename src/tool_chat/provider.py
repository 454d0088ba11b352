"""
OpenAI Responses API adapter.

Converts conversation turns into Responses ``input`` items and opens a
streaming response for one round.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from .events import TextBlock, ToolResultBlock, ToolUseBlock, Turn
from .exceptions import ProviderError
from .registry import AgentConfig

logger = logging.getLogger(__name__)


def turns_to_input(turns: List[Turn]) -> List[Dict[str, Any]]:
    """Flatten turns into Responses API input items.

    Text blocks become role messages; tool_use blocks become
    ``function_call`` items and tool_result blocks ``function_call_output``
    items, in block order.
    """
    items: List[Dict[str, Any]] = []
    for turn in turns:
        text_parts: List[str] = []

        def flush_text():
            if text_parts:
                items.append({"role": turn.role, "content": "".join(text_parts)})
                text_parts.clear()

        for block in turn.content:
            if isinstance(block, TextBlock):
                text_parts.append(block.text)
            elif isinstance(block, ToolUseBlock):
                flush_text()
                items.append(
                    {
                        "type": "function_call",
                        "call_id": block.id,
                        "name": block.name,
                        "arguments": json.dumps(block.input, ensure_ascii=False),
                    }
                )
            elif isinstance(block, ToolResultBlock):
                flush_text()
                items.append(
                    {
                        "type": "function_call_output",
                        "call_id": block.tool_use_id,
                        "output": block.content,
                    }
                )
        flush_text()
    return items


class ModelProvider:
    """Streaming completion calls against the OpenAI Responses API."""

    def __init__(self, client: Optional[AsyncOpenAI] = None, model_name: str = "gpt-4.1", api_key: Optional[str] = None):
        self.client = client or AsyncOpenAI(api_key=api_key)
        self.model_name = model_name

    def build_request(
        self, history: List[Turn], agent: AgentConfig, tools: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        create_args = {
            "model": self.model_name,
            "input": turns_to_input(history),
            "instructions": agent.system_prompt,
            "temperature": agent.temperature,
            "max_output_tokens": agent.max_tokens,
            "store": False,  # Zero data retention
            "stream": True,
        }
        if tools:
            create_args["tools"] = tools
            create_args["tool_choice"] = "auto"
            # One open tool block at a time
            create_args["parallel_tool_calls"] = False
        return create_args

    async def stream_round(
        self, history: List[Turn], agent: AgentConfig, tools: List[Dict[str, Any]]
    ):
        """Open the event stream for one round.

        Raises:
            ProviderError: If the request cannot be created
        """
        create_args = self.build_request(history, agent, tools)
        try:
            return await self.client.responses.create(**create_args)
        except OpenAIError as e:
            logger.error(f"Error creating response: {e}")
            raise ProviderError(str(e)) from e
