import logging
from contextlib import aclosing
from typing import AsyncIterator, List, Optional

from openai import OpenAIError

from .demux import RoundState, iter_round_events
from .events import (
    Continuing,
    Done,
    LoopEvent,
    StreamError,
    TextBlock,
    ToolComplete,
    Turn,
)
from .exceptions import ProviderError, RoundBudgetExceededError, ToolChatError
from .provider import ModelProvider
from .registry import AgentConfig
from .tool_registry import ToolRegistry

logger = logging.getLogger(__name__)


class ConversationLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that automatically injects agent_id and session_id into structured logs."""

    def __init__(self, logger, agent_id, session_id=None):
        self.agent_id = agent_id
        self.session_id = session_id
        super().__init__(logger, {})

    def process(self, msg, kwargs):
        if "extra" in kwargs and "structured" in kwargs["extra"]:
            kwargs["extra"]["structured"]["agent_id"] = self.agent_id
            kwargs["extra"]["structured"]["session_id"] = self.session_id
        return msg, kwargs


class ConversationLoop:
    """Multi-round tool-use loop for a single chat request.

    Each round streams one model response. When the model calls tools,
    the assistant turn and a synthetic tool_result turn are appended to
    the history and another round starts; a round without tool calls
    ends the loop. One instance serves one request.
    """

    def __init__(
        self,
        provider: ModelProvider,
        tool_registry: ToolRegistry,
        agent: AgentConfig,
        max_rounds: int = 8,
        session_id: Optional[str] = None,
    ):
        if max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")
        self.provider = provider
        self.tool_registry = tool_registry
        self.agent = agent
        self.max_rounds = max_rounds  # Prevent infinite tool call loops
        self.tools = tool_registry.get_schemas(agent.enabled_tools)
        self.rounds = 0
        self.logger = ConversationLoggerAdapter(logger, agent.id, session_id)

    def log_item(self, item_type: str, extra: dict, level: int = logging.INFO):
        structured = {"log_type": item_type, **extra}
        self.logger.log(
            level,
            f"{item_type.replace('_', ' ').title()} received",
            extra={"structured": structured},
        )

    async def run(self, history: List[Turn]) -> AsyncIterator[LoopEvent]:
        """Run rounds until the model stops calling tools.

        Yields every normalized event as it arrives, ``Continuing`` between
        rounds and exactly one of ``Done`` or ``StreamError`` last.
        """
        conversation = list(history)
        if conversation and conversation[-1].role == "user":
            self.log_item("user_input", {"content": conversation[-1].text()})

        try:
            while True:
                self.rounds += 1
                state = RoundState()
                self.log_item("round_start", {"round": self.rounds, "turns": len(conversation)})

                async with aclosing(self._run_round(conversation, state)) as round_events:
                    async for event in round_events:
                        yield event

                self.log_item(
                    "round_end",
                    {
                        "round": self.rounds,
                        "stop_reason": state.stop_reason,
                        "text_length": len(state.text),
                        "tools_used": len(state.invocations),
                    },
                )

                if not state.invocations:
                    yield Done()
                    return

                self._append_tool_turns(conversation, state)

                if self.rounds >= self.max_rounds:
                    raise RoundBudgetExceededError(self.max_rounds)

                self.log_item(
                    "tool_signal",
                    {"signal": "continuing", "content": "Tool results provided, continuing"},
                )
                yield Continuing()
        except ToolChatError as e:
            log_type = (
                "round_budget_exceeded"
                if isinstance(e, RoundBudgetExceededError)
                else "provider_error"
            )
            self.log_item(log_type, {"content": str(e), "round": self.rounds}, logging.ERROR)
            yield StreamError(str(e) or "An error occurred")

    async def _run_round(self, conversation: List[Turn], state: RoundState):
        stream = await self.provider.stream_round(conversation, self.agent, self.tools)
        try:
            async for event in iter_round_events(stream, state):
                if isinstance(event, ToolComplete):
                    invocation = event.invocation
                    self.log_item(
                        "tool_call",
                        {
                            "tool_name": invocation.name,
                            "arguments": invocation.input,
                            "call_id": invocation.id,
                        },
                    )
                yield event
        except OpenAIError as e:
            raise ProviderError(str(e)) from e
        finally:
            await stream.close()

    def _append_tool_turns(self, conversation: List[Turn], state: RoundState) -> None:
        """Extend the history with the round's tool calls and their canned results."""
        assistant_content = []
        if state.text:
            assistant_content.append(TextBlock(state.text))
        assistant_content.extend(inv.to_block() for inv in state.invocations)
        conversation.append(Turn(role="assistant", content=assistant_content))

        results = [self.tool_registry.tool_result(inv) for inv in state.invocations]
        for invocation, result in zip(state.invocations, results):
            self.log_item(
                "tool_result", {"tool_name": invocation.name, "result": result.content}
            )
        conversation.append(Turn(role="user", content=results))
