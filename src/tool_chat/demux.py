"""
Demultiplexing of provider stream events into normalized events.

Maps OpenAI Responses API streaming events onto the provider-agnostic
event union in ``events``. All per-round accumulation lives in a
``RoundState`` that the caller creates for each round and threads
through ``demultiplex``; nothing is shared across rounds or requests.
"""

import logging
from dataclasses import dataclass, field
from typing import AsyncIterable, AsyncIterator, List, Optional

from .assembler import ToolCallAssembler
from .events import (
    NormalizedEvent,
    StreamStart,
    TextDelta,
    ToolComplete,
    ToolDelta,
    ToolInvocation,
    ToolStart,
    TurnComplete,
)
from .exceptions import ProviderError

logger = logging.getLogger(__name__)

STOP_END_TURN = "end_turn"
STOP_TOOL_USE = "tool_use"
STOP_MAX_TOKENS = "max_tokens"


@dataclass
class RoundState:
    """Accumulated state of one provider round."""

    text_parts: List[str] = field(default_factory=list)
    assembler: ToolCallAssembler = field(default_factory=ToolCallAssembler)
    invocations: List[ToolInvocation] = field(default_factory=list)
    stop_reason: Optional[str] = None

    @property
    def text(self) -> str:
        return "".join(self.text_parts)

    @property
    def completed(self) -> bool:
        return self.stop_reason is not None


def _stop_reason(state: RoundState, response) -> str:
    if state.invocations:
        return STOP_TOOL_USE
    details = getattr(response, "incomplete_details", None)
    if getattr(response, "status", None) == "incomplete" and details is not None:
        if getattr(details, "reason", None) == "max_output_tokens":
            return STOP_MAX_TOKENS
        return details.reason or STOP_END_TURN
    return STOP_END_TURN


def demultiplex(chunk, state: RoundState) -> List[NormalizedEvent]:
    """Translate one provider event, updating ``state`` in place."""
    chunk_type = getattr(chunk, "type", None)

    if chunk_type == "response.created":
        return [StreamStart()]

    if chunk_type == "response.output_text.delta":
        state.text_parts.append(chunk.delta)
        return [TextDelta(chunk.delta)]

    if chunk_type == "response.output_item.added":
        item = chunk.item
        if item.type == "function_call":
            pending = state.assembler.open(item.call_id, item.name)
            return [ToolStart(pending.id, pending.name)]
        return []

    if chunk_type == "response.function_call_arguments.delta":
        if not state.assembler.is_open:
            return []
        state.assembler.feed(chunk.delta)
        return [ToolDelta(state.assembler.pending.id, chunk.delta)]

    if chunk_type == "response.output_item.done":
        if chunk.item.type == "function_call" and state.assembler.is_open:
            invocation = state.assembler.finalize()
            state.invocations.append(invocation)
            return [ToolComplete(invocation)]
        return []

    if chunk_type in ("response.completed", "response.incomplete"):
        events: List[NormalizedEvent] = []
        if state.assembler.is_open:
            # Block never closed; finalize with whatever arrived
            invocation = state.assembler.finalize()
            state.invocations.append(invocation)
            events.append(ToolComplete(invocation))
        state.stop_reason = _stop_reason(state, chunk.response)
        events.append(TurnComplete(state.stop_reason))
        return events

    if chunk_type == "response.failed":
        error = getattr(chunk.response, "error", None)
        message = getattr(error, "message", None) or "Model response failed"
        raise ProviderError(message)

    if chunk_type == "error":
        raise ProviderError(getattr(chunk, "message", None) or "Model stream error")

    return []


async def iter_round_events(
    stream: AsyncIterable, state: RoundState
) -> AsyncIterator[NormalizedEvent]:
    """Pump provider events through ``demultiplex`` as they arrive."""
    async for chunk in stream:
        for event in demultiplex(chunk, state):
            yield event
        if state.completed:
            break
    if not state.completed:
        raise ProviderError("Model stream ended before the response completed")
