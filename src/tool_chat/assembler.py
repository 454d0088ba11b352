"""
Reconstruction of streamed tool-call input.

The provider delivers a tool call's arguments as JSON text split into
arbitrary fragments. Fragments are only concatenated while streaming;
the buffer is parsed once, when the tool block closes.
"""

import json
import logging
from typing import List, Optional

from .events import ToolInvocation
from .exceptions import ProviderError, ToolInputParseError

logger = logging.getLogger(__name__)


class PendingToolCall:
    """A tool call whose input is still arriving."""

    def __init__(self, call_id: str, name: str):
        self.id = call_id
        self.name = name
        self.fragments: List[str] = []

    @property
    def raw(self) -> str:
        return "".join(self.fragments)


class ToolCallAssembler:
    """Single-slot accumulator for one tool call at a time.

    Tool blocks must arrive sequentially. Opening a second call while one
    is still accumulating is a provider protocol violation.
    """

    def __init__(self):
        self.pending: Optional[PendingToolCall] = None
        self.warnings: List[ToolInputParseError] = []

    @property
    def is_open(self) -> bool:
        return self.pending is not None

    def open(self, call_id: str, name: str) -> PendingToolCall:
        if self.pending is not None:
            raise ProviderError(
                f"Tool block {call_id} ({name}) started while {self.pending.id} "
                f"({self.pending.name}) is still open"
            )
        self.pending = PendingToolCall(call_id, name)
        return self.pending

    def feed(self, fragment: str) -> None:
        if self.pending is None:
            raise ProviderError("Tool input fragment received with no open tool block")
        self.pending.fragments.append(fragment)

    def finalize(self) -> ToolInvocation:
        """Close the open call and parse its buffered input.

        Input that is not a JSON object falls back to ``{}`` and records a
        warning; the call itself always completes.
        """
        if self.pending is None:
            raise ProviderError("Tool block closed with no open tool block")
        pending, self.pending = self.pending, None

        raw = pending.raw
        arguments = {}
        if raw.strip():
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError as e:
                self._warn(pending, raw, str(e))
            else:
                if isinstance(parsed, dict):
                    arguments = parsed
                else:
                    self._warn(pending, raw, f"expected a JSON object, got {type(parsed).__name__}")

        return ToolInvocation(id=pending.id, name=pending.name, input=arguments)

    def _warn(self, pending: PendingToolCall, raw: str, reason: str) -> None:
        warning = ToolInputParseError(pending.name, raw, reason)
        self.warnings.append(warning)
        logger.warning(
            f"TOOL JSON ERROR: {pending.name} - {reason}",
            extra={
                "structured": {
                    "log_type": "tool_input_parse_error",
                    "tool_name": pending.name,
                    "call_id": pending.id,
                    "raw": raw,
                }
            },
        )
