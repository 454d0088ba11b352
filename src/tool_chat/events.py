"""Conversation turns, content blocks and normalized stream events."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Union


@dataclass
class TextBlock:
    text: str


@dataclass
class ToolUseBlock:
    id: str
    name: str
    input: Dict[str, Any]


@dataclass
class ToolResultBlock:
    tool_use_id: str
    content: str


ContentBlock = Union[TextBlock, ToolUseBlock, ToolResultBlock]


def block_from_dict(data: Dict[str, Any]) -> ContentBlock:
    """Build a content block from its ``{"type": ...}`` dict form.

    Raises ``ValueError`` for unknown or incomplete blocks.
    """
    block_type = data.get("type")
    try:
        if block_type == "text":
            return TextBlock(text=data["text"])
        if block_type == "tool_use":
            return ToolUseBlock(id=data["id"], name=data["name"], input=data.get("input") or {})
        if block_type == "tool_result":
            content = data.get("content", "")
            if not isinstance(content, str):
                # Block lists collapse to their text parts
                content = "".join(
                    part.get("text", "") for part in content if isinstance(part, dict)
                )
            return ToolResultBlock(tool_use_id=data["tool_use_id"], content=content)
    except KeyError as e:
        raise ValueError(f"{block_type} block is missing field {e}") from e
    raise ValueError(f"Unknown content block type: {block_type!r}")


@dataclass
class Turn:
    """One role-tagged contribution to the conversation."""

    role: str
    content: List[ContentBlock] = field(default_factory=list)

    @classmethod
    def from_message(cls, role: str, content) -> "Turn":
        """Create a turn from a wire message whose content is a string or a block list."""
        if role not in ("user", "assistant"):
            raise ValueError(f"Invalid role: {role!r}")
        if isinstance(content, str):
            return cls(role=role, content=[TextBlock(text=content)])
        return cls(role=role, content=[block_from_dict(block) for block in content])

    def text(self) -> str:
        return "".join(b.text for b in self.content if isinstance(b, TextBlock))


@dataclass(frozen=True)
class ToolInvocation:
    """A finalized tool call. Immutable once the assembler hands it out."""

    id: str
    name: str
    input: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "input": self.input}

    def to_block(self) -> ToolUseBlock:
        return ToolUseBlock(id=self.id, name=self.name, input=dict(self.input))


# Normalized events produced by the demultiplexer


@dataclass(frozen=True)
class StreamStart:
    pass


@dataclass(frozen=True)
class TextDelta:
    text: str


@dataclass(frozen=True)
class ToolStart:
    id: str
    name: str


@dataclass(frozen=True)
class ToolDelta:
    id: str
    fragment: str


@dataclass(frozen=True)
class ToolComplete:
    invocation: ToolInvocation


@dataclass(frozen=True)
class TurnComplete:
    stop_reason: str


@dataclass(frozen=True)
class StreamError:
    message: str


# Loop signals produced by the orchestrator


@dataclass(frozen=True)
class Continuing:
    pass


@dataclass(frozen=True)
class Done:
    pass


NormalizedEvent = Union[
    StreamStart, TextDelta, ToolStart, ToolDelta, ToolComplete, TurnComplete, StreamError
]
LoopEvent = Union[NormalizedEvent, Continuing, Done]
