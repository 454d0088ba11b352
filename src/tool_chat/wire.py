"""
Wire protocol for the chat stream.

Frames use event-stream framing: one JSON object per frame on a
``data:`` line, terminated by a blank line. Every frame has a ``type``:

- ``start``
- ``text`` with ``content``
- ``tool_use_start`` with ``tool_name`` and ``tool_id``
- ``tool_use_complete`` with ``tool_use`` (``id``, ``name``, ``input``)
- ``continuing`` between rounds
- ``done`` or ``error`` (with ``error``), exactly one, last
"""

import json
import logging
from typing import List, Optional

from .events import (
    Continuing,
    Done,
    LoopEvent,
    StreamError,
    StreamStart,
    TextDelta,
    ToolComplete,
    ToolStart,
)

logger = logging.getLogger(__name__)

FRAME_START = "start"
FRAME_TEXT = "text"
FRAME_TOOL_USE_START = "tool_use_start"
FRAME_TOOL_USE_COMPLETE = "tool_use_complete"
FRAME_CONTINUING = "continuing"
FRAME_DONE = "done"
FRAME_ERROR = "error"

TERMINAL_FRAMES = {FRAME_DONE, FRAME_ERROR}


def encode_frame(payload: dict) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def event_to_payload(event: LoopEvent) -> Optional[dict]:
    """Map an event to its frame payload, or ``None`` if it has no frame."""
    if isinstance(event, StreamStart):
        return {"type": FRAME_START}
    if isinstance(event, TextDelta):
        return {"type": FRAME_TEXT, "content": event.text}
    if isinstance(event, ToolStart):
        return {"type": FRAME_TOOL_USE_START, "tool_name": event.name, "tool_id": event.id}
    if isinstance(event, ToolComplete):
        return {"type": FRAME_TOOL_USE_COMPLETE, "tool_use": event.invocation.to_dict()}
    if isinstance(event, Continuing):
        return {"type": FRAME_CONTINUING}
    if isinstance(event, Done):
        return {"type": FRAME_DONE}
    if isinstance(event, StreamError):
        return {"type": FRAME_ERROR, "error": event.message}
    # tool deltas and turn completion stay server-side
    return None


class FrameEncoder:
    """Encodes the events of one request, enforcing frame ordering.

    The first frame is always ``start`` (later rounds' stream starts are
    dropped), and nothing is emitted after the terminal frame.
    """

    def __init__(self):
        self.started = False
        self.finished = False

    def encode(self, event: LoopEvent) -> List[str]:
        if self.finished:
            logger.warning(f"Dropping event after terminal frame: {event}")
            return []

        payload = event_to_payload(event)
        if payload is None:
            return []

        frames = []
        if payload["type"] == FRAME_START:
            if self.started:
                return []
            self.started = True
        elif not self.started:
            self.started = True
            frames.append(encode_frame({"type": FRAME_START}))

        if payload["type"] in TERMINAL_FRAMES:
            self.finished = True
        frames.append(encode_frame(payload))
        return frames

    def error(self, message: str) -> List[str]:
        return self.encode(StreamError(message))


def parse_frame(data: str) -> Optional[dict]:
    """Parse one frame's ``data`` field; malformed or untyped frames give ``None``."""
    try:
        frame = json.loads(data)
    except json.JSONDecodeError:
        logger.warning(f"Skipping malformed frame: {data!r}")
        return None
    if not isinstance(frame, dict) or "type" not in frame:
        logger.warning(f"Skipping frame without type: {data!r}")
        return None
    return frame
