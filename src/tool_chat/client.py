"""
Client for the chat stream.

``ChatSession`` sends the conversation to ``/api/chat`` and decodes the
frame stream back into messages. It holds the finalized message list
and, while a request is in flight, a ``StreamBuffer`` with the partial
assistant reply. A ``CancellationToken`` shared by the HTTP request and
its read loop lets ``cancel()`` stop either phase the same way.
"""

import asyncio
import enum
import logging
import time
from contextlib import aclosing
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
from httpx_sse import EventSource

from .exceptions import ChatBusyError, ChatStreamError, StreamCancelled
from .wire import (
    FRAME_CONTINUING,
    FRAME_DONE,
    FRAME_ERROR,
    FRAME_START,
    FRAME_TEXT,
    FRAME_TOOL_USE_COMPLETE,
    FRAME_TOOL_USE_START,
    parse_frame,
)

logger = logging.getLogger(__name__)

PARAGRAPH_SEPARATOR = "\n\n"


class ChatState(enum.Enum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"


@dataclass
class Message:
    id: str
    role: str
    content: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    tool_use: Optional[Dict[str, Any]] = None

    @classmethod
    def create(cls, role: str, content: str, prefix: Optional[str] = None, **kwargs) -> "Message":
        return cls(id=f"{prefix or role}-{int(time.time() * 1000)}", role=role, content=content, **kwargs)

    def to_wire(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content}

    def to_record(self) -> Dict[str, Any]:
        return {
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class StreamBuffer:
    """The in-flight assistant reply."""

    text: str = ""
    tool_use: Optional[Dict[str, Any]] = None


class CancellationToken:
    """One-shot cancellation signal shared by a request and its read loop."""

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise StreamCancelled("Request aborted")

    async def run(self, awaitable: Awaitable):
        """Await ``awaitable`` unless the token is cancelled first.

        Raises:
            StreamCancelled: If the token fires before the awaitable finishes
        """
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise StreamCancelled("Request aborted")
        work = asyncio.ensure_future(awaitable)
        cancel_wait = asyncio.create_task(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                [work, cancel_wait], return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (work, cancel_wait):
                if not task.done():
                    task.cancel()
                    try:
                        await task
                    except (asyncio.CancelledError, Exception):
                        pass
        if work in done:
            return work.result()
        raise StreamCancelled("Request aborted")


_END = object()


async def _next_event(events):
    try:
        return await events.__anext__()
    except StopAsyncIteration:
        return _END


class ChatSession:
    """Conversation state for one chat surface.

    Only one request may be in flight: ``send`` raises ``ChatBusyError``
    unless the session is idle.
    """

    def __init__(
        self,
        agent_id: str,
        session_id: Optional[str] = None,
        base_url: str = "http://localhost:8000",
        http_client: Optional[httpx.AsyncClient] = None,
        on_frame: Optional[Callable[["ChatSession", dict], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        self.agent_id = agent_id
        self.session_id = session_id
        self.http = http_client or httpx.AsyncClient(base_url=base_url, timeout=httpx.Timeout(10.0, read=None))
        self.on_frame = on_frame
        self.on_error = on_error

        self.messages: List[Message] = []
        self.buffer: Optional[StreamBuffer] = None
        self.state = ChatState.IDLE
        self.token: Optional[CancellationToken] = None

    @property
    def loading(self) -> bool:
        return self.state is not ChatState.IDLE

    @property
    def streaming_message(self) -> str:
        """Partial assistant text to render live."""
        return self.buffer.text if self.buffer else ""

    async def send(self, content: str) -> Optional[Message]:
        """Send a user message and stream the reply.

        Returns the finalized assistant message (or the synthetic error
        message), or ``None`` when the request was cancelled.
        """
        if not content.strip():
            return None
        if self.state is not ChatState.IDLE:
            raise ChatBusyError("A response is already streaming")

        user_message = Message.create("user", content)
        history = [*self.messages, user_message]
        self.messages.append(user_message)

        token = CancellationToken()
        self.token = token
        self.buffer = StreamBuffer()
        self.state = ChatState.SENDING

        try:
            await token.run(self._save_message(user_message))
            return await self._stream(history, token)
        except StreamCancelled:
            logger.info("Request aborted")
            return None
        except (httpx.HTTPError, ChatStreamError) as e:
            logger.error(f"Chat error: {e}")
            if self.on_error:
                self.on_error(e)
            error_message = Message.create(
                "assistant", f"Sorry, an error occurred: {e}", prefix="error"
            )
            self.messages.append(error_message)
            return error_message
        finally:
            if self.token is token:
                self._reset()

    def cancel(self) -> None:
        """Abort the in-flight request; nothing is appended. No-op when idle."""
        if self.state is ChatState.IDLE or self.token is None:
            return
        self.token.cancel()
        self._reset()

    async def aclose(self) -> None:
        self.cancel()
        await self.http.aclose()

    def _reset(self) -> None:
        self.state = ChatState.IDLE
        self.buffer = None
        self.token = None

    async def _stream(self, history: List[Message], token: CancellationToken) -> Message:
        payload = {
            "messages": [m.to_wire() for m in history],
            "agentId": self.agent_id,
            "sessionId": self.session_id,
        }
        request = self.http.build_request("POST", "/api/chat", json=payload)
        response = await token.run(self.http.send(request, stream=True))
        try:
            if response.status_code >= 400:
                raise ChatStreamError(f"HTTP error! status: {response.status_code}")

            async with aclosing(EventSource(response).aiter_sse()) as events:
                while True:
                    sse = await token.run(_next_event(events))
                    if sse is _END:
                        break
                    frame = parse_frame(sse.data)
                    if frame is None:
                        continue
                    message = await self._handle_frame(frame, token)
                    if message is not None:
                        return message
            raise ChatStreamError("Stream ended before the response finished")
        finally:
            await response.aclose()

    async def _handle_frame(self, frame: dict, token: CancellationToken) -> Optional[Message]:
        """Apply one frame to the session; returns the message a ``done`` frame finalizes."""
        token.raise_if_cancelled()
        frame_type = frame.get("type")

        if frame_type == FRAME_START:
            self.state = ChatState.STREAMING
            self.buffer = StreamBuffer()
        elif frame_type == FRAME_TEXT:
            self.state = ChatState.STREAMING
            self.buffer.text += frame.get("content", "")
        elif frame_type == FRAME_TOOL_USE_START:
            self.buffer.tool_use = {"name": frame.get("tool_name"), "id": frame.get("tool_id")}
        elif frame_type == FRAME_TOOL_USE_COMPLETE:
            tool_use = frame.get("tool_use") or {}
            pending = self.buffer.tool_use or {"name": tool_use.get("name"), "id": tool_use.get("id")}
            self.buffer.tool_use = {**pending, "input": tool_use.get("input", {})}
        elif frame_type == FRAME_CONTINUING:
            self.buffer.text += PARAGRAPH_SEPARATOR
        elif frame_type == FRAME_ERROR:
            raise ChatStreamError(frame.get("error") or "An error occurred")
        elif frame_type == FRAME_DONE:
            return await self._finalize(token)
        else:
            logger.debug(f"Ignoring unknown frame type: {frame_type}")

        if self.on_frame:
            self.on_frame(self, frame)
        return None

    async def _finalize(self, token: CancellationToken) -> Message:
        assistant_message = Message.create(
            "assistant", self.buffer.text, tool_use=self.buffer.tool_use
        )
        self.messages.append(assistant_message)
        self.buffer = StreamBuffer()
        if self.on_frame:
            self.on_frame(self, {"type": FRAME_DONE})
        if not token.cancelled:
            await self._save_message(assistant_message)
        return assistant_message

    async def _save_message(self, message: Message) -> bool:
        """Persist a message through the session store; failures are only logged."""
        if not self.session_id:
            return False
        try:
            response = await self.http.post(
                "/api/sessions/save-message",
                json={
                    "sessionId": self.session_id,
                    "agentId": self.agent_id,
                    "message": message.to_record(),
                },
            )
        except httpx.HTTPError as e:
            logger.error(f"Failed to save {message.role} message: {e}")
            return False
        if response.status_code >= 400:
            logger.error(f"Failed to save {message.role} message: status {response.status_code}")
            return False
        return True
