"""
Main entry point for tool_chat.

Can be called with: python -m tool_chat

``serve`` (the default) runs the chat server; ``chat`` opens an
interactive terminal client against a running server. Press Ctrl-C
while a reply streams to cancel it, or at the prompt to quit.
"""

import argparse
import asyncio
import logging
import signal
import sys
import uuid
from typing import Optional

import uvicorn

from .client import ChatSession
from .config import Settings, configure_logging
from .registry import create_agent_registry


def print_frame(session: ChatSession, frame: dict) -> None:
    frame_type = frame.get("type")
    if frame_type == "text":
        sys.stdout.write(frame.get("content", ""))
    elif frame_type == "continuing":
        sys.stdout.write("\n\n")
    elif frame_type == "done":
        sys.stdout.write("\n")
    sys.stdout.flush()


def read_line(loop: asyncio.AbstractEventLoop, prompt: str, stream=None) -> asyncio.Future:
    """Prompt and return a future for the next line of ``stream`` (stdin by default).

    Reading happens on the event loop, so cancelling the future leaves no
    blocked thread behind. The future fails with ``EOFError`` at end of input.
    """
    stream = stream or sys.stdin
    sys.stdout.write(prompt)
    sys.stdout.flush()
    future = loop.create_future()

    def on_readable():
        if future.done():
            return
        line = stream.readline()
        if line:
            future.set_result(line.rstrip("\n"))
        else:
            future.set_exception(EOFError())

    loop.add_reader(stream, on_readable)
    future.add_done_callback(lambda _: loop.remove_reader(stream))
    return future


def handle_interrupt(session: ChatSession, prompt: Optional[asyncio.Future]) -> None:
    """Ctrl-C cancels the streaming reply, or ends the REPL at the prompt."""
    if session.loading:
        session.cancel()
    elif prompt is not None and not prompt.done():
        prompt.cancel()


async def chat_repl(url: str, agent_id: str, session_id: str, stream=None) -> None:
    session = ChatSession(agent_id, session_id=session_id, base_url=url, on_frame=print_frame)
    loop = asyncio.get_running_loop()
    prompt = None
    loop.add_signal_handler(signal.SIGINT, lambda: handle_interrupt(session, prompt))
    try:
        while True:
            prompt = read_line(loop, "> ", stream)
            try:
                content = await prompt
            except (EOFError, asyncio.CancelledError):
                break

            reply = await session.send(content)
            if reply is None and content.strip():
                print("\n[cancelled]")
            elif reply is not None and reply.id.startswith("error-"):
                print(reply.content)
    finally:
        loop.remove_signal_handler(signal.SIGINT)
        await session.aclose()


def main():
    """Main entry point for the tool_chat application."""
    parser = argparse.ArgumentParser(
        description="tool_chat - Streaming chat with tool-using agents"
    )
    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the chat server (default)")
    serve.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the server on (default: 8000)",
    )
    serve.add_argument("--host", default="0.0.0.0", help="Interface to bind (default: 0.0.0.0)")

    chat = subparsers.add_parser("chat", help="Chat with an agent from the terminal")
    chat.add_argument("--url", default="http://localhost:8000", help="Server URL")
    agent_ids = ", ".join(agent.id for agent in create_agent_registry().list_agents())
    chat.add_argument(
        "--agent", default="assistant", help=f"Agent id, one of: {agent_ids} (default: assistant)"
    )
    chat.add_argument("--session", default=None, help="Session id to save messages under")

    args = parser.parse_args()
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    if args.command == "chat":
        session_id = args.session or str(uuid.uuid4())
        asyncio.run(chat_repl(args.url, args.agent, session_id))
        return

    port = getattr(args, "port", 8000)
    host = getattr(args, "host", "0.0.0.0")
    logging.getLogger(__name__).info("Starting chat server...")
    logging.getLogger(__name__).info(f"Listening on http://{host}:{port}")

    from .app import app

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
