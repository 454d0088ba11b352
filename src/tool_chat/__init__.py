"""
tool_chat - Streaming chat with tool-using language model agents.

This package provides a server that runs a multi-round tool-use
conversation loop against a streaming model provider, re-encoding the
model's output as an event stream, and a client that decodes that
stream back into conversation state with cancellation support.
"""

__version__ = "0.1.0"

from .agent import ConversationLoop
from .client import ChatSession
from .tool_registry import ToolDeclaration, ToolRegistry

__all__ = ["ConversationLoop", "ChatSession", "ToolDeclaration", "ToolRegistry"]
