"""Exception hierarchy for the chat server and client."""


class ToolChatError(Exception):
    """Base exception for all tool_chat errors."""


class RequestValidationError(ToolChatError):
    """Inbound chat payload is malformed."""


class AgentNotFoundError(ToolChatError):
    """No agent is registered under the requested id."""

    def __init__(self, agent_id: str):
        self.agent_id = agent_id
        super().__init__(f"Agent not found: {agent_id}")


class ProviderError(ToolChatError):
    """Model provider call failed (network, API or stream error)."""


class ToolInputParseError(ToolChatError):
    """Streamed tool input did not parse as a JSON object.

    Never raised out of the assembler; recorded as a warning.
    """

    def __init__(self, tool_name: str, raw: str, reason: str):
        self.tool_name = tool_name
        self.raw = raw
        self.reason = reason
        super().__init__(f"Could not parse input for {tool_name}: {reason}")


class RoundBudgetExceededError(ToolChatError):
    """The model kept invoking tools past the allowed number of rounds."""

    def __init__(self, max_rounds: int):
        self.max_rounds = max_rounds
        super().__init__(
            f"Round budget exceeded: model still requested tools after {max_rounds} rounds"
        )


class PersistenceError(ToolChatError):
    """Saving a message to the session store failed."""


class StreamCancelled(ToolChatError):
    """The client aborted the request or its read loop."""


class ChatBusyError(ToolChatError):
    """A send was attempted while another request is in flight."""


class ChatStreamError(ToolChatError):
    """A chat request failed or the server reported an error frame."""
