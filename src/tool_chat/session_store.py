import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .exceptions import PersistenceError

logger = logging.getLogger(__name__)


class SessionData:
    def __init__(self, session_id: str, agent_id: str):
        self.session_id = session_id
        self.agent_id = agent_id
        self.messages: List[dict] = []
        self.created_at = datetime.now(timezone.utc)
        self.updated_at = self.created_at

    def add_message(self, message: dict):
        """Append a message, stamping it if the caller did not."""
        if not message.get("timestamp"):
            message = {**message, "timestamp": datetime.now(timezone.utc).isoformat()}
        self.messages.append(message)
        self.updated_at = datetime.now(timezone.utc)


class SessionStore:
    """In-memory chat session storage.

    Concurrent appends to one session are serialized by a lock; callers
    racing on the same session get last-write-wins ordering.
    """

    def __init__(self):
        self.sessions: Dict[str, SessionData] = {}
        self._lock = asyncio.Lock()

    async def append_message(self, session_id: str, agent_id: str, message: dict) -> SessionData:
        """Append ``message`` to the session, creating the session if absent."""
        if not session_id or not agent_id:
            raise PersistenceError("session_id and agent_id are required")
        if message.get("role") not in ("user", "assistant"):
            raise PersistenceError(f"Invalid message role: {message.get('role')!r}")

        async with self._lock:
            session = self.sessions.get(session_id)
            if session is None:
                session = SessionData(session_id, agent_id)
                self.sessions[session_id] = session
                logger.info(f"Created new chat session: {session_id} (agent {agent_id})")
            session.add_message(message)

        logger.info(
            "Message saved",
            extra={
                "structured": {
                    "log_type": "message_saved",
                    "session_id": session_id,
                    "role": message.get("role"),
                    "count": len(session.messages),
                }
            },
        )
        return session

    def get_session(self, session_id: str) -> Optional[SessionData]:
        """Get session data by ID."""
        return self.sessions.get(session_id)

    def get_messages(self, session_id: str) -> List[dict]:
        session = self.get_session(session_id)
        return list(session.messages) if session else []

    def get_session_count(self) -> int:
        """Get total number of stored sessions."""
        return len(self.sessions)
