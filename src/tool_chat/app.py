import logging
from typing import Any, Dict, List, Literal, Optional, Union

import anyio
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError as BodyValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from .agent import ConversationLoop
from .config import Settings
from .events import Turn
from .exceptions import AgentNotFoundError, PersistenceError, RequestValidationError
from .provider import ModelProvider
from .registry import AgentRegistry, create_agent_registry
from .session_store import SessionStore
from .tool_registry import ToolRegistry
from .tools import create_tool_registry
from .wire import FrameEncoder

load_dotenv()

logger = logging.getLogger(__name__)

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class FrameStreamResponse(StreamingResponse):
    """Streams frames and closes the frame generator however the response ends.

    Depending on the server, a client disconnect either cancels the body
    iteration or surfaces as an error from ``send`` with the generator
    left suspended; closing it here releases the provider stream in both
    cases.
    """

    async def __call__(self, scope, receive, send):
        try:
            await super().__call__(scope, receive, send)
        finally:
            with anyio.CancelScope(shield=True):
                await self.body_iterator.aclose()


class ChatMessageIn(BaseModel):
    role: Literal["user", "assistant"]
    content: Union[str, List[Dict[str, Any]]]


class ChatRequest(BaseModel):
    messages: List[ChatMessageIn]
    agentId: str
    sessionId: Optional[str] = None


class SaveMessageRequest(BaseModel):
    sessionId: Optional[str] = None
    agentId: Optional[str] = None
    message: Optional[Dict[str, Any]] = None


def parse_history(messages: List[ChatMessageIn]) -> List[Turn]:
    """Convert inbound messages to turns, rejecting unusable histories."""
    if not messages:
        raise RequestValidationError("Invalid messages format: no messages")
    try:
        return [Turn.from_message(m.role, m.content) for m in messages]
    except ValueError as e:
        raise RequestValidationError(f"Invalid messages format: {e}") from e


def get_provider(app: FastAPI) -> ModelProvider:
    """Return the app's model provider, creating the OpenAI client on first use."""
    if app.state.provider is None:
        settings: Settings = app.state.settings
        app.state.provider = ModelProvider(
            model_name=settings.model_name, api_key=settings.openai_api_key
        )
    return app.state.provider


def create_app(
    settings: Optional[Settings] = None,
    provider: Optional[ModelProvider] = None,
    agent_registry: Optional[AgentRegistry] = None,
    tool_registry: Optional[ToolRegistry] = None,
    session_store: Optional[SessionStore] = None,
) -> FastAPI:
    app = FastAPI(title="tool_chat")
    app.state.settings = settings or Settings.from_env()
    app.state.provider = provider
    app.state.agent_registry = agent_registry or create_agent_registry()
    app.state.tool_registry = tool_registry or create_tool_registry()
    app.state.session_store = session_store or SessionStore()

    @app.exception_handler(BodyValidationError)
    async def body_validation_error_handler(request: Request, exc: BodyValidationError):
        logger.warning(f"Rejected request to {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "detail": jsonable_errors(exc)},
        )

    @app.exception_handler(RequestValidationError)
    async def chat_validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Rejected request to {request.url.path}: {exc}")
        return JSONResponse(
            status_code=400, content={"error": "Invalid request", "detail": str(exc)}
        )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post("/api/chat")
    async def chat(body: ChatRequest, request: Request):
        history = parse_history(body.messages)

        try:
            agent = app.state.agent_registry.lookup(body.agentId)
        except AgentNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e

        logger.info(f"Agent tools enabled: {agent.enabled_tools}")
        loop = ConversationLoop(
            get_provider(app),
            app.state.tool_registry,
            agent,
            max_rounds=app.state.settings.max_rounds,
            session_id=body.sessionId,
        )
        return FrameStreamResponse(
            stream_frames(loop, history),
            media_type="text/event-stream",
            headers=STREAM_HEADERS,
        )

    @app.post("/api/sessions/save-message")
    async def save_message(body: SaveMessageRequest):
        if not body.sessionId or not body.agentId or not body.message:
            return JSONResponse(status_code=400, content={"error": "Missing required fields"})
        try:
            await app.state.session_store.append_message(
                body.sessionId, body.agentId, body.message
            )
        except PersistenceError as e:
            logger.error(f"Failed to save message: {e}")
            return JSONResponse(status_code=500, content={"error": "Failed to save message"})
        return {"success": True}

    return app


def jsonable_errors(exc: BodyValidationError) -> list:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()
    ]


async def stream_frames(loop: ConversationLoop, history: List[Turn]):
    """Encode the loop's events as frames, releasing the loop on every exit path."""
    encoder = FrameEncoder()
    events = loop.run(history)
    try:
        async for event in events:
            for frame in encoder.encode(event):
                yield frame
    except Exception as e:
        logger.exception(f"Streaming error: {e}")
        for frame in encoder.error(str(e) or "An error occurred"):
            yield frame
    finally:
        # Also reached when the response is cancelled; shield so the provider stream gets closed
        with anyio.CancelScope(shield=True):
            await events.aclose()
        if not encoder.finished:
            logger.info("SYSTEM: Client disconnected before the stream finished")


app = create_app()
