"""
FastAPI Application — REST API for playing scripted conversations.

Provides:
- Sequence discovery
- Session lifecycle (start, inspect, delete)
- User interaction (choice selection, free-text input)
- Per-session user data inspection and seeding
- Content cache maintenance
"""
from __future__ import annotations

import uuid
import structlog
from datetime import datetime, timezone
from typing import Any, Optional

# Load .env before any config is read
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from config.settings import get_settings
from core.engine import ScriptFlowEngine
from flow.orchestrator import FlowOrchestrator, FlowResponse, InvalidInteractionError
from flow.sequences import SequenceLoadError, SequenceNotFoundError

logger = structlog.get_logger()

# ──────────────────────────────────────────────────────────────
#  Bootstrap
# ──────────────────────────────────────────────────────────────

engine = ScriptFlowEngine(get_settings())


class Session:
    def __init__(self, session_id: str, orchestrator: FlowOrchestrator):
        self.id = session_id
        self.orchestrator = orchestrator
        self.created_at = datetime.now(timezone.utc)

    @property
    def store(self):
        return self.orchestrator.store

    def snapshot(self) -> dict[str, Any]:
        last = self.orchestrator.last_response
        return {
            "session_id": self.id,
            "sequence_id": self.orchestrator.sequence_id,
            "awaiting_message_id": self.orchestrator.awaiting_message_id,
            "created_at": self.created_at.isoformat(),
            "last_response": last.model_dump(mode="json") if last else None,
        }


sessions: dict[str, Session] = {}


# ──────────────────────────────────────────────────────────────
#  App
# ──────────────────────────────────────────────────────────────

app = FastAPI(
    title="ScriptFlow API",
    description="Scripted branching conversations with semantic content",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ──────────────────────────────────────────────────────────────
#  Request/Response Models
# ──────────────────────────────────────────────────────────────

class StartSessionRequest(BaseModel):
    sequence_id: Optional[str] = None
    message_id: Optional[int] = None
    user_data: dict[str, Any] = {}


class ChoiceRequest(BaseModel):
    choice_index: int


class TextInputRequest(BaseModel):
    text: str


class UserDataRequest(BaseModel):
    values: dict[str, Any]


class SessionResponse(BaseModel):
    session_id: str
    response: FlowResponse


def _get_session(session_id: str) -> Session:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(404, "Session not found")
    return session


# ══════════════════════════════════════════════════════════════
#  HEALTH & DIAGNOSTICS
# ══════════════════════════════════════════════════════════════

@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "sessions": len(sessions),
        "cached_content_keys": len(engine.cache),
    }


# ══════════════════════════════════════════════════════════════
#  SEQUENCES
# ══════════════════════════════════════════════════════════════

@app.get("/api/v1/sequences")
async def list_sequences():
    return {"sequences": engine.registry.list_available()}


# ══════════════════════════════════════════════════════════════
#  SESSIONS
# ══════════════════════════════════════════════════════════════

@app.post("/api/v1/sessions", response_model=SessionResponse)
async def start_session(req: StartSessionRequest):
    session_id = uuid.uuid4().hex[:16]
    orchestrator = engine.new_session(namespace=session_id)
    if req.user_data:
        await orchestrator.store.update(req.user_data)

    sequence_id = req.sequence_id or engine.settings.flow.initial_sequence
    message_id = req.message_id
    if message_id is None and not req.sequence_id:
        message_id = engine.settings.flow.initial_message_id
    try:
        response = await orchestrator.start(sequence_id, message_id=message_id)
    except SequenceNotFoundError:
        raise HTTPException(404, f"Sequence '{sequence_id}' not found")
    except SequenceLoadError as e:
        raise HTTPException(400, str(e))

    sessions[session_id] = Session(session_id, orchestrator)
    logger.info("session_started", session_id=session_id, sequence_id=sequence_id,
                status=response.status.value)
    return SessionResponse(session_id=session_id, response=response)


@app.get("/api/v1/sessions/{session_id}")
async def get_session(session_id: str):
    return _get_session(session_id).snapshot()


@app.delete("/api/v1/sessions/{session_id}")
async def delete_session(session_id: str):
    _get_session(session_id)
    del sessions[session_id]
    return {"status": "deleted"}


@app.post("/api/v1/sessions/{session_id}/choice", response_model=SessionResponse)
async def select_choice(session_id: str, req: ChoiceRequest):
    session = _get_session(session_id)
    try:
        response = await session.orchestrator.handle_choice(req.choice_index)
    except InvalidInteractionError as e:
        raise HTTPException(400, str(e))
    return SessionResponse(session_id=session_id, response=response)


@app.post("/api/v1/sessions/{session_id}/input", response_model=SessionResponse)
async def submit_input(session_id: str, req: TextInputRequest):
    session = _get_session(session_id)
    try:
        response = await session.orchestrator.handle_text_input(req.text)
    except InvalidInteractionError as e:
        raise HTTPException(400, str(e))
    return SessionResponse(session_id=session_id, response=response)


# ══════════════════════════════════════════════════════════════
#  USER DATA
# ══════════════════════════════════════════════════════════════

@app.get("/api/v1/sessions/{session_id}/data")
async def get_user_data(session_id: str):
    return await _get_session(session_id).store.get_all()


@app.put("/api/v1/sessions/{session_id}/data")
async def put_user_data(session_id: str, req: UserDataRequest):
    store = _get_session(session_id).store
    await store.update(req.values)
    return await store.get_all()


# ══════════════════════════════════════════════════════════════
#  CONTENT
# ══════════════════════════════════════════════════════════════

@app.post("/api/v1/content/cache/clear")
async def clear_content_cache():
    cleared = len(engine.cache)
    engine.clear_content_cache()
    return {"status": "cleared", "keys": cleared}
