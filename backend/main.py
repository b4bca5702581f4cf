"""
HR Interview Session - FastAPI Backend

Drives interview session controllers for browser clients:
- Session setup against the hosted backend (auth, tables, storage)
- Answer recording from streamed MediaRecorder fragments
- Best-effort answer upload and question advancement
- View events (notices, navigation) for the client to render
"""
import sys
import os
import copy
import logging
from collections import deque
from typing import Dict, Any, Optional, Deque

from fastapi import FastAPI, UploadFile, File, HTTPException, Header, Query
from fastapi.middleware.cors import CORSMiddleware

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from utils.config import config
from models.schemas import (
    InitializeSessionRequest,
    CreateSessionRequest,
    SessionSnapshot,
    SessionStatusResponse,
)
from interview import (
    InterviewSessionController,
    InterviewSessionError,
    Unauthorized,
    SessionNotFound,
    DeviceUnavailable,
    PersistenceError,
    InvalidTransition,
    EventKind,
    SessionEvent,
)
from media import StreamedCapture, StreamedDevicePlatform
from storage import (
    InMemorySessionStore,
    InMemoryBlobStorage,
    StaticAuthProvider,
    BackendClient,
    RestSessionStore,
    RestBlobStorage,
    TokenAuthProvider,
)

logging.basicConfig(level=getattr(logging, config.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

# ================================================================
# FastAPI App Initialization
# ================================================================

app = FastAPI(
    title="HR Interview Session API",
    description="Interview session controller: recording, upload and question loop",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ================================================================
# Backend Collaborators
# ================================================================

# Shared in-memory backend for BACKEND_MODE=memory
memory_store = InMemorySessionStore()
memory_blobs = InMemoryBlobStorage()

# View events kept per session for polling clients
MAX_QUEUED_EVENTS = 50


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def build_collaborators(access_token: Optional[str]):
    """Create store, storage and auth collaborators for one session."""
    if config.backend.mode == "rest":
        client = BackendClient(access_token=access_token)
        return RestSessionStore(client), RestBlobStorage(client), TokenAuthProvider(client)
    # Memory mode treats any bearer token as the user id
    return memory_store, memory_blobs, StaticAuthProvider(access_token)


# ================================================================
# Session Management
# ================================================================

class SessionHandle:
    """A live controller plus the view events queued for its client."""

    def __init__(self, controller: InterviewSessionController):
        self.controller = controller
        self.events: Deque[Dict[str, Any]] = deque(maxlen=MAX_QUEUED_EVENTS)
        self.unsubscribe = controller.events.subscribe(self._queue)

    def _queue(self, event: SessionEvent):
        if event.kind in (EventKind.NOTICE, EventKind.NAVIGATE, EventKind.UPLOAD_FAILED):
            self.events.append(event.to_dict())

    def drain_events(self):
        events = list(self.events)
        self.events.clear()
        return events


_sessions: Dict[str, SessionHandle] = {}


def get_handle(session_id: str) -> SessionHandle:
    """Get the live handle for a session."""
    handle = _sessions.get(session_id)
    if handle is None:
        raise HTTPException(
            status_code=404,
            detail="No active interview session. Please initialize the session first."
        )
    return handle


def _error_detail(error: InterviewSessionError, events=None) -> Dict[str, Any]:
    detail = {
        "error": type(error).__name__,
        "message": error.user_message,
        "detail": str(error),
        "redirect_to": error.redirect_to,
    }
    if events is not None:
        detail["events"] = events
    return detail


def _snapshot(handle: SessionHandle) -> Dict[str, Any]:
    return SessionSnapshot(**handle.controller.snapshot()).model_dump(mode="json")


# ================================================================
# API Endpoints
# ================================================================

@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "running",
        "version": "1.0.0",
        "service": "HR Interview Session",
        "backend_mode": config.backend.mode,
        "active_sessions": len(_sessions),
    }


@app.post("/sessions/{session_id}/initialize")
async def initialize_session(
    session_id: str,
    request: InitializeSessionRequest,
    authorization: Optional[str] = Header(None),
):
    """
    Attach a controller to an existing interview session.

    Args:
        session_id: The interview record id
        request: Requested tracks and whether the browser granted device access

    Returns:
        Session snapshot with the first question
    """
    existing = _sessions.get(session_id)
    if existing is not None and not existing.controller.ended:
        raise HTTPException(status_code=409, detail="Interview session is already active")

    settings = copy.deepcopy(config)
    settings.recording.capture_video = request.video
    settings.recording.capture_audio = request.audio

    store, storage, auth = build_collaborators(_bearer_token(authorization))
    controller = InterviewSessionController(
        session_id=session_id,
        store=store,
        storage=storage,
        devices=StreamedDevicePlatform(granted=request.device_granted),
        auth=auth,
        settings=settings,
    )
    handle = SessionHandle(controller)

    try:
        await controller.initialize()
    except Unauthorized as e:
        raise HTTPException(status_code=401, detail=_error_detail(e, handle.drain_events()))
    except SessionNotFound as e:
        raise HTTPException(status_code=404, detail=_error_detail(e, handle.drain_events()))
    except DeviceUnavailable as e:
        raise HTTPException(status_code=403, detail=_error_detail(e, handle.drain_events()))
    except PersistenceError as e:
        raise HTTPException(status_code=502, detail=_error_detail(e, handle.drain_events()))

    _sessions[session_id] = handle
    logger.info(f"Interview session {session_id} initialized")
    return _snapshot(handle)


@app.post("/sessions/{session_id}/recording/start")
async def start_recording(session_id: str):
    """Start recording an answer to the current question."""
    handle = get_handle(session_id)
    started = handle.controller.start_recording()
    return {"started": started, **_snapshot(handle)}


@app.post("/sessions/{session_id}/recording/fragments")
async def push_fragment(session_id: str, file: UploadFile = File(...)):
    """
    Receive one MediaRecorder chunk from the browser.

    Returns:
        Whether an active recording accepted the fragment
    """
    handle = get_handle(session_id)
    capture = handle.controller.capture
    if not isinstance(capture, StreamedCapture):
        raise HTTPException(status_code=409, detail="Session has no streamed capture")

    content = await file.read()
    accepted = bool(content) and capture.feed(content)
    return {"accepted": accepted, "size": len(content)}


@app.post("/sessions/{session_id}/recording/stop")
async def stop_recording(session_id: str, wait: bool = Query(False)):
    """
    Stop recording and upload the answer.

    Args:
        wait: Block until the upload finished and the next question is ready
    """
    handle = get_handle(session_id)
    task = await handle.controller.stop_recording()
    if task is not None and wait:
        await handle.controller.wait_idle()
    return {"stopped": task is not None, **_snapshot(handle)}


@app.post("/sessions/{session_id}/questions/next")
async def next_question(session_id: str):
    """Retry loading the next question after a failed save."""
    handle = get_handle(session_id)
    try:
        await handle.controller.generate_next_question()
    except InvalidTransition as e:
        raise HTTPException(status_code=409, detail=_error_detail(e))
    except PersistenceError as e:
        raise HTTPException(status_code=502, detail=_error_detail(e, handle.drain_events()))
    return _snapshot(handle)


@app.post("/sessions/{session_id}/end")
async def end_interview(session_id: str):
    """
    End the interview and mark the session completed.

    Returns:
        Snapshot plus the notice and navigation events for the client
    """
    handle = get_handle(session_id)
    try:
        ended = await handle.controller.end_interview()
    except PersistenceError as e:
        raise HTTPException(status_code=502, detail=_error_detail(e, handle.drain_events()))

    response = {"ended_now": ended, **_snapshot(handle), "events": handle.drain_events()}
    if handle.controller.ended:
        # Final events are in the response; the handle is no longer needed
        _sessions.pop(session_id, None)
        handle.unsubscribe()
    return response


@app.delete("/sessions/{session_id}")
async def teardown_session(session_id: str):
    """Abandon the session and free its capture."""
    handle = _sessions.pop(session_id, None)
    if handle is None:
        raise HTTPException(status_code=404, detail="No active interview session")
    handle.controller.teardown()
    handle.unsubscribe()
    return {"status": "Interview session closed", "session_id": session_id}


@app.get("/sessions/{session_id}", response_model=SessionStatusResponse)
async def get_session_status(session_id: str):
    """
    Get the session snapshot and any view events queued since the last poll.
    """
    handle = get_handle(session_id)
    return SessionStatusResponse(**handle.controller.snapshot(), events=handle.drain_events())


@app.post("/debug/sessions")
async def debug_create_session(request: CreateSessionRequest):
    """
    Create an interview record in the in-memory backend.
    Sessions are created by the booking flow when a real backend is used.
    """
    if config.backend.mode != "memory":
        raise HTTPException(status_code=404, detail="Only available with the in-memory backend")
    session = memory_store.create_session(user_id=request.user_id)
    return {"session_id": session.id, "status": session.status.value}


@app.on_event("shutdown")
async def _shutdown():
    for session_id, handle in list(_sessions.items()):
        handle.controller.teardown()
        logger.info(f"Released capture for session {session_id} on shutdown")
    _sessions.clear()


# ================================================================
# Main Entry Point
# ================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
