"""
Pydantic models for interview sessions, questions and the HTTP API.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional, Dict, Any

from pydantic import BaseModel, ConfigDict, Field


class SessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class AnswerStatus(str, Enum):
    PENDING = "pending"
    UPLOADED = "uploaded"
    UPLOAD_FAILED = "upload_failed"


class ControllerState(str, Enum):
    """States of the interview session controller."""
    INITIALIZING = "initializing"
    READY = "ready"
    RECORDING = "recording"
    UPLOADING = "uploading"
    ENDED = "ended"


# ================================================================
# Records
# ================================================================

class InterviewSession(BaseModel):
    """One HR interview attempt, tracked by the hosted backend."""
    model_config = ConfigDict(extra="ignore")

    id: str
    status: SessionStatus = SessionStatus.IN_PROGRESS
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None


class QuestionRecord(BaseModel):
    """One prompt issued to the candidate during a session."""
    model_config = ConfigDict(extra="ignore")

    id: str
    interview_id: str
    question: str
    audio_response_url: Optional[str] = None
    answer_status: AnswerStatus = AnswerStatus.PENDING
    created_at: datetime = Field(default_factory=datetime.now)


class StoredAnswer(BaseModel):
    """Persisted reference to an uploaded answer clip."""
    path: str
    question_id: str
    uploaded_at: datetime = Field(default_factory=datetime.now)


# ================================================================
# API bodies
# ================================================================

class InitializeSessionRequest(BaseModel):
    video: bool = True
    audio: bool = True
    # The browser reports whether getUserMedia was granted
    device_granted: bool = True


class CreateSessionRequest(BaseModel):
    user_id: Optional[str] = None


class SessionSnapshot(BaseModel):
    session_id: str
    state: ControllerState
    current_question: Optional[str] = None
    current_question_id: Optional[str] = None
    questions_asked: int = 0
    answers_stored: int = 0
    failed_uploads: int = 0
    is_recording: bool = False
    ended: bool = False


class SessionStatusResponse(SessionSnapshot):
    events: List[Dict[str, Any]] = []
