"""
In-memory collaborators for local development and tests.
"""
import logging
import uuid
from typing import Dict, List, Optional, Tuple, Any

from models.schemas import InterviewSession, QuestionRecord, SessionStatus, AnswerStatus
from interview.errors import PersistenceError, UploadError
from .base import SessionStore, BlobStorage, AuthProvider

logger = logging.getLogger(__name__)


class InMemorySessionStore(SessionStore):
    """
    Session store kept in process memory.
    Every write is journaled in `writes` as (operation, arguments).
    """

    def __init__(self):
        self.sessions: Dict[str, InterviewSession] = {}
        self.questions: Dict[str, QuestionRecord] = {}
        self.writes: List[Tuple[str, Dict[str, Any]]] = []

    def create_session(self, session_id: Optional[str] = None, user_id: Optional[str] = None) -> InterviewSession:
        """Create a session record (done by the booking flow in production)."""
        session = InterviewSession(id=session_id or str(uuid.uuid4()), user_id=user_id)
        self.sessions[session.id] = session
        return session

    def questions_for(self, session_id: str) -> List[QuestionRecord]:
        return [q for q in self.questions.values() if q.interview_id == session_id]

    async def get_session(self, session_id: str) -> Optional[InterviewSession]:
        return self.sessions.get(session_id)

    async def insert_question(self, session_id: str, text: str) -> str:
        if session_id not in self.sessions:
            raise PersistenceError(f"Cannot add question: session {session_id} does not exist")
        record = QuestionRecord(id=str(uuid.uuid4()), interview_id=session_id, question=text)
        self.questions[record.id] = record
        self.writes.append(("insert_question", {"session_id": session_id, "question": text}))
        return record.id

    async def update_question(
        self,
        session_id: str,
        question_text: str,
        answer_ref: Optional[str],
        question_id: Optional[str] = None,
        status: AnswerStatus = AnswerStatus.UPLOADED,
    ) -> None:
        if question_id is not None:
            matches = [self.questions[question_id]] if question_id in self.questions else []
        else:
            matches = [q for q in self.questions_for(session_id) if q.question == question_text]

        for record in matches:
            record.answer_status = status
            if answer_ref is not None:
                record.audio_response_url = answer_ref

        self.writes.append(("update_question", {
            "session_id": session_id,
            "question_id": question_id,
            "answer_ref": answer_ref,
            "status": status.value,
        }))

    async def update_session_status(self, session_id: str, status: SessionStatus) -> None:
        session = self.sessions.get(session_id)
        if session is None:
            raise PersistenceError(f"Cannot update status: session {session_id} does not exist")
        session.status = status
        self.writes.append(("update_session_status", {"session_id": session_id, "status": status.value}))


class InMemoryBlobStorage(BlobStorage):
    """Blob storage kept in process memory. Existing paths are never overwritten."""

    def __init__(self):
        self.objects: Dict[str, Tuple[bytes, str]] = {}

    async def upload(self, path: str, data: bytes, content_type: str) -> Dict[str, str]:
        if path in self.objects:
            raise UploadError(f"The resource already exists: {path}")
        self.objects[path] = (data, content_type)
        logger.info(f"Stored {len(data)} bytes at {path}")
        return {"path": path}


class StaticAuthProvider(AuthProvider):
    """Auth provider with a fixed user (None means signed out)."""

    def __init__(self, user_id: Optional[str]):
        self.user_id = user_id

    async def current_user(self) -> Optional[str]:
        return self.user_id
