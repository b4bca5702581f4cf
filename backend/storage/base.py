"""
Collaborator interfaces for the hosted backend: tables, blob storage and auth.
"""
from abc import ABC, abstractmethod
from typing import Dict, Optional

from models.schemas import InterviewSession, SessionStatus, AnswerStatus


def answer_path(session_id: str, epoch_millis: int, extension: str = "webm") -> str:
    """Storage key for an answer clip: {sessionId}/{epochMillis}.{ext}"""
    return f"{session_id}/{epoch_millis}.{extension}"


class SessionStore(ABC):
    """
    Relational store holding interview sessions and their questions.
    Write failures raise PersistenceError.
    """

    @abstractmethod
    async def get_session(self, session_id: str) -> Optional[InterviewSession]:
        """Fetch a session record, or None if it does not exist."""

    @abstractmethod
    async def insert_question(self, session_id: str, text: str) -> str:
        """
        Persist a new question for the session.

        Returns:
            The id of the new question record
        """

    @abstractmethod
    async def update_question(
        self,
        session_id: str,
        question_text: str,
        answer_ref: Optional[str],
        question_id: Optional[str] = None,
        status: AnswerStatus = AnswerStatus.UPLOADED,
    ) -> None:
        """
        Attach an answer reference (or a failure status) to a question.

        The question is matched by id when given, otherwise by session and
        question text.
        """

    @abstractmethod
    async def update_session_status(self, session_id: str, status: SessionStatus) -> None:
        """Set the status of a session record."""


class BlobStorage(ABC):
    """Object storage for answer clips. Failures raise UploadError."""

    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str) -> Dict[str, str]:
        """
        Upload an object.

        Returns:
            Dictionary with the stored object's "path"
        """


class AuthProvider(ABC):
    """Resolves the signed-in user of the current request."""

    @abstractmethod
    async def current_user(self) -> Optional[str]:
        """Return the user id, or None when nobody is signed in."""
