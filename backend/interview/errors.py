"""
Error taxonomy for the interview session workflow.
"""
from typing import Optional


class InterviewSessionError(Exception):
    """Base class for interview session failures."""

    user_message = "Something went wrong with the interview session"

    def __init__(self, message: str = "", redirect_to: Optional[str] = None):
        super().__init__(message or self.user_message)
        self.redirect_to = redirect_to


class Unauthorized(InterviewSessionError):
    """The caller is not signed in."""
    user_message = "You need to sign in to start an interview"


class SessionNotFound(InterviewSessionError):
    """The interview record does not exist in the store."""
    user_message = "Interview session not found"

    def __init__(self, session_id: str, redirect_to: Optional[str] = None):
        super().__init__(f"Interview session {session_id} not found", redirect_to)
        self.session_id = session_id


class DeviceUnavailable(InterviewSessionError):
    """Camera/microphone access was denied or no device could be opened."""
    user_message = "Camera and microphone access is required for the interview"


class PersistenceError(InterviewSessionError):
    """A question or session status write failed."""
    user_message = "Failed to save interview data"


class UploadError(InterviewSessionError):
    """An answer clip could not be uploaded."""
    user_message = "Failed to upload your answer"


class InvalidTransition(InterviewSessionError):
    """An operation was requested in a state that does not allow it."""
    user_message = "That action is not available right now"
