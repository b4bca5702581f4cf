"""
REST collaborators for the hosted backend-as-a-service.

Tables are reached through a PostgREST-style endpoint (/rest/v1), answer clips
through the object storage endpoint (/storage/v1) and the signed-in user
through the auth endpoint (/auth/v1). Calls are blocking `requests` calls run
in a worker thread.
"""
import asyncio
import logging
from typing import Dict, Any, Optional

import requests
from pydantic import ValidationError

from utils.config import config
from models.schemas import InterviewSession, SessionStatus, AnswerStatus
from interview.errors import PersistenceError, UploadError
from .base import SessionStore, BlobStorage, AuthProvider

logger = logging.getLogger(__name__)


class BackendClient:
    """
    Thin HTTP client for the hosted backend.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: Optional[int] = None,
    ):
        self.base_url = base_url or config.backend.base_url
        self.api_key = api_key if api_key is not None else config.backend.api_key
        self.access_token = access_token
        self.timeout = timeout or config.backend.timeout
        logger.info(f"Backend client initialized: {self.base_url} (timeout={self.timeout}s)")

    @property
    def rest_url(self) -> str:
        return f"{self.base_url}/rest/v1"

    @property
    def storage_url(self) -> str:
        return f"{self.base_url}/storage/v1"

    @property
    def auth_url(self) -> str:
        return f"{self.base_url}/auth/v1"

    def headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.access_token or self.api_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    def request(self, method: str, url: str, headers: Optional[Dict[str, str]] = None, **kwargs) -> requests.Response:
        """
        Make an HTTP request and raise for error statuses.

        Raises:
            requests.exceptions.RequestException: on connection or HTTP errors
        """
        response = requests.request(
            method,
            url,
            headers=self.headers(headers),
            timeout=self.timeout,
            **kwargs
        )
        response.raise_for_status()
        return response


class RestSessionStore(SessionStore):
    """Session store backed by the hr_interviews / hr_interview_questions tables."""

    def __init__(self, client: BackendClient):
        self.client = client
        self.sessions_url = f"{client.rest_url}/{config.backend.sessions_table}"
        self.questions_url = f"{client.rest_url}/{config.backend.questions_table}"

    def _get_session(self, session_id: str) -> Optional[InterviewSession]:
        response = self.client.request(
            "GET",
            self.sessions_url,
            params={"id": f"eq.{session_id}", "select": "*"},
        )
        rows = response.json()
        if not rows:
            return None
        return InterviewSession.model_validate(rows[0])

    def _insert_question(self, session_id: str, text: str) -> str:
        response = self.client.request(
            "POST",
            self.questions_url,
            headers={"Prefer": "return=representation"},
            json={"interview_id": session_id, "question": text},
        )
        rows = response.json()
        if not rows or "id" not in rows[0]:
            raise PersistenceError("Question insert returned no record")
        return str(rows[0]["id"])

    def _update_question(
        self,
        session_id: str,
        question_text: str,
        answer_ref: Optional[str],
        question_id: Optional[str],
        status: AnswerStatus,
    ) -> None:
        if question_id is not None:
            params = {"id": f"eq.{question_id}"}
        else:
            params = {"interview_id": f"eq.{session_id}", "question": f"eq.{question_text}"}

        payload: Dict[str, Any] = {}
        if answer_ref is not None:
            payload["audio_response_url"] = answer_ref
        if status != AnswerStatus.UPLOADED:
            payload["answer_status"] = status.value

        self.client.request("PATCH", self.questions_url, params=params, json=payload)

    def _update_session_status(self, session_id: str, status: SessionStatus) -> None:
        self.client.request(
            "PATCH",
            self.sessions_url,
            params={"id": f"eq.{session_id}"},
            json={"status": status.value},
        )

    async def get_session(self, session_id: str) -> Optional[InterviewSession]:
        try:
            return await asyncio.to_thread(self._get_session, session_id)
        except requests.exceptions.RequestException as e:
            raise PersistenceError(f"Failed to fetch session {session_id}: {e}") from e
        except ValidationError as e:
            raise PersistenceError(f"Malformed record for session {session_id}: {e}") from e

    async def insert_question(self, session_id: str, text: str) -> str:
        try:
            return await asyncio.to_thread(self._insert_question, session_id, text)
        except requests.exceptions.RequestException as e:
            raise PersistenceError(f"Failed to save question for session {session_id}: {e}") from e

    async def update_question(
        self,
        session_id: str,
        question_text: str,
        answer_ref: Optional[str],
        question_id: Optional[str] = None,
        status: AnswerStatus = AnswerStatus.UPLOADED,
    ) -> None:
        try:
            await asyncio.to_thread(
                self._update_question, session_id, question_text, answer_ref, question_id, status
            )
        except requests.exceptions.RequestException as e:
            raise PersistenceError(f"Failed to update question for session {session_id}: {e}") from e

    async def update_session_status(self, session_id: str, status: SessionStatus) -> None:
        try:
            await asyncio.to_thread(self._update_session_status, session_id, status)
        except requests.exceptions.RequestException as e:
            raise PersistenceError(f"Failed to update status of session {session_id}: {e}") from e


class RestBlobStorage(BlobStorage):
    """Answer clip storage in the interview_responses bucket."""

    def __init__(self, client: BackendClient, bucket: Optional[str] = None):
        self.client = client
        self.bucket = bucket or config.backend.answers_bucket

    def object_url(self, path: str) -> str:
        return f"{self.client.storage_url}/object/{self.bucket}/{path}"

    def _upload(self, path: str, data: bytes, content_type: str) -> Dict[str, str]:
        self.client.request(
            "POST",
            self.object_url(path),
            headers={"Content-Type": content_type, "x-upsert": "false"},
            data=data,
        )
        return {"path": path}

    async def upload(self, path: str, data: bytes, content_type: str) -> Dict[str, str]:
        try:
            return await asyncio.to_thread(self._upload, path, data, content_type)
        except requests.exceptions.RequestException as e:
            raise UploadError(f"Failed to upload {path}: {e}") from e


class TokenAuthProvider(AuthProvider):
    """Resolves the user behind the request's access token."""

    def __init__(self, client: BackendClient):
        self.client = client

    def _current_user(self) -> Optional[str]:
        response = self.client.request("GET", f"{self.client.auth_url}/user")
        return response.json().get("id")

    async def current_user(self) -> Optional[str]:
        if not self.client.access_token:
            return None
        try:
            return await asyncio.to_thread(self._current_user)
        except requests.exceptions.HTTPError as e:
            logger.warning(f"Access token rejected: {e}")
            return None
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to resolve user: {e}")
            return None
