"""
REST collaborator tests against a recorded fake of requests.request.
"""
import pytest
import requests

from models.schemas import AnswerStatus, SessionStatus
from interview.errors import PersistenceError, UploadError
from storage import rest
from storage.rest import BackendClient, RestSessionStore, RestBlobStorage, TokenAuthProvider


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class RecordingTransport:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, method, url, headers=None, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "headers": headers, **kwargs})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def client():
    return BackendClient(base_url="http://backend.test", api_key="anon-key", access_token="user-token")


@pytest.fixture
def transport(monkeypatch):
    def install(*responses):
        fake = RecordingTransport(*responses)
        monkeypatch.setattr(rest.requests, "request", fake)
        return fake
    return install


async def test_get_session_filters_by_id(client, transport):
    fake = transport(FakeResponse([{"id": "s1", "status": "in_progress", "role": "ignored"}]))

    session = await RestSessionStore(client).get_session("s1")

    assert session.id == "s1"
    assert session.status == SessionStatus.IN_PROGRESS
    call = fake.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == "http://backend.test/rest/v1/hr_interviews"
    assert call["params"] == {"id": "eq.s1", "select": "*"}
    assert call["headers"]["apikey"] == "anon-key"
    assert call["headers"]["Authorization"] == "Bearer user-token"


async def test_get_session_missing_returns_none(client, transport):
    transport(FakeResponse([]))

    assert await RestSessionStore(client).get_session("nope") is None


async def test_malformed_session_row_becomes_persistence_error(client, transport):
    transport(FakeResponse([{"id": "s1", "status": "archived"}]))

    with pytest.raises(PersistenceError):
        await RestSessionStore(client).get_session("s1")


async def test_insert_question_returns_new_id(client, transport):
    fake = transport(FakeResponse([{"id": 42, "interview_id": "s1", "question": "Why?"}], status_code=201))

    question_id = await RestSessionStore(client).insert_question("s1", "Why should we hire you?")

    assert question_id == "42"
    call = fake.calls[0]
    assert call["url"] == "http://backend.test/rest/v1/hr_interview_questions"
    assert call["json"] == {"interview_id": "s1", "question": "Why should we hire you?"}
    assert call["headers"]["Prefer"] == "return=representation"


async def test_update_question_by_id(client, transport):
    fake = transport(FakeResponse(None, status_code=204))

    await RestSessionStore(client).update_question("s1", "Why?", "s1/1.webm", question_id="42")

    call = fake.calls[0]
    assert call["method"] == "PATCH"
    assert call["params"] == {"id": "eq.42"}
    assert call["json"] == {"audio_response_url": "s1/1.webm"}


async def test_update_question_by_text_and_failure_status(client, transport):
    fake = transport(FakeResponse(None, status_code=204))

    await RestSessionStore(client).update_question("s1", "Why?", None, status=AnswerStatus.UPLOAD_FAILED)

    call = fake.calls[0]
    assert call["params"] == {"interview_id": "eq.s1", "question": "eq.Why?"}
    assert call["json"] == {"answer_status": "upload_failed"}


async def test_update_session_status(client, transport):
    fake = transport(FakeResponse(None, status_code=204))

    await RestSessionStore(client).update_session_status("s1", SessionStatus.COMPLETED)

    assert fake.calls[0]["params"] == {"id": "eq.s1"}
    assert fake.calls[0]["json"] == {"status": "completed"}


async def test_write_errors_become_persistence_errors(client, transport):
    transport(FakeResponse({"message": "denied"}, status_code=403), requests.exceptions.ConnectionError("down"))
    store = RestSessionStore(client)

    with pytest.raises(PersistenceError):
        await store.insert_question("s1", "Why?")
    with pytest.raises(PersistenceError):
        await store.update_session_status("s1", SessionStatus.COMPLETED)


async def test_upload_posts_to_bucket(client, transport):
    fake = transport(FakeResponse({"Key": "interview_responses/s1/1.webm"}))

    result = await RestBlobStorage(client).upload("s1/1.webm", b"clip", "audio/webm")

    assert result == {"path": "s1/1.webm"}
    call = fake.calls[0]
    assert call["url"] == "http://backend.test/storage/v1/object/interview_responses/s1/1.webm"
    assert call["data"] == b"clip"
    assert call["headers"]["Content-Type"] == "audio/webm"


async def test_upload_errors_become_upload_errors(client, transport):
    transport(FakeResponse({"error": "Duplicate"}, status_code=409))

    with pytest.raises(UploadError):
        await RestBlobStorage(client).upload("s1/1.webm", b"clip", "audio/webm")


async def test_token_auth_resolves_user(client, transport):
    fake = transport(FakeResponse({"id": "user-1"}))

    assert await TokenAuthProvider(client).current_user() == "user-1"
    assert fake.calls[0]["url"] == "http://backend.test/auth/v1/user"


async def test_token_auth_rejected_or_missing(transport):
    transport(FakeResponse({"msg": "invalid"}, status_code=401))
    with_token = BackendClient(base_url="http://backend.test", api_key="anon-key", access_token="bad")
    without_token = BackendClient(base_url="http://backend.test", api_key="anon-key")

    assert await TokenAuthProvider(with_token).current_user() is None
    assert await TokenAuthProvider(without_token).current_user() is None
