"""
Shared fixtures: fake media devices and collaborators for the session controller.
"""
import asyncio
import random
from typing import List, Optional

import pytest

from utils.config import Config
from media.capture import MediaCapture, MediaDevicePlatform, PermissionDenied
from storage.memory import InMemorySessionStore, InMemoryBlobStorage, StaticAuthProvider
from interview.errors import PersistenceError, UploadError
from interview.questions import RandomQuestionPolicy
from interview.controller import InterviewSessionController


class FakeCapture(MediaCapture):
    """Capture driven by the test; delivers `trailing` fragments when stopped."""

    def __init__(self, video=True, audio=True, trailing=(b"tail",)):
        super().__init__(video=video, audio=audio)
        self.trailing = list(trailing)
        self.start_calls = 0
        self.release_calls = 0

    def emit(self, fragment: bytes) -> bool:
        return self._deliver(fragment)

    def _begin(self):
        self.start_calls += 1

    async def _flush(self):
        for fragment in self.trailing:
            self._deliver(fragment)

    def release(self):
        self.release_calls += 1
        super().release()

    def _close(self):
        pass


class FakeDevicePlatform(MediaDevicePlatform):
    def __init__(self, deny: bool = False, gate: Optional[asyncio.Event] = None):
        self.deny = deny
        self.gate = gate
        self.captures: List[FakeCapture] = []

    async def acquire(self, video=True, audio=True):
        if self.gate is not None:
            await self.gate.wait()
        if self.deny:
            raise PermissionDenied("Permission denied")
        capture = FakeCapture(video=video, audio=audio)
        self.captures.append(capture)
        return capture

    @property
    def capture(self) -> FakeCapture:
        return self.captures[-1]


class FailingBlobStorage(InMemoryBlobStorage):
    """Blob storage whose uploads fail while `failing` is set."""

    def __init__(self, failing: bool = True):
        super().__init__()
        self.failing = failing
        self.attempts = 0

    async def upload(self, path, data, content_type):
        self.attempts += 1
        if self.failing:
            raise UploadError(f"Storage unavailable for {path}")
        return await super().upload(path, data, content_type)


class GatedBlobStorage(InMemoryBlobStorage):
    """Blob storage that holds every upload until `gate` is set."""

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()

    async def upload(self, path, data, content_type):
        await self.gate.wait()
        return await super().upload(path, data, content_type)


class FlakyStore(InMemorySessionStore):
    """Session store with switchable write failures."""

    def __init__(self):
        super().__init__()
        self.fail_inserts = 0
        self.fail_status = False
        self.status_gate: Optional[asyncio.Event] = None

    async def insert_question(self, session_id, text):
        if self.fail_inserts:
            self.fail_inserts -= 1
            raise PersistenceError("insert failed")
        return await super().insert_question(session_id, text)

    async def update_session_status(self, session_id, status):
        if self.status_gate is not None:
            await self.status_gate.wait()
        if self.fail_status:
            raise PersistenceError("status update failed")
        await super().update_session_status(session_id, status)


class FixedClock:
    def __init__(self, now: float = 1700000000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def writes_of(store: InMemorySessionStore, operation: str):
    return [args for op, args in store.writes if op == operation]


@pytest.fixture
def store():
    store = FlakyStore()
    store.create_session("s1", user_id="user-1")
    return store


@pytest.fixture
def blobs():
    return InMemoryBlobStorage()


@pytest.fixture
def devices():
    return FakeDevicePlatform()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def make_controller(store, blobs, devices, clock):
    def _make(**overrides):
        kwargs = dict(
            session_id="s1",
            store=store,
            storage=blobs,
            devices=devices,
            auth=StaticAuthProvider("user-1"),
            question_policy=RandomQuestionPolicy(rng=random.Random(7)),
            settings=Config(),
            clock=clock,
        )
        kwargs.update(overrides)
        return InterviewSessionController(**kwargs)

    return _make
