"""
Interview session controller.

Owns the lifecycle of one HR interview session: acquires the camera and
microphone, drives the question/answer loop, records each answer, uploads it
and advances until the interview is ended. Collaborators are injected; the
view layer follows along through `events`.
"""
import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from utils.config import Config, config as default_config
from models.schemas import (
    AnswerStatus,
    ControllerState,
    InterviewSession,
    QuestionRecord,
    SessionStatus,
    StoredAnswer,
)
from media.capture import MediaCapture, MediaDevicePlatform, MediaDeviceError
from storage.base import SessionStore, BlobStorage, AuthProvider, answer_path
from .errors import (
    InterviewSessionError,
    Unauthorized,
    SessionNotFound,
    DeviceUnavailable,
    PersistenceError,
    UploadError,
    InvalidTransition,
)
from .events import EventEmitter, EventKind, SessionEvent
from .questions import QuestionPolicy, build_question_policy
from .recording import Recording, EncodedClip
from .states import InterviewStates

logger = logging.getLogger(__name__)


class InterviewSessionController:
    """
    State machine for one interview session:

        initializing -> ready -> recording -> uploading -> ready -> ... -> ended

    All operations run on a single event loop. The media capture is owned
    exclusively by the controller and released exactly once.
    """

    def __init__(
        self,
        session_id: str,
        store: SessionStore,
        storage: BlobStorage,
        devices: MediaDevicePlatform,
        auth: AuthProvider,
        question_policy: Optional[QuestionPolicy] = None,
        settings: Optional[Config] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            session_id: Id of the interview record created beforehand
            store: Session and question tables
            storage: Blob storage for answer clips
            devices: Camera/microphone platform
            auth: Resolves the signed-in user
            question_policy: Prompt selection (defaults to the configured policy)
            settings: Configuration (defaults to the global config)
            clock: Wall clock in seconds, used for answer storage keys
        """
        self.session_id = session_id
        self.store = store
        self.storage = storage
        self.devices = devices
        self.auth = auth
        self.settings = settings or default_config
        self.question_policy = question_policy or build_question_policy(self.settings.questions.policy)
        self.events = EventEmitter()

        self.state = ControllerState.INITIALIZING
        self.session: Optional[InterviewSession] = None
        self.user_id: Optional[str] = None

        # Question/answer tracking
        self.questions: List[QuestionRecord] = []
        self.current_question: Optional[QuestionRecord] = None
        self.answers: Dict[str, StoredAnswer] = {}
        self.failed_uploads: List[str] = []

        # Owned resources
        self._capture: Optional[MediaCapture] = None
        self._capture_released = False
        self._recording: Optional[Recording] = None
        self._recording_question: Optional[QuestionRecord] = None
        self._answer_task: Optional[asyncio.Task] = None

        self._question_lock = asyncio.Lock()
        self._ending = False
        self._clock = clock
        self._last_answer_millis = 0

    # ========================================
    # Properties
    # ========================================

    @property
    def capture(self) -> Optional[MediaCapture]:
        return self._capture

    @property
    def is_recording(self) -> bool:
        return self._recording is not None

    @property
    def ended(self) -> bool:
        return self.state == ControllerState.ENDED

    # ========================================
    # Lifecycle
    # ========================================

    async def initialize(self) -> Optional[QuestionRecord]:
        """
        Attach to the session: check the user, load the session record,
        acquire the camera/microphone and issue the first question.

        Returns:
            The first question, or None if the session was torn down meanwhile

        Raises:
            Unauthorized, SessionNotFound, DeviceUnavailable, PersistenceError
        """
        if self.state != ControllerState.INITIALIZING:
            raise InvalidTransition(f"Session {self.session_id} is already {self.state.value}")

        routes = self.settings.session
        try:
            self.user_id = await self.auth.current_user()
            if not self.user_id:
                raise Unauthorized("Sign in required", redirect_to=routes.login_route)

            session = await self.store.get_session(self.session_id)
            if session is None:
                raise SessionNotFound(self.session_id, redirect_to=routes.setup_failed_route)
            self.session = session
            if self.ended:
                return None

            recording = self.settings.recording
            try:
                capture = await self.devices.acquire(video=recording.capture_video, audio=recording.capture_audio)
            except MediaDeviceError as e:
                raise DeviceUnavailable(str(e), redirect_to=routes.setup_failed_route) from e

            if self.ended:
                # Torn down while waiting for the device
                capture.release()
                return None
            self._capture = capture

            return await self._advance()

        except InterviewSessionError as e:
            logger.error(f"Error setting up interview {self.session_id}: {e}")
            self._release_capture()
            if not self.ended:
                self._transition(ControllerState.ENDED)
            self._notify("Error", "Failed to setup interview session", variant="destructive")
            self._navigate(e.redirect_to or routes.setup_failed_route)
            raise

    async def end_interview(self) -> bool:
        """
        Mark the session completed, release the capture and send the user to
        the results view.

        Returns:
            True if this call ended the interview, False if it had already ended

        Raises:
            PersistenceError: if the status write failed (the session stays active)
        """
        if self.ended or self._ending:
            return False

        self._ending = True
        try:
            await self.store.update_session_status(self.session_id, SessionStatus.COMPLETED)
        except PersistenceError as e:
            self._ending = False
            logger.error(f"Error ending interview {self.session_id}: {e}")
            self._notify("Error", "Failed to end interview session", variant="destructive")
            self._resume_after_failed_end()
            raise
        finally:
            self._ending = False

        if self.session is not None:
            self.session.status = SessionStatus.COMPLETED
        self._discard_recording()
        self._release_capture()
        if not self.ended:
            self._transition(ControllerState.ENDED)

        self._notify("Interview Completed", "Your feedback will be available in the dashboard soon.")
        self._navigate(self.settings.session.results_route)
        logger.info(f"Interview {self.session_id} completed with {len(self.answers)} stored answers")
        return True

    def teardown(self) -> None:
        """Abandon the session: free the capture without touching the session record."""
        self._discard_recording()
        self._release_capture()
        if not self.ended:
            self._transition(ControllerState.ENDED)

    def _resume_after_failed_end(self) -> None:
        # An answer task that finished while ending skipped the next question
        task = self._answer_task
        if self.state != ControllerState.UPLOADING or (task is not None and not task.done()):
            return
        self.current_question = None
        self._transition(ControllerState.READY)
        self._notify(
            "Error",
            "Failed to load the next question",
            variant="destructive",
            retryable=True,
        )

    async def wait_idle(self) -> None:
        """Wait for an in-flight answer upload to finish."""
        task = self._answer_task
        if task is not None and not task.done():
            await asyncio.gather(task, return_exceptions=True)

    # ========================================
    # Question Loop
    # ========================================

    async def generate_next_question(self) -> Optional[QuestionRecord]:
        """
        Choose, persist and expose the next question.

        Returns:
            The new question, or None if the interview is ending

        Raises:
            InvalidTransition: while recording or after the interview ended
            PersistenceError: if the question could not be saved; calling
                again from the ready state retries
        """
        try:
            return await self._advance()
        except PersistenceError as e:
            logger.error(f"Error saving next question for {self.session_id}: {e}")
            self._notify(
                "Error",
                "Failed to load the next question",
                variant="destructive",
                retryable=True,
            )
            raise

    async def _advance(self) -> Optional[QuestionRecord]:
        async with self._question_lock:
            if not InterviewStates.can_transition(self.state, ControllerState.READY):
                raise InvalidTransition(f"Cannot generate a question while {self.state.value}")

            asked = [q.question for q in self.questions]
            text = await self.question_policy.next_question(self.session_id, asked)
            if self.ended or self._ending:
                logger.info(f"Interview {self.session_id} is ending, not saving another question")
                return None
            question_id = await self.store.insert_question(self.session_id, text)

            record = QuestionRecord(id=question_id, interview_id=self.session_id, question=text)
            self.questions.append(record)

            if self.ended:
                logger.info(f"Interview {self.session_id} ended while question {question_id} was saved")
                return record

            self.current_question = record
            self._transition(ControllerState.READY)
            self._emit(EventKind.QUESTION, question_id=record.id, question=record.question)
            return record

    # ========================================
    # Recording
    # ========================================

    def start_recording(self) -> bool:
        """
        Begin recording an answer to the current question.

        Returns:
            False without side effects when no capture is held, a recording
            is active, an upload is in flight or there is no current question
        """
        if self._capture is None or self._capture_released:
            logger.debug(f"Start ignored for {self.session_id}: no capture")
            return False
        if self._recording is not None:
            logger.debug(f"Start ignored for {self.session_id}: already recording")
            return False
        if not InterviewStates.accepts_recording(self.state):
            logger.info(f"Start ignored for {self.session_id}: controller is {self.state.value}")
            return False
        if self.current_question is None:
            logger.info(f"Start ignored for {self.session_id}: no current question")
            return False

        recording_config = self.settings.recording
        recording = Recording(
            mime_type=recording_config.mime_type,
            max_pending_fragments=recording_config.max_pending_fragments,
        )
        self._capture.start(recording.push)
        self._recording = recording
        self._recording_question = self.current_question
        self._transition(ControllerState.RECORDING)
        return True

    async def stop_recording(self) -> Optional[asyncio.Task]:
        """
        Finish the current recording and hand it to the answer task, which
        uploads the clip, attaches it to the question and moves on.

        Returns:
            The scheduled answer task, or None when nothing was recording
        """
        if self._recording is None or self.state != ControllerState.RECORDING:
            return None

        recording = self._recording
        question = self._recording_question
        self._transition(ControllerState.UPLOADING)

        try:
            await self._capture.stop()
        except MediaDeviceError as e:
            logger.warning(f"Capture did not stop cleanly for {self.session_id}: {e}")

        if recording.closed:
            # Discarded by end_interview/teardown while the capture was stopping
            return None

        self._recording = None
        self._recording_question = None
        clip = recording.finalize()

        task = asyncio.create_task(self._store_answer(question, clip))
        task.add_done_callback(self._on_answer_task_done)
        self._answer_task = task
        return task

    async def _store_answer(self, question: QuestionRecord, clip: EncodedClip) -> None:
        path = self._next_answer_path()
        try:
            result = await self.storage.upload(path, clip.data, clip.mime_type)
        except UploadError as e:
            logger.error(f"Error uploading response for {self.session_id}: {e}")
            await self._record_failed_upload(question, path, e)
        else:
            await self._attach_answer(question, result.get("path", path))

        if self.ended or self._ending:
            logger.info(f"Interview {self.session_id} ended during upload, not advancing")
            return

        try:
            await self.generate_next_question()
        except PersistenceError:
            if self.state == ControllerState.UPLOADING:
                self.current_question = None
                self._transition(ControllerState.READY)

    async def _attach_answer(self, question: QuestionRecord, path: str) -> None:
        if question.audio_response_url:
            logger.warning(f"Question {question.id} already has an answer, keeping {question.audio_response_url}")
            return

        try:
            await self.store.update_question(
                self.session_id,
                question.question,
                path,
                question_id=question.id,
            )
        except PersistenceError as e:
            logger.error(f"Uploaded {path} but could not attach it to question {question.id}: {e}")
            return

        question.audio_response_url = path
        question.answer_status = AnswerStatus.UPLOADED
        answer = StoredAnswer(path=path, question_id=question.id)
        self.answers[question.id] = answer
        self._emit(EventKind.ANSWER_STORED, question_id=question.id, path=path)

    async def _record_failed_upload(self, question: QuestionRecord, path: str, error: UploadError) -> None:
        question.answer_status = AnswerStatus.UPLOAD_FAILED
        self.failed_uploads.append(question.id)
        self._emit(EventKind.UPLOAD_FAILED, question_id=question.id, path=path, error=str(error))

        if not self.settings.session.flag_failed_uploads:
            return

        try:
            await self.store.update_question(
                self.session_id,
                question.question,
                None,
                question_id=question.id,
                status=AnswerStatus.UPLOAD_FAILED,
            )
        except PersistenceError as e:
            logger.error(f"Could not flag failed upload on question {question.id}: {e}")
        self._notify("Upload failed", "Your answer to the previous question could not be saved.", variant="destructive")

    def _on_answer_task_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Answer task for {self.session_id} failed: {error!r}")

    def _next_answer_path(self) -> str:
        # Strictly increasing so two clips never share a storage key
        millis = int(self._clock() * 1000)
        if millis <= self._last_answer_millis:
            millis = self._last_answer_millis + 1
        self._last_answer_millis = millis
        return answer_path(self.session_id, millis, self.settings.recording.file_extension)

    # ========================================
    # Resources
    # ========================================

    def _discard_recording(self) -> None:
        if self._recording is not None:
            self._recording.discard()
        self._recording = None
        self._recording_question = None

    def _release_capture(self) -> None:
        if self._capture_released:
            return
        self._capture_released = True
        if self._capture is not None:
            self._capture.release()

    # ========================================
    # Events
    # ========================================

    def _transition(self, target: ControllerState) -> None:
        if not InterviewStates.can_transition(self.state, target):
            raise InvalidTransition(f"Cannot move from {self.state.value} to {target.value}")
        previous = self.state
        self.state = target
        logger.debug(f"Session {self.session_id}: {previous.value} -> {target.value}")
        self._emit(EventKind.STATE_CHANGED, previous=previous.value)

    def _emit(self, kind: EventKind, **data: Any) -> None:
        self.events.emit(SessionEvent(kind=kind, session_id=self.session_id, state=self.state, data=data))

    def _notify(self, title: str, description: str, variant: str = "default", retryable: bool = False) -> None:
        self._emit(EventKind.NOTICE, title=title, description=description, variant=variant, retryable=retryable)

    def _navigate(self, route: str) -> None:
        self._emit(EventKind.NAVIGATE, route=route)

    def snapshot(self) -> Dict[str, Any]:
        """Get the current session status."""
        return {
            "session_id": self.session_id,
            "state": self.state,
            "current_question": self.current_question.question if self.current_question else None,
            "current_question_id": self.current_question.id if self.current_question else None,
            "questions_asked": len(self.questions),
            "answers_stored": len(self.answers),
            "failed_uploads": len(self.failed_uploads),
            "is_recording": self.is_recording,
            "ended": self.ended,
        }
