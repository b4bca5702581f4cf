# Interview module
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
from .states import InterviewStates, TRANSITIONS
from .recording import Recording, EncodedClip
from .questions import (
    HR_QUESTIONS,
    QuestionPolicy,
    RandomQuestionPolicy,
    NonRepeatingQuestionPolicy,
    RemoteQuestionPolicy,
    build_question_policy,
)
from .controller import InterviewSessionController
