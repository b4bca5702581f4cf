"""
Configuration settings for the HR interview session service.
All settings can be overridden via environment variables.
"""
import os
from dataclasses import dataclass, field


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class BackendConfig:
    """Hosted backend-as-a-service configuration (tables, storage, auth)."""
    mode: str = field(default_factory=lambda: os.getenv("BACKEND_MODE", "memory"))  # memory | rest
    base_url: str = field(default_factory=lambda: os.getenv("BACKEND_URL", "http://localhost:54321"))
    api_key: str = field(default_factory=lambda: os.getenv("BACKEND_API_KEY", ""))
    timeout: int = 30

    sessions_table: str = "hr_interviews"
    questions_table: str = "hr_interview_questions"
    answers_bucket: str = "interview_responses"


@dataclass
class RecordingConfig:
    """Answer recording configuration."""
    mime_type: str = "audio/webm"
    file_extension: str = "webm"
    max_pending_fragments: int = field(default_factory=lambda: int(os.getenv("MAX_PENDING_FRAGMENTS", "4096")))
    capture_video: bool = True
    capture_audio: bool = True


@dataclass
class QuestionConfig:
    """Question selection configuration."""
    policy: str = field(default_factory=lambda: os.getenv("QUESTION_POLICY", "random"))  # random | non_repeating | remote
    service_url: str = field(default_factory=lambda: os.getenv("QUESTION_SERVICE_URL", "http://localhost:9000"))
    generate_endpoint: str = "/questions/next"
    timeout: int = 15
    max_retries: int = 0

    @property
    def generate_url(self) -> str:
        return f"{self.service_url}{self.generate_endpoint}"


@dataclass
class SessionConfig:
    """Session flow configuration (navigation targets and failure policy)."""
    login_route: str = "/login"
    setup_failed_route: str = "/hr-interview"
    results_route: str = "/dashboard"

    # Mark questions whose answer upload failed instead of silently moving on
    flag_failed_uploads: bool = field(default_factory=lambda: _env_bool("FLAG_FAILED_UPLOADS", True))


class Config:
    """Main configuration class combining all config sections."""

    def __init__(self):
        self.backend = BackendConfig()
        self.recording = RecordingConfig()
        self.questions = QuestionConfig()
        self.session = SessionConfig()
        self.log_level = os.getenv("LOG_LEVEL", "INFO")


# Global config instance
config = Config()
