"""
Client for a remote adaptive-question service.
Handles communication with the service, response cleaning, and retries.
"""
import time
import logging
from typing import Dict, Any, List, Optional

import requests

from utils.config import config
from utils.cleaning import QuestionCleaner

logger = logging.getLogger(__name__)


class QuestionServiceClient:
    """
    Client for the question service's generate endpoint.

    The service receives the session id and the prompts already asked and
    answers with {"question": "..."}.
    """

    def __init__(self, url: Optional[str] = None, timeout: Optional[int] = None, max_retries: Optional[int] = None):
        self.url = url or config.questions.generate_url
        self.timeout = timeout or config.questions.timeout
        self.max_retries = config.questions.max_retries if max_retries is None else max_retries
        logger.info(f"Question service client initialized: {self.url} (timeout={self.timeout}s)")

    def _make_request(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Make HTTP request to the question service with retries."""
        last_error = None

        for attempt in range(self.max_retries + 1):
            try:
                response = requests.post(
                    self.url,
                    json=payload,
                    timeout=self.timeout
                )
                response.raise_for_status()
                return response.json()
            except requests.exceptions.Timeout as e:
                last_error = e
                if attempt < self.max_retries:
                    time.sleep(1 * (attempt + 1))
            except requests.exceptions.RequestException as e:
                last_error = e
                if attempt < self.max_retries:
                    time.sleep(0.5 * (attempt + 1))

        raise ConnectionError(f"Failed to reach question service after {self.max_retries + 1} attempts: {last_error}")

    def generate_question(self, session_id: str, asked: List[str]) -> str:
        """
        Ask the service for the next prompt.

        Returns:
            The cleaned prompt, or "" when the service failed or answered
            with something unusable
        """
        payload = {"session_id": session_id, "asked_questions": asked}

        try:
            response = self._make_request(payload)
        except (ConnectionError, ValueError) as e:
            logger.warning(f"Question service unavailable: {e}")
            return ""

        raw = response.get("question", "") if isinstance(response, dict) else ""
        cleaned, is_valid = QuestionCleaner.clean_question(raw)
        if not is_valid:
            logger.warning(f"Question service returned an unusable prompt: {raw[:100]!r}")
            return ""

        logger.info(f"Service generated question: {cleaned[:80]}")
        return cleaned
