"""
Question selection policies for the interview loop.
"""
import asyncio
import random
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from utils.config import config
from .question_client import QuestionServiceClient

logger = logging.getLogger(__name__)


# Fixed HR prompt pool
HR_QUESTIONS = [
    "Tell me about yourself and your background.",
    "Why are you interested in this position?",
    "What are your greatest strengths?",
    "Where do you see yourself in 5 years?",
    "Why should we hire you?",
]


class QuestionPolicy(ABC):
    """Chooses the next prompt for a session."""

    @abstractmethod
    async def next_question(self, session_id: str, asked: List[str]) -> str:
        """
        Choose the next prompt.

        Args:
            session_id: The interview session
            asked: Prompts already issued in this session, oldest first
        """


class RandomQuestionPolicy(QuestionPolicy):
    """Uniform random choice from the pool; repeats are allowed."""

    def __init__(self, prompts: Optional[List[str]] = None, rng: Optional[random.Random] = None):
        self.prompts = list(HR_QUESTIONS if prompts is None else prompts)
        if not self.prompts:
            raise ValueError("Question pool must not be empty")
        self.rng = rng or random.Random()

    async def next_question(self, session_id: str, asked: List[str]) -> str:
        return self.rng.choice(self.prompts)


class NonRepeatingQuestionPolicy(RandomQuestionPolicy):
    """Random choice among prompts not yet asked; starts over once the pool is used up."""

    async def next_question(self, session_id: str, asked: List[str]) -> str:
        unasked = [p for p in self.prompts if p not in asked]
        if not unasked:
            logger.info(f"Question pool exhausted for session {session_id}, starting over")
            unasked = self.prompts
        return self.rng.choice(unasked)


class RemoteQuestionPolicy(QuestionPolicy):
    """
    Asks an adaptive-question service, falling back to a local policy when
    the service is unavailable or returns nothing usable.
    """

    def __init__(self, client: Optional[QuestionServiceClient] = None, fallback: Optional[QuestionPolicy] = None):
        self.client = client or QuestionServiceClient()
        self.fallback = fallback or RandomQuestionPolicy()

    async def next_question(self, session_id: str, asked: List[str]) -> str:
        question = await asyncio.to_thread(self.client.generate_question, session_id, list(asked))
        if not question:
            logger.warning(f"Question service failed for session {session_id}, using fallback")
            return await self.fallback.next_question(session_id, asked)
        return question


def build_question_policy(name: Optional[str] = None) -> QuestionPolicy:
    """Create the policy named in config (random | non_repeating | remote)."""
    name = (name or config.questions.policy).strip().lower()

    if name == "random":
        return RandomQuestionPolicy()
    if name == "non_repeating":
        return NonRepeatingQuestionPolicy()
    if name == "remote":
        return RemoteQuestionPolicy()

    raise ValueError(f"Unknown question policy: {name}")
