"""
Text cleaning utilities for prompts returned by the remote question service.

The service may be backed by a reasoning model, so responses can carry
<think> blocks, stage directions or several sentences before the actual prompt.
"""
import re
from typing import Optional, Tuple


class QuestionCleaner:
    """
    Reduces raw service output to a single interviewer prompt.
    """

    # Patterns that indicate the service answered instead of asking
    ANSWER_INDICATORS = [
        "you should", "i recommend", "it's important to",
        "generally speaking", "in my experience", "the answer is",
        "here's what", "let me explain",
    ]

    QUESTION_WORDS = [
        'what', 'how', 'why', 'can', 'could', 'would', 'tell',
        'describe', 'explain', 'when', 'where', 'who', 'walk',
    ]

    MIN_WORDS = 3
    MAX_LENGTH = 300

    @classmethod
    def strip_reasoning(cls, text: str) -> str:
        """Remove reasoning blocks, stage directions and extra whitespace."""
        if not text:
            return ""

        cleaned = re.sub(r'<think>.*?</think>', '', text, flags=re.DOTALL | re.IGNORECASE)
        cleaned = re.sub(r'</?\s*think\s*>', '', cleaned, flags=re.IGNORECASE)

        # Parenthetical, bracketed and *emphasised* stage directions
        cleaned = re.sub(r'\([^)]*\)', '', cleaned)
        cleaned = re.sub(r'\[[^\]]*\]', '', cleaned)
        cleaned = re.sub(r'\*[^*]*\*', '', cleaned)

        # Speaker labels
        cleaned = re.sub(r'^\s*(?:interviewer|question|q)\s*:\s*', '', cleaned, flags=re.IGNORECASE)

        cleaned = re.sub(r'\s+', ' ', cleaned)
        return cleaned.strip().strip('"').strip()

    @classmethod
    def extract_first_question(cls, text: str) -> Optional[str]:
        """Extract the first question from response."""
        matches = re.findall(r'[^.!?]*\?', text)
        for match in matches:
            match = match.strip()
            if len(match.split()) >= cls.MIN_WORDS:
                return match
        return None

    @classmethod
    def is_valid_question(cls, text: str) -> bool:
        """Check if text looks like a usable interviewer prompt."""
        if not text or len(text.split()) < cls.MIN_WORDS:
            return False
        if len(text) > cls.MAX_LENGTH:
            return False

        text_lower = text.lower()
        return not any(indicator in text_lower for indicator in cls.ANSWER_INDICATORS)

    @classmethod
    def clean_question(cls, text: str) -> Tuple[str, bool]:
        """
        Full cleaning pipeline for service prompts.

        Returns:
            Tuple of (cleaned_text, is_valid)
        """
        cleaned = cls.strip_reasoning(text)
        if not cleaned:
            return "", False

        if not cls.is_valid_question(cleaned):
            question = cls.extract_first_question(cleaned)
            if not question or not cls.is_valid_question(question):
                return "", False
            cleaned = question

        # Ensure it ends with proper punctuation
        if not cleaned.endswith(('?', '!', '.')):
            if any(cleaned.lower().startswith(w) for w in cls.QUESTION_WORDS):
                cleaned += '?'
            else:
                cleaned += '.'

        return cleaned, True
