"""
Question policy, service client and cleaning tests.
"""
import random

import pytest
import requests

from interview import question_client
from interview.questions import (
    HR_QUESTIONS,
    RandomQuestionPolicy,
    NonRepeatingQuestionPolicy,
    RemoteQuestionPolicy,
    build_question_policy,
)
from interview.question_client import QuestionServiceClient
from utils.cleaning import QuestionCleaner


class StubClient:
    def __init__(self, answer):
        self.answer = answer
        self.calls = []

    def generate_question(self, session_id, asked):
        self.calls.append((session_id, asked))
        return self.answer


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


async def test_random_policy_draws_from_pool():
    policy = RandomQuestionPolicy(rng=random.Random(1))
    drawn = [await policy.next_question("s1", []) for _ in range(20)]

    assert set(drawn) <= set(HR_QUESTIONS)
    assert len(HR_QUESTIONS) == 5


def test_empty_pool_is_rejected():
    with pytest.raises(ValueError):
        RandomQuestionPolicy(prompts=[])


async def test_non_repeating_policy_uses_whole_pool_before_repeating():
    policy = NonRepeatingQuestionPolicy(rng=random.Random(3))
    asked = []
    for _ in range(len(HR_QUESTIONS)):
        asked.append(await policy.next_question("s1", asked))

    assert sorted(asked) == sorted(HR_QUESTIONS)
    assert await policy.next_question("s1", asked) in HR_QUESTIONS


async def test_remote_policy_uses_service_question():
    client = StubClient("What project are you proudest of?")
    policy = RemoteQuestionPolicy(client=client)

    question = await policy.next_question("s1", ["Why should we hire you?"])

    assert question == "What project are you proudest of?"
    assert client.calls == [("s1", ["Why should we hire you?"])]


async def test_remote_policy_falls_back_to_pool():
    fallback = RandomQuestionPolicy(prompts=["Fallback prompt here?"])
    policy = RemoteQuestionPolicy(client=StubClient(""), fallback=fallback)

    assert await policy.next_question("s1", []) == "Fallback prompt here?"


def test_build_question_policy_by_name():
    assert type(build_question_policy("random")) is RandomQuestionPolicy
    assert type(build_question_policy("non_repeating")) is NonRepeatingQuestionPolicy
    with pytest.raises(ValueError):
        build_question_policy("adaptive")


def test_client_cleans_service_response(monkeypatch):
    sent = {}

    def fake_post(url, json=None, timeout=None):
        sent.update(url=url, json=json)
        return FakeResponse({"question": "<think>pick one</think> Interviewer: Tell me about a conflict you resolved"})

    monkeypatch.setattr(question_client.requests, "post", fake_post)
    client = QuestionServiceClient(url="http://questions.test/next")

    question = client.generate_question("s1", ["Why should we hire you?"])

    assert question == "Tell me about a conflict you resolved?"
    assert sent["json"] == {"session_id": "s1", "asked_questions": ["Why should we hire you?"]}


def test_client_returns_empty_when_service_down(monkeypatch):
    def fake_post(url, json=None, timeout=None):
        raise requests.exceptions.ConnectionError("refused")

    monkeypatch.setattr(question_client.requests, "post", fake_post)
    client = QuestionServiceClient(url="http://questions.test/next", max_retries=0)

    assert client.generate_question("s1", []) == ""


def test_cleaner_rejects_advice():
    cleaned, is_valid = QuestionCleaner.clean_question("You should always prepare your answers in advance.")
    assert (cleaned, is_valid) == ("", False)


def test_cleaner_extracts_question_from_long_reply():
    text = "Generally speaking, candidates ramble. " * 10 + "What motivates you at work?"
    cleaned, is_valid = QuestionCleaner.clean_question(text)

    assert is_valid
    assert cleaned == "What motivates you at work?"
