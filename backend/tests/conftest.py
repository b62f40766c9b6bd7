"""
Shared fixtures.

No test talks to a real model: the advisor is built around FakeLLM, which
either replays scripted answers in order or delegates to a handler that
picks an answer from the prompt.
"""

import threading

import pytest

from app import create_app
from assistant.advisor import FinanceAdvisor
from assistant.currency import FixedRateSource
from config import TestConfig
from llm_providers import LLMProviderError
from models import db


class FakeLLM:
    def __init__(self, responses=None, handler=None):
        self.responses = list(responses or [])
        self.handler = handler
        self.calls = []
        self._lock = threading.Lock()

    def _answer(self, kind, payload):
        with self._lock:
            self.calls.append((kind, payload))
            if self.handler is None:
                if not self.responses:
                    raise LLMProviderError("no scripted response left")
                answer = self.responses.pop(0)
            else:
                answer = None
        if self.handler is not None:
            answer = self.handler(kind, payload)
        if isinstance(answer, Exception):
            raise answer
        return answer

    def chat(self, messages, **_kwargs):
        return self._answer("chat", messages)

    def complete_text(self, prompt, *, system=None, **_kwargs):
        return self._answer("text", prompt)

    def complete_vision(self, image_bytes, prompt, *, mime_type="image/jpeg", system=None):
        return self._answer("vision", prompt)


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def advisor(fake_llm):
    return FinanceAdvisor(fake_llm)


@pytest.fixture
def app(tmp_path, advisor):
    app = create_app(
        TestConfig,
        advisor=advisor,
        rate_source=FixedRateSource({"vnd": 25000, "eur": 0.92}),
        UPLOAD_FOLDER=str(tmp_path / "uploads"),
    )
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_client(client):
    resp = client.post("/api/register", json={"username": "alice", "password": "secret123"})
    assert resp.status_code == 201
    return client
