from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from livequiz.core.models import QuizDraft
from livequiz.core.notifications import Broadcaster, Notification
from livequiz.core.quiz_manager import QuizManager
from livequiz.core.services.record_store import RecordStore
from livequiz.server.api_server import create_api_app

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class RecordingNotifier:
    """Collects published notifications instead of sending them anywhere."""

    def __init__(self) -> None:
        self.published: list[Notification] = []

    def publish(self, notification: Notification) -> None:
        self.published.append(notification)

    def kinds(self) -> list[str]:
        return [notification.kind.value for notification in self.published]

    def clear(self) -> None:
        self.published.clear()


def make_draft(
    question: str = "What is the highest mountain?",
    correct_answer: str = "B",
    order: int | None = None,
    **overrides,
) -> QuizDraft:
    fields = {
        "question": question,
        "options": ["Fuji", "Everest", "K2", "Matterhorn"],
        "correct_answer": correct_answer,
        "order": order,
    }
    fields.update(overrides)
    return QuizDraft(**fields)


@pytest.fixture
def store() -> RecordStore:
    return RecordStore.from_url("sqlite://")


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def manager(store: RecordStore, notifier: RecordingNotifier) -> QuizManager:
    return QuizManager(store, notifier=notifier, admin_names=["admin"], clock=lambda: FIXED_NOW)


@pytest.fixture
def broadcaster() -> Broadcaster:
    return Broadcaster()


@pytest.fixture
def api_manager(store: RecordStore, broadcaster: Broadcaster) -> QuizManager:
    return QuizManager(store, notifier=broadcaster, admin_names=["admin"])


@pytest.fixture
def app(api_manager: QuizManager, broadcaster: Broadcaster):
    return create_api_app(api_manager, broadcaster, secret_key="test-secret")


@pytest.fixture
def admin_client(app) -> TestClient:
    client = TestClient(app)
    assert client.post("/api/login", json={"name": "admin"}).status_code == 200
    return client


def participant_client(app, name: str) -> TestClient:
    client = TestClient(app)
    assert client.post("/api/login", json={"name": name}).status_code == 200
    return client
