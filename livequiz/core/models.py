"""Domain models for the live quiz application."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum, auto

from livequiz.constants.quiz_constants import DEFAULT_TIME_LIMIT_SECONDS

OPTION_LETTERS: tuple[str, ...] = ("A", "B", "C", "D")


def to_utc_iso(value: datetime | None) -> str | None:
    """Serialize a timestamp as ISO-8601 UTC, treating naive values as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc).isoformat()
    return value.astimezone(timezone.utc).isoformat()


@dataclass(slots=True)
class User:
    """A participant or admin identified by a unique display name."""

    id: int
    name: str
    is_admin: bool = False
    score: int = 0

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "isAdmin": self.is_admin,
            "score": self.score,
        }


@dataclass(slots=True)
class QuizDraft:
    """Question fields as supplied by an admin, before the store assigns an id."""

    question: str
    options: list[str]
    correct_answer: str
    order: int | None = None
    time_limit_seconds: int = DEFAULT_TIME_LIMIT_SECONDS
    image_url: str | None = None


@dataclass(slots=True)
class Quiz:
    """Multiple-choice question with exactly four options labelled A-D."""

    id: int
    question: str
    options: list[str]
    correct_answer: str
    order: int
    time_limit_seconds: int = DEFAULT_TIME_LIMIT_SECONDS
    image_url: str | None = None

    def to_draft(self) -> QuizDraft:
        return QuizDraft(
            question=self.question,
            options=list(self.options),
            correct_answer=self.correct_answer,
            order=self.order,
            time_limit_seconds=self.time_limit_seconds,
            image_url=self.image_url,
        )

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "id": self.id,
            "question": self.question,
            "imageUrl": self.image_url,
        }
        for letter, option in zip(OPTION_LETTERS, self.options):
            payload[f"option{letter}"] = option
        payload["correctAnswer"] = self.correct_answer
        payload["order"] = self.order
        payload["timeLimit"] = self.time_limit_seconds
        return payload


@dataclass(slots=True)
class Response:
    """One participant's answer to one question."""

    id: int
    user_id: int
    quiz_id: int
    selection: str
    is_correct: bool = False

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "quizId": self.quiz_id,
            "selection": self.selection,
            "isCorrect": self.is_correct,
        }


@dataclass(slots=True)
class ResponseEntry:
    """A response joined with the submitter's display name."""

    response: Response
    user_name: str

    def to_payload(self) -> dict[str, object]:
        payload = self.response.to_payload()
        payload["userName"] = self.user_name
        return payload


class SessionPhase(Enum):
    IDLE = auto()
    ACTIVE_HIDDEN = auto()
    ACTIVE_REVEALED = auto()


@dataclass(frozen=True, slots=True)
class SessionState:
    """Snapshot of the singleton session row."""

    current_quiz_id: int | None = None
    is_result_revealed: bool = False
    timer_started_at: datetime | None = None

    @property
    def phase(self) -> SessionPhase:
        if self.current_quiz_id is None:
            return SessionPhase.IDLE
        if self.is_result_revealed:
            return SessionPhase.ACTIVE_REVEALED
        return SessionPhase.ACTIVE_HIDDEN

    def to_payload(self) -> dict[str, object]:
        return {
            "currentQuizId": self.current_quiz_id,
            "isResultRevealed": self.is_result_revealed,
            "timerStartedAt": to_utc_iso(self.timer_started_at),
        }


@dataclass(frozen=True, slots=True)
class StateCommand:
    """Admin request to move the session, as posted to the state endpoint."""

    current_quiz_id: int | None
    is_result_revealed: bool = False
    start_timer: bool = False


@dataclass(slots=True)
class LeaderboardRow:
    """Immutable snapshot returned to consumers."""

    user_id: int
    name: str
    score: int

    def to_payload(self) -> dict[str, object]:
        return {"id": self.user_id, "name": self.name, "score": self.score}
