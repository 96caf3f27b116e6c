"""Request bodies accepted by the HTTP API (camelCase on the wire)."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from livequiz.constants.quiz_constants import DEFAULT_TIME_LIMIT_SECONDS
from livequiz.core.models import QuizDraft, StateCommand

# Fields that may be cleared with an explicit null in a partial update.
_NULLABLE_QUIZ_FIELDS = {"image_url"}


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginPayload(ApiModel):
    name: str


class QuizCreatePayload(ApiModel):
    question: str
    image_url: str | None = None
    option_a: str
    option_b: str
    option_c: str
    option_d: str
    correct_answer: str
    order: int | None = None
    time_limit: int = DEFAULT_TIME_LIMIT_SECONDS

    def to_draft(self) -> QuizDraft:
        return QuizDraft(
            question=self.question,
            options=[self.option_a, self.option_b, self.option_c, self.option_d],
            correct_answer=self.correct_answer,
            order=self.order,
            time_limit_seconds=self.time_limit,
            image_url=self.image_url,
        )


class QuizUpdatePayload(ApiModel):
    """Partial edit: only the fields present in the body are changed."""

    question: str | None = None
    image_url: str | None = None
    option_a: str | None = None
    option_b: str | None = None
    option_c: str | None = None
    option_d: str | None = None
    correct_answer: str | None = None
    order: int | None = None
    time_limit: int | None = None

    def to_changes(self) -> dict[str, object]:
        changes: dict[str, object] = {}
        for key, value in self.model_dump(exclude_unset=True).items():
            if value is None and key not in _NULLABLE_QUIZ_FIELDS:
                continue
            changes["time_limit_seconds" if key == "time_limit" else key] = value
        return changes


class StateUpdatePayload(ApiModel):
    current_quiz_id: int | None
    is_result_revealed: bool = False
    start_timer: bool = False

    def to_command(self) -> StateCommand:
        return StateCommand(
            current_quiz_id=self.current_quiz_id,
            is_result_revealed=self.is_result_revealed,
            start_timer=self.start_timer,
        )


class ResponsePayload(ApiModel):
    """Payload schema for submitted answers."""

    quiz_id: int
    selection: str
