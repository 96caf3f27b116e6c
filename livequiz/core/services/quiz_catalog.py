"""Service for managing the collection of quiz questions."""

from __future__ import annotations

from dataclasses import replace

from livequiz.core.errors import NotFoundError, ValidationError
from livequiz.core.models import OPTION_LETTERS, Quiz, QuizDraft
from livequiz.core.services.record_store import StoreTransaction

_OPTION_FIELDS = {"option_a": 0, "option_b": 1, "option_c": 2, "option_d": 3}
_DRAFT_FIELDS = {"question", "image_url", "correct_answer", "order", "time_limit_seconds"}


class QuizCatalog:
    """Create, edit and delete questions; listing is ordered by ``order`` then id."""

    def list_quizzes(self, tx: StoreTransaction) -> list[Quiz]:
        return tx.list_quizzes()

    def get_quiz(self, tx: StoreTransaction, quiz_id: int) -> Quiz:
        quiz = tx.get_quiz(quiz_id)
        if quiz is None:
            raise NotFoundError(f"Question {quiz_id} does not exist.")
        return quiz

    def create_quiz(self, tx: StoreTransaction, draft: QuizDraft) -> Quiz:
        prepared = prepare_draft(draft)
        if prepared.order is None:
            highest = tx.max_quiz_order()
            prepared = replace(prepared, order=(highest or 0) + 1)
        return tx.create_quiz(prepared)

    def update_quiz(self, tx: StoreTransaction, quiz_id: int, changes: dict[str, object]) -> Quiz:
        """Apply a partial edit. Past responses keep their stored correctness."""
        existing = self.get_quiz(tx, quiz_id)
        merged = merge_changes(existing.to_draft(), changes)
        updated = tx.update_quiz(quiz_id, prepare_draft(merged))
        if updated is None:
            raise NotFoundError(f"Question {quiz_id} does not exist.")
        return updated

    def delete_quiz(self, tx: StoreTransaction, quiz_id: int) -> None:
        if not tx.delete_quiz(quiz_id):
            raise NotFoundError(f"Question {quiz_id} does not exist.")


def merge_changes(draft: QuizDraft, changes: dict[str, object]) -> QuizDraft:
    options = list(draft.options)
    fields: dict[str, object] = {}
    for key, value in changes.items():
        if key in _OPTION_FIELDS:
            options[_OPTION_FIELDS[key]] = value
        elif key in _DRAFT_FIELDS:
            fields[key] = value
        else:
            raise ValidationError(f"Unknown question field '{key}'.")
    return replace(draft, options=options, **fields)


def prepare_draft(draft: QuizDraft) -> QuizDraft:
    """Validate and normalize a question before storage."""
    question = (draft.question or "").strip()
    if not question:
        raise ValidationError("Question text must not be empty.")

    image_url = (draft.image_url or "").strip() or None

    return QuizDraft(
        question=question,
        options=_validate_options(draft.options),
        correct_answer=_validate_correct_answer(draft.correct_answer),
        order=_validate_order(draft.order),
        time_limit_seconds=_validate_time_limit(draft.time_limit_seconds),
        image_url=image_url,
    )


def _validate_options(options: list[str]) -> list[str]:
    if len(options) != len(OPTION_LETTERS):
        raise ValidationError("Each question must have exactly four options.")
    cleaned = [str(option or "").strip() for option in options]
    if any(not option for option in cleaned):
        raise ValidationError("Option text cannot be empty.")
    return cleaned


def _validate_correct_answer(correct_answer: str) -> str:
    letter = (correct_answer or "").strip().upper()
    if letter not in OPTION_LETTERS:
        raise ValidationError("Correct answer must be one of A, B, C or D.")
    return letter


def _validate_order(order: int | None) -> int | None:
    if order is None:
        return None
    if isinstance(order, bool) or not isinstance(order, int):
        raise ValidationError("Order must be an integer.")
    return order


def _validate_time_limit(time_limit_seconds: int) -> int:
    if isinstance(time_limit_seconds, bool) or not isinstance(time_limit_seconds, int):
        raise ValidationError("Time limit must be provided as an integer number of seconds.")
    if time_limit_seconds <= 0:
        raise ValidationError("Time limit must be a positive integer.")
    return time_limit_seconds
