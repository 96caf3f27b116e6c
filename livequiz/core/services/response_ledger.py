"""Service recording one answer per participant and question."""

from __future__ import annotations

from livequiz.core.errors import ConflictError, NotFoundError, ValidationError
from livequiz.core.models import OPTION_LETTERS, Response
from livequiz.core.services.record_store import StoreTransaction


def normalize_selection(selection: str) -> str:
    cleaned = (selection or "").strip().upper()
    if cleaned not in OPTION_LETTERS:
        raise ValidationError("Selection must be one of A, B, C or D.")
    return cleaned


class ResponseLedger:
    """Inserts or updates the single response row for a (user, question) pair."""

    def submit(
        self,
        tx: StoreTransaction,
        user_id: int,
        quiz_id: int,
        selection: str,
    ) -> Response:
        selection = normalize_selection(selection)

        # Checked against the stored state inside the caller's transaction.
        state = tx.get_session_state(for_update=True)
        if state.is_result_revealed:
            raise ConflictError("Cannot change response after results are revealed.")

        quiz = tx.get_quiz(quiz_id)
        if quiz is None:
            raise NotFoundError(f"Question {quiz_id} does not exist.")
        is_correct = selection == quiz.correct_answer

        existing = tx.find_response(user_id, quiz_id)
        if existing is not None:
            return tx.update_response(existing.id, selection, is_correct)
        return tx.insert_response(user_id, quiz_id, selection, is_correct)
