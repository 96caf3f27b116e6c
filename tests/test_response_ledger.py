from __future__ import annotations

import pytest
from conftest import make_draft

from livequiz.core.errors import ConflictError, NotFoundError, ValidationError
from livequiz.core.models import SessionState
from livequiz.core.services.response_ledger import ResponseLedger, normalize_selection


@pytest.fixture
def seeded(store):
    with store.transaction() as tx:
        quiz = tx.create_quiz(make_draft(correct_answer="C", order=1))
        user = tx.create_user("Alice")
    return quiz, user


def test_first_submission_inserts_row_with_correctness(store, seeded):
    quiz, user = seeded
    with store.transaction() as tx:
        response = ResponseLedger().submit(tx, user.id, quiz.id, "c")

    assert response.selection == "C"
    assert response.is_correct is True
    assert response.user_id == user.id and response.quiz_id == quiz.id


def test_resubmission_updates_the_single_row(store, seeded):
    quiz, user = seeded
    ledger = ResponseLedger()
    with store.transaction() as tx:
        first = ledger.submit(tx, user.id, quiz.id, "A")
    with store.transaction() as tx:
        second = ledger.submit(tx, user.id, quiz.id, "C")

    assert second.id == first.id
    assert first.is_correct is False and second.is_correct is True
    with store.transaction() as tx:
        rows = tx.list_responses_for_quiz(quiz.id)
    assert [(row.selection, row.is_correct) for row in rows] == [("C", True)]


def test_submission_after_reveal_conflicts_and_changes_nothing(store, seeded):
    quiz, user = seeded
    ledger = ResponseLedger()
    with store.transaction() as tx:
        ledger.submit(tx, user.id, quiz.id, "A")
        tx.save_session_state(SessionState(current_quiz_id=quiz.id, is_result_revealed=True))

    with pytest.raises(ConflictError):
        with store.transaction() as tx:
            ledger.submit(tx, user.id, quiz.id, "C")

    with store.transaction() as tx:
        assert [row.selection for row in tx.list_responses_for_quiz(quiz.id)] == ["A"]


def test_unknown_question_is_not_found(store, seeded):
    _, user = seeded
    with pytest.raises(NotFoundError):
        with store.transaction() as tx:
            ResponseLedger().submit(tx, user.id, 999, "A")


@pytest.mark.parametrize("selection", ["", "E", "AB", "1"])
def test_invalid_selection_is_rejected(selection):
    with pytest.raises(ValidationError):
        normalize_selection(selection)
