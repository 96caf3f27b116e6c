from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest
from conftest import FIXED_NOW, make_draft

from livequiz.core.errors import (
    ConflictError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
)
from livequiz.core.models import LeaderboardRow, SessionState, StateCommand, to_utc_iso


def _scores(manager) -> dict[str, int]:
    return {row.name: row.score for row in manager.get_leaderboard()}


def test_login_is_idempotent_and_flags_admins(manager, notifier):
    alice = manager.login("  Alice ")
    again = manager.login("Alice")
    admin = manager.login("ADMIN")

    assert alice.id == again.id
    assert alice.name == "Alice"
    assert alice.is_admin is False
    assert admin.is_admin is True
    assert notifier.kinds() == ["user-joined"] * 3


@pytest.mark.parametrize("name", ["", "   ", "x" * 65])
def test_login_rejects_bad_names(manager, name):
    with pytest.raises(ValidationError):
        manager.login(name)


def test_get_user_requires_known_id(manager):
    with pytest.raises(UnauthenticatedError):
        manager.get_user(None)
    with pytest.raises(UnauthenticatedError):
        manager.get_user(12345)


def test_reveal_scores_once_and_restart_does_not_double_credit(manager, notifier):
    quiz = manager.create_quiz(make_draft(correct_answer="B"))
    alice = manager.login("Alice")
    bob = manager.login("Bob")

    manager.update_state(StateCommand(current_quiz_id=quiz.id))
    manager.submit_response(alice.id, quiz.id, "B")
    manager.submit_response(bob.id, quiz.id, "A")

    notifier.clear()
    revealed = manager.update_state(StateCommand(current_quiz_id=quiz.id, is_result_revealed=True))
    assert revealed.is_result_revealed is True
    assert notifier.kinds() == ["state-changed", "score-changed"]
    assert manager.get_leaderboard() == [
        LeaderboardRow(user_id=alice.id, name="Alice", score=1),
        LeaderboardRow(user_id=bob.id, name="Bob", score=0),
    ]
    correctness = {entry.user_name: entry.response.is_correct for entry in manager.list_responses()}
    assert correctness == {"Alice": True, "Bob": False}

    manager.update_state(StateCommand(current_quiz_id=None))
    manager.update_state(StateCommand(current_quiz_id=quiz.id))
    manager.update_state(StateCommand(current_quiz_id=quiz.id, is_result_revealed=True))

    assert _scores(manager) == {"Alice": 1, "Bob": 0}


def test_second_reveal_re_marks_without_awarding_points(manager):
    quiz = manager.create_quiz(make_draft(correct_answer="B"))
    alice = manager.login("Alice")
    bob = manager.login("Bob")
    manager.update_state(StateCommand(current_quiz_id=quiz.id))
    manager.submit_response(alice.id, quiz.id, "B")
    manager.submit_response(bob.id, quiz.id, "D")

    manager.update_state(StateCommand(current_quiz_id=quiz.id, is_result_revealed=True))
    manager.update_state(StateCommand(current_quiz_id=quiz.id, is_result_revealed=False))
    manager.submit_response(bob.id, quiz.id, "B")
    manager.update_state(StateCommand(current_quiz_id=quiz.id, is_result_revealed=True))

    assert _scores(manager) == {"Alice": 1, "Bob": 0}
    correctness = {entry.user_name: entry.response.is_correct for entry in manager.list_responses()}
    assert correctness == {"Alice": True, "Bob": True}


def test_submission_after_reveal_is_rejected(manager):
    quiz = manager.create_quiz(make_draft())
    alice = manager.login("Alice")
    manager.update_state(StateCommand(current_quiz_id=quiz.id))
    manager.update_state(StateCommand(current_quiz_id=quiz.id, is_result_revealed=True))

    with pytest.raises(ConflictError):
        manager.submit_response(alice.id, quiz.id, "B")
    assert manager.list_responses() == []


def test_submit_while_idle_is_recorded(manager, notifier):
    quiz = manager.create_quiz(make_draft())
    alice = manager.login("Alice")
    notifier.clear()

    response = manager.submit_response(alice.id, quiz.id, "a")

    assert response.selection == "A"
    assert notifier.kinds() == ["response-changed"]
    [entry] = manager.list_responses()
    assert entry.user_name == "Alice"
    assert entry.to_payload()["quizId"] == quiz.id


def test_submit_for_unknown_user_is_unauthenticated(manager):
    quiz = manager.create_quiz(make_draft())
    with pytest.raises(UnauthenticatedError):
        manager.submit_response(999, quiz.id, "A")


def test_starting_missing_question_is_not_found(manager, notifier):
    with pytest.raises(NotFoundError):
        manager.update_state(StateCommand(current_quiz_id=77))
    assert manager.get_state() == SessionState()
    assert "state-changed" not in notifier.kinds()


def test_stop_ignores_reveal_flag(manager):
    quiz = manager.create_quiz(make_draft())
    manager.update_state(StateCommand(current_quiz_id=quiz.id))
    state = manager.update_state(StateCommand(current_quiz_id=None, is_result_revealed=True))
    assert state == SessionState()


def test_timer_uses_clock_and_survives_reload(manager):
    quiz = manager.create_quiz(make_draft())
    state = manager.update_state(StateCommand(current_quiz_id=quiz.id, start_timer=True))
    assert state.timer_started_at == FIXED_NOW

    stored = manager.get_state()
    assert stored.to_payload()["timerStartedAt"] == to_utc_iso(FIXED_NOW)


def test_quiz_crud_publishes_list_changes(manager, notifier):
    quiz = manager.create_quiz(make_draft(order=3))
    updated = manager.update_quiz(quiz.id, {"question": "Tallest peak?"})
    manager.delete_quiz(quiz.id)

    assert updated.question == "Tallest peak?"
    assert notifier.kinds() == ["quiz-list-changed"] * 3
    assert notifier.published[1].payload["question"] == "Tallest peak?"
    assert manager.list_quizzes() == []


def test_seed_only_fills_empty_catalog(manager):
    drafts = [make_draft("one"), make_draft("two")]
    assert manager.seed_quizzes(drafts) == 2
    assert manager.seed_quizzes(drafts) == 0
    assert [quiz.order for quiz in manager.list_quizzes()] == [1, 2]


def test_reset_clears_everything(manager, notifier):
    quiz = manager.create_quiz(make_draft())
    alice = manager.login("Alice")
    manager.update_state(StateCommand(current_quiz_id=quiz.id))
    manager.submit_response(alice.id, quiz.id, "B")
    notifier.clear()

    state = manager.reset_all()

    assert state == SessionState()
    assert manager.get_state() == SessionState()
    assert manager.list_quizzes() == []
    assert manager.list_responses() == []
    assert manager.get_leaderboard() == []
    assert notifier.kinds() == ["quiz-list-changed", "state-changed", "score-changed"]


def test_failing_notifier_does_not_undo_mutation(store):
    from livequiz.core.quiz_manager import QuizManager

    class Broken:
        def publish(self, notification):
            raise RuntimeError("socket gone")

    manager = QuizManager(store, notifier=Broken())
    quiz = manager.create_quiz(make_draft())
    assert [item.id for item in manager.list_quizzes()] == [quiz.id]


def _run_together(count: int, action) -> list:
    barrier = Barrier(count)

    def call(_):
        barrier.wait()
        return action()

    with ThreadPoolExecutor(max_workers=count) as pool:
        return list(pool.map(call, range(count)))


def test_concurrent_reveals_score_once(manager):
    quiz = manager.create_quiz(make_draft(correct_answer="B"))
    alice = manager.login("Alice")
    manager.update_state(StateCommand(current_quiz_id=quiz.id))
    manager.submit_response(alice.id, quiz.id, "B")

    states = _run_together(
        8, lambda: manager.update_state(StateCommand(current_quiz_id=quiz.id, is_result_revealed=True))
    )

    assert all(state.is_result_revealed for state in states)
    assert _scores(manager) == {"Alice": 1}


def test_concurrent_first_submissions_keep_one_row(manager):
    quiz = manager.create_quiz(make_draft())
    alice = manager.login("Alice")

    _run_together(8, lambda: manager.submit_response(alice.id, quiz.id, "C"))

    [entry] = manager.list_responses()
    assert entry.response.selection == "C"
