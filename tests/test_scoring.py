from __future__ import annotations

from conftest import make_draft

from livequiz.core.models import LeaderboardRow, User
from livequiz.core.services.scoring import ScoringEngine, build_leaderboard


def _seed(store):
    with store.transaction() as tx:
        quiz = tx.create_quiz(make_draft(correct_answer="B", order=1))
        alice = tx.create_user("Alice")
        bob = tx.create_user("Bob")
        tx.insert_response(alice.id, quiz.id, "B", is_correct=True)
        tx.insert_response(bob.id, quiz.id, "A", is_correct=False)
    return quiz, alice, bob


def test_award_credits_matching_users_once(store):
    quiz, alice, bob = _seed(store)
    engine = ScoringEngine()

    with store.transaction() as tx:
        assert engine.award(tx, quiz.id, "B") == [alice.id]
    with store.transaction() as tx:
        assert engine.award(tx, quiz.id, "B") == []
        assert tx.get_user(alice.id).score == 1
        assert tx.get_user(bob.id).score == 0


def test_award_marks_rows_correct_even_when_stale(store):
    quiz, alice, _ = _seed(store)
    with store.transaction() as tx:
        # Simulate a question edited after the answer was stored.
        tx.update_response(tx.find_response(alice.id, quiz.id).id, "B", is_correct=False)

    with store.transaction() as tx:
        ScoringEngine().award(tx, quiz.id, "B")
    with store.transaction() as tx:
        assert tx.find_response(alice.id, quiz.id).is_correct is True


def test_repeat_award_re_marks_but_credits_nobody(store):
    quiz, alice, bob = _seed(store)
    engine = ScoringEngine()
    with store.transaction() as tx:
        engine.award(tx, quiz.id, "B")
    with store.transaction() as tx:
        tx.update_response(tx.find_response(bob.id, quiz.id).id, "B", is_correct=False)

    with store.transaction() as tx:
        assert engine.award(tx, quiz.id, "B") == []
    with store.transaction() as tx:
        assert tx.find_response(bob.id, quiz.id).is_correct is True
        assert tx.get_user(bob.id).score == 0
        assert tx.get_user(alice.id).score == 1


def test_score_reveal_skips_deleted_question(store):
    quiz, alice, _ = _seed(store)
    with store.transaction() as tx:
        tx.delete_quiz(quiz.id)

    with store.transaction() as tx:
        assert ScoringEngine().score_reveal(tx, quiz.id) == []
        assert tx.get_user(alice.id).score == 0


def test_leaderboard_excludes_admins_and_breaks_ties_by_name():
    users = [
        User(id=1, name="admin", is_admin=True, score=9),
        User(id=2, name="Carol", score=2),
        User(id=3, name="Bob", score=2),
        User(id=4, name="Alice", score=0),
        User(id=5, name="Dave", score=5),
    ]
    assert build_leaderboard(users) == [
        LeaderboardRow(user_id=5, name="Dave", score=5),
        LeaderboardRow(user_id=3, name="Bob", score=2),
        LeaderboardRow(user_id=2, name="Carol", score=2),
        LeaderboardRow(user_id=4, name="Alice", score=0),
    ]


def test_leaderboard_of_nobody_is_empty():
    assert build_leaderboard([]) == []
