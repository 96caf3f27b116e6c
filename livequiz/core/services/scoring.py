"""Service for crediting scores on reveal and ranking participants."""

from __future__ import annotations

import logging

from livequiz.constants.quiz_constants import POINTS_PER_CORRECT_ANSWER
from livequiz.core.models import LeaderboardRow, User
from livequiz.core.services.record_store import StoreTransaction

logger = logging.getLogger(__name__)


class ScoringEngine:
    """Marks correct responses and credits each question at most once."""

    def __init__(self, points: int = POINTS_PER_CORRECT_ANSWER) -> None:
        self._points = points

    def score_reveal(self, tx: StoreTransaction, quiz_id: int) -> list[int]:
        """Score the question that was just revealed; skip it if it no longer exists."""
        quiz = tx.get_quiz(quiz_id)
        if quiz is None:
            logger.warning("Question %s vanished before reveal; scoring skipped", quiz_id)
            return []
        return self.award(tx, quiz_id, quiz.correct_answer)

    def award(self, tx: StoreTransaction, quiz_id: int, correct_answer: str) -> list[int]:
        """Return the ids of users credited by this call.

        Correctness is re-marked on every reveal, but points are only handed
        out the first time a question is revealed.
        """
        tx.mark_correct_responses(quiz_id, correct_answer)
        matched = [
            response
            for response in tx.list_responses_for_quiz(quiz_id)
            if response.selection == correct_answer
        ]
        if not tx.claim_quiz_scoring(quiz_id):
            logger.info(
                "Question %s revealed again: %d correct, no points awarded", quiz_id, len(matched)
            )
            return []

        credited = [response.user_id for response in matched]
        for user_id in credited:
            tx.increment_score(user_id, self._points)
        logger.info("Question %s revealed: %d users credited", quiz_id, len(credited))
        return credited


def build_leaderboard(users: list[User]) -> list[LeaderboardRow]:
    """Participants only, highest score first, ties by name."""
    ranked = sorted(
        (user for user in users if not user.is_admin),
        key=lambda user: (-user.score, user.name),
    )
    return [LeaderboardRow(user_id=user.id, name=user.name, score=user.score) for user in ranked]
