"""Business logic coordinating the store, scoring and notifications for the API."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime, timezone
import logging
from threading import Lock

from livequiz.constants.quiz_constants import MAX_NAME_LENGTH
from livequiz.core.errors import NotFoundError, UnauthenticatedError, ValidationError
from livequiz.core.models import (
    LeaderboardRow,
    Quiz,
    QuizDraft,
    Response,
    ResponseEntry,
    SessionState,
    StateCommand,
    User,
)
from livequiz.core.notifications import Notification, Notifier
from livequiz.core.services import session_state
from livequiz.core.services.quiz_catalog import QuizCatalog
from livequiz.core.services.record_store import RecordStore
from livequiz.core.services.response_ledger import ResponseLedger
from livequiz.core.services.scoring import ScoringEngine, build_leaderboard

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuizManager:
    """Facade for quiz services: Catalog, Ledger, Scoring and the session state.

    Each mutating call runs its read-modify-write under one lock and one store
    transaction, then announces the change once the transaction committed.
    """

    def __init__(
        self,
        store: RecordStore,
        notifier: Notifier | None = None,
        admin_names: Iterable[str] = (),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._lock = Lock()
        self._store = store
        self._notifier = notifier
        self._admin_names = frozenset(name.strip().casefold() for name in admin_names)
        self._clock = clock

        # Services
        self._catalog = QuizCatalog()
        self._ledger = ResponseLedger()
        self._scoring = ScoringEngine()

    # --- Users ---

    def login(self, name: str) -> User:
        """Return the user with this name, creating it on first login."""
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationError("Name must not be empty.")
        if len(cleaned) > MAX_NAME_LENGTH:
            raise ValidationError(f"Name must be at most {MAX_NAME_LENGTH} characters.")

        with self._lock, self._store.transaction() as tx:
            user = tx.get_user_by_name(cleaned)
            if user is None:
                is_admin = cleaned.casefold() in self._admin_names
                user = tx.create_user(cleaned, is_admin=is_admin)
                logger.info("Created %s %r", "admin" if is_admin else "participant", cleaned)
        self._notify(Notification.user_joined(user))
        return user

    def get_user(self, user_id: int | None) -> User:
        if user_id is None:
            raise UnauthenticatedError("Not authenticated.")
        with self._lock, self._store.transaction() as tx:
            user = tx.get_user(user_id)
        if user is None:
            raise UnauthenticatedError("User not found.")
        return user

    # --- Quiz catalog ---

    def list_quizzes(self) -> list[Quiz]:
        with self._lock, self._store.transaction() as tx:
            return self._catalog.list_quizzes(tx)

    def create_quiz(self, draft: QuizDraft) -> Quiz:
        with self._lock, self._store.transaction() as tx:
            quiz = self._catalog.create_quiz(tx, draft)
        self._notify(Notification.quiz_list_changed())
        return quiz

    def update_quiz(self, quiz_id: int, changes: dict[str, object]) -> Quiz:
        with self._lock, self._store.transaction() as tx:
            quiz = self._catalog.update_quiz(tx, quiz_id, changes)
        self._notify(Notification.quiz_list_changed(quiz))
        return quiz

    def delete_quiz(self, quiz_id: int) -> None:
        with self._lock, self._store.transaction() as tx:
            self._catalog.delete_quiz(tx, quiz_id)
        self._notify(Notification.quiz_list_changed())

    def seed_quizzes(self, drafts: list[QuizDraft]) -> int:
        """Import ``drafts`` only when the catalog is empty; return how many were added."""
        with self._lock, self._store.transaction() as tx:
            if tx.list_quizzes():
                return 0
            for draft in drafts:
                self._catalog.create_quiz(tx, draft)
        logger.info("Seeded %d sample questions", len(drafts))
        self._notify(Notification.quiz_list_changed())
        return len(drafts)

    # --- Session state ---

    def get_state(self) -> SessionState:
        with self._lock, self._store.transaction() as tx:
            return tx.get_session_state()

    def update_state(self, command: StateCommand) -> SessionState:
        """Apply an admin transition; score the question on a hidden -> revealed edge."""
        leaderboard: list[LeaderboardRow] | None = None
        with self._lock, self._store.transaction() as tx:
            previous = tx.get_session_state(for_update=True)
            if (
                command.current_quiz_id is not None
                and command.current_quiz_id != previous.current_quiz_id
                and tx.get_quiz(command.current_quiz_id) is None
            ):
                raise NotFoundError(f"Question {command.current_quiz_id} does not exist.")

            current = tx.save_session_state(
                session_state.apply_command(previous, command, self._clock())
            )
            revealed_quiz_id = session_state.scoring_trigger(previous, current)
            if revealed_quiz_id is not None:
                self._scoring.score_reveal(tx, revealed_quiz_id)
                leaderboard = build_leaderboard(tx.list_users())

        self._notify(Notification.state_changed(current))
        if leaderboard is not None:
            self._notify(Notification.score_changed(leaderboard))
        return current

    # --- Responses ---

    def list_responses(self) -> list[ResponseEntry]:
        with self._lock, self._store.transaction() as tx:
            return tx.list_response_entries()

    def submit_response(self, user_id: int, quiz_id: int, selection: str) -> Response:
        with self._lock, self._store.transaction() as tx:
            if tx.get_user(user_id) is None:
                raise UnauthenticatedError("User not found.")
            response = self._ledger.submit(tx, user_id, quiz_id, selection)
        self._notify(Notification.response_changed(response))
        return response

    # --- Leaderboard & maintenance ---

    def get_leaderboard(self) -> list[LeaderboardRow]:
        with self._lock, self._store.transaction() as tx:
            return build_leaderboard(tx.list_users())

    def reset_all(self) -> SessionState:
        with self._lock, self._store.transaction() as tx:
            state = tx.clear_all()
        logger.info("All quiz data cleared")
        self._notify(Notification.quiz_list_changed())
        self._notify(Notification.state_changed(state))
        self._notify(Notification.score_changed([]))
        return state

    def _notify(self, notification: Notification) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier.publish(notification)
        except Exception:
            # The mutation has already committed.
            logger.exception("Failed to publish %s", notification.kind.value)
