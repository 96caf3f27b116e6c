"""Record store: transactional reads and writes over users, quizzes, responses and state."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, sessionmaker

from livequiz.core.database import (
    SESSION_STATE_ROW_ID,
    QuizRow,
    ResponseRow,
    SessionStateRow,
    UserRow,
    create_session_factory,
)
from livequiz.core.models import (
    Quiz,
    QuizDraft,
    Response,
    ResponseEntry,
    SessionState,
    User,
)


class RecordStore:
    """Hands out one transaction per unit of work."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str) -> "RecordStore":
        return cls(create_session_factory(database_url))

    @contextmanager
    def transaction(self) -> Iterator["StoreTransaction"]:
        """Commit on success, roll back if the block raises."""
        with self._session_factory.begin() as session:
            yield StoreTransaction(session)


class StoreTransaction:
    """Store operations bound to one open SQLAlchemy session.

    Rows never escape: every method returns domain dataclasses.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    # --- Users ---

    def get_user(self, user_id: int) -> User | None:
        row = self._session.get(UserRow, user_id)
        return _to_user(row) if row is not None else None

    def get_user_by_name(self, name: str) -> User | None:
        row = self._session.execute(
            select(UserRow).where(UserRow.name == name)
        ).scalar_one_or_none()
        return _to_user(row) if row is not None else None

    def create_user(self, name: str, is_admin: bool = False) -> User:
        row = UserRow(name=name, is_admin=is_admin, score=0)
        self._session.add(row)
        self._session.flush()
        return _to_user(row)

    def list_users(self) -> list[User]:
        rows = self._session.execute(select(UserRow).order_by(UserRow.id)).scalars()
        return [_to_user(row) for row in rows]

    def increment_score(self, user_id: int, points: int) -> None:
        self._session.execute(
            update(UserRow)
            .where(UserRow.id == user_id)
            .values(score=UserRow.score + points)
        )

    # --- Quizzes ---

    def list_quizzes(self) -> list[Quiz]:
        rows = self._session.execute(
            select(QuizRow).order_by(QuizRow.sort_order, QuizRow.id)
        ).scalars()
        return [_to_quiz(row) for row in rows]

    def get_quiz(self, quiz_id: int) -> Quiz | None:
        row = self._session.get(QuizRow, quiz_id)
        return _to_quiz(row) if row is not None else None

    def max_quiz_order(self) -> int | None:
        return self._session.execute(select(func.max(QuizRow.sort_order))).scalar()

    def create_quiz(self, draft: QuizDraft) -> Quiz:
        row = QuizRow()
        _apply_draft(row, draft)
        self._session.add(row)
        self._session.flush()
        return _to_quiz(row)

    def update_quiz(self, quiz_id: int, draft: QuizDraft) -> Quiz | None:
        row = self._session.get(QuizRow, quiz_id)
        if row is None:
            return None
        _apply_draft(row, draft)
        self._session.flush()
        return _to_quiz(row)

    def delete_quiz(self, quiz_id: int) -> bool:
        result = self._session.execute(delete(QuizRow).where(QuizRow.id == quiz_id))
        return result.rowcount > 0

    def claim_quiz_scoring(self, quiz_id: int) -> bool:
        """Mark the question scored; False if an earlier reveal already did."""
        result = self._session.execute(
            update(QuizRow)
            .where(QuizRow.id == quiz_id, QuizRow.scored.is_(False))
            .values(scored=True)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount > 0

    # --- Responses ---

    def list_response_entries(self) -> list[ResponseEntry]:
        rows = self._session.execute(
            select(ResponseRow, UserRow.name)
            .join(UserRow, UserRow.id == ResponseRow.user_id)
            .order_by(ResponseRow.id)
        ).all()
        return [ResponseEntry(response=_to_response(row), user_name=name) for row, name in rows]

    def list_responses_for_quiz(self, quiz_id: int) -> list[Response]:
        rows = self._session.execute(
            select(ResponseRow).where(ResponseRow.quiz_id == quiz_id).order_by(ResponseRow.id)
        ).scalars()
        return [_to_response(row) for row in rows]

    def find_response(self, user_id: int, quiz_id: int) -> Response | None:
        row = self._find_response_row(user_id, quiz_id)
        return _to_response(row) if row is not None else None

    def insert_response(
        self, user_id: int, quiz_id: int, selection: str, is_correct: bool
    ) -> Response:
        row = ResponseRow(
            user_id=user_id,
            quiz_id=quiz_id,
            selection=selection,
            is_correct=is_correct,
        )
        self._session.add(row)
        self._session.flush()
        return _to_response(row)

    def update_response(self, response_id: int, selection: str, is_correct: bool) -> Response:
        row = self._session.get(ResponseRow, response_id)
        if row is None:
            raise LookupError(f"Response {response_id} does not exist")
        row.selection = selection
        row.is_correct = is_correct
        self._session.flush()
        return _to_response(row)

    def mark_correct_responses(self, quiz_id: int, correct_answer: str) -> None:
        """Flag every response matching the answer as correct."""
        self._session.execute(
            update(ResponseRow)
            .where(ResponseRow.quiz_id == quiz_id, ResponseRow.selection == correct_answer)
            .values(is_correct=True)
            .execution_options(synchronize_session="fetch")
        )

    def _find_response_row(self, user_id: int, quiz_id: int) -> ResponseRow | None:
        return self._session.execute(
            select(ResponseRow).where(
                ResponseRow.user_id == user_id, ResponseRow.quiz_id == quiz_id
            )
        ).scalar_one_or_none()

    # --- Session state ---

    def get_session_state(self, for_update: bool = False) -> SessionState:
        """Return the singleton state, creating it with defaults if absent."""
        return _to_state(self._state_row(for_update))

    def save_session_state(self, state: SessionState) -> SessionState:
        row = self._state_row(for_update=True)
        row.current_quiz_id = state.current_quiz_id
        row.is_result_revealed = state.is_result_revealed
        row.timer_started_at = state.timer_started_at
        self._session.flush()
        return _to_state(row)

    def _state_row(self, for_update: bool) -> SessionStateRow:
        query = select(SessionStateRow).where(SessionStateRow.id == SESSION_STATE_ROW_ID)
        if for_update:
            query = query.with_for_update()
        row = self._session.execute(query).scalar_one_or_none()
        if row is None:
            row = SessionStateRow(
                id=SESSION_STATE_ROW_ID,
                current_quiz_id=None,
                is_result_revealed=False,
                timer_started_at=None,
            )
            self._session.add(row)
            self._session.flush()
        return row

    # --- Maintenance ---

    def clear_all(self) -> SessionState:
        """Delete users, quizzes and responses; reset the state row in place."""
        self._session.execute(delete(ResponseRow))
        self._session.execute(delete(QuizRow))
        self._session.execute(delete(UserRow))
        return self.save_session_state(SessionState())


def _to_user(row: UserRow) -> User:
    return User(id=row.id, name=row.name, is_admin=bool(row.is_admin), score=row.score)


def _to_quiz(row: QuizRow) -> Quiz:
    return Quiz(
        id=row.id,
        question=row.question,
        options=[row.option_a, row.option_b, row.option_c, row.option_d],
        correct_answer=row.correct_answer,
        order=row.sort_order,
        time_limit_seconds=row.time_limit,
        image_url=row.image_url,
    )


def _apply_draft(row: QuizRow, draft: QuizDraft) -> None:
    row.question = draft.question
    row.image_url = draft.image_url
    row.option_a, row.option_b, row.option_c, row.option_d = draft.options
    row.correct_answer = draft.correct_answer
    row.sort_order = draft.order if draft.order is not None else 0
    row.time_limit = draft.time_limit_seconds


def _to_response(row: ResponseRow) -> Response:
    return Response(
        id=row.id,
        user_id=row.user_id,
        quiz_id=row.quiz_id,
        selection=row.selection,
        is_correct=bool(row.is_correct),
    )


def _to_state(row: SessionStateRow) -> SessionState:
    return SessionState(
        current_quiz_id=row.current_quiz_id,
        is_result_revealed=bool(row.is_result_revealed),
        timer_started_at=row.timer_started_at,
    )
