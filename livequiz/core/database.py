"""SQLAlchemy tables and engine setup backing the record store."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from livequiz.constants.quiz_constants import DEFAULT_TIME_LIMIT_SECONDS

SESSION_STATE_ROW_ID = 1


class Base(DeclarativeBase):
    pass


class UserRow(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False)
    score: Mapped[int] = mapped_column(Integer, default=0)


class QuizRow(Base):
    __tablename__ = "quizzes"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    question: Mapped[str] = mapped_column(Text)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    option_a: Mapped[str] = mapped_column(Text)
    option_b: Mapped[str] = mapped_column(Text)
    option_c: Mapped[str] = mapped_column(Text)
    option_d: Mapped[str] = mapped_column(Text)
    correct_answer: Mapped[str] = mapped_column(String(1))  # A/B/C/D
    sort_order: Mapped[int] = mapped_column("order", Integer, index=True)
    time_limit: Mapped[int] = mapped_column(Integer, default=DEFAULT_TIME_LIMIT_SECONDS)
    # Set on the first reveal; later reveals re-mark responses without crediting.
    scored: Mapped[bool] = mapped_column(Boolean, default=False)


class ResponseRow(Base):
    __tablename__ = "responses"
    __table_args__ = (UniqueConstraint("user_id", "quiz_id", name="uq_response_user_quiz"),)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    # No foreign key: responses outlive deleted questions.
    quiz_id: Mapped[int] = mapped_column(Integer, index=True)
    selection: Mapped[str] = mapped_column(String(1))
    is_correct: Mapped[bool] = mapped_column(Boolean, default=False)


class SessionStateRow(Base):
    __tablename__ = "session_state"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    current_quiz_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_result_revealed: Mapped[bool] = mapped_column(Boolean, default=False)
    timer_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )


def create_session_factory(database_url: str) -> sessionmaker:
    """Create the engine, ensure the schema exists and return a session factory."""
    engine_kwargs: dict[str, object] = {}
    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every thread gets its own empty database.
            engine_kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, **engine_kwargs)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
