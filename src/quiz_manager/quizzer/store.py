"""Persistent quiz table backed by SQLAlchemy's asyncio ORM."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Sequence

from sqlalchemy import DateTime, Integer, String, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from .errors import FieldError, NotFound, ValidationError

__all__ = [
    "Quiz",
    "QuizRow",
    "QuizStore",
    "SAMPLE_QUIZZES",
    "sqlite_url",
]

logger = logging.getLogger(__name__)

SAMPLE_QUIZZES: tuple[tuple[str, str], ...] = (
    ("Capital de Italia", "Roma"),
    ("Capital de Francia", "París"),
    ("Capital de España", "Madrid"),
    ("Capital de Portugal", "Lisboa"),
)

EMPTY_QUESTION = "La pregunta no puede estar vacía."
EMPTY_ANSWER = "La respuesta no puede estar vacía."
DUPLICATE_QUESTION = "Ya existe esta pregunta."

# SQLite INTEGER PRIMARY KEY is a signed 64-bit value.
_MIN_ID = -(2**63)
_MAX_ID = 2**63 - 1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class QuizRow(Base):
    __tablename__ = "quizzes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    question: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    answer: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def to_quiz(self) -> "Quiz":
        return Quiz(id=self.id, question=self.question, answer=self.answer)


@dataclass(frozen=True)
class Quiz:
    """Detached copy of a stored quiz handed to session flows."""

    id: int
    question: str
    answer: str


def sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


class QuizStore:
    """CRUD access to the ``quizzes`` table.

    Each call opens its own short-lived ``AsyncSession`` so concurrent
    sessions never share ORM state; the database serializes conflicting
    writes.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)

    @classmethod
    async def open(cls, url: str, *, echo: bool = False) -> "QuizStore":
        """Connect to ``url`` and create the table when missing."""

        engine = create_async_engine(url, echo=echo)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info(
            "Quiz store ready",
            extra={"url": engine.url.render_as_string()},
        )
        return cls(engine)

    async def close(self) -> None:
        await self._engine.dispose()

    async def create(self, question: str, answer: str) -> Quiz:
        _validate(question, answer)
        row = QuizRow(question=question, answer=answer)
        async with self._sessions() as session:
            session.add(row)
            await _commit(session)
        logger.info("Quiz created", extra={"quiz_id": row.id})
        return row.to_quiz()

    async def find_by_id(self, quiz_id: int) -> Quiz | None:
        if not _storable_id(quiz_id):
            return None
        async with self._sessions() as session:
            row = await session.get(QuizRow, quiz_id)
            return row.to_quiz() if row is not None else None

    async def find_all(self) -> list[Quiz]:
        async with self._sessions() as session:
            result = await session.scalars(
                select(QuizRow).order_by(QuizRow.id)
            )
            return [row.to_quiz() for row in result]

    async def update(self, quiz: Quiz) -> Quiz:
        _validate(quiz.question, quiz.answer)
        if not _storable_id(quiz.id):
            raise NotFound(quiz.id)
        async with self._sessions() as session:
            row = await session.get(QuizRow, quiz.id)
            if row is None:
                raise NotFound(quiz.id)
            row.question = quiz.question
            row.answer = quiz.answer
            await _commit(session)
            logger.info("Quiz updated", extra={"quiz_id": row.id})
            return row.to_quiz()

    async def delete(self, quiz_id: int) -> None:
        if not _storable_id(quiz_id):
            raise NotFound(quiz_id)
        async with self._sessions() as session:
            result = await session.execute(
                delete(QuizRow).where(QuizRow.id == quiz_id)
            )
            if not result.rowcount:
                await session.rollback()
                raise NotFound(quiz_id)
            await session.commit()
        logger.info("Quiz deleted", extra={"quiz_id": quiz_id})

    async def count(self) -> int:
        async with self._sessions() as session:
            total = await session.scalar(select(func.count(QuizRow.id)))
            return int(total or 0)

    async def seed(
        self, quizzes: Iterable[tuple[str, str]] = SAMPLE_QUIZZES
    ) -> int:
        """Insert ``quizzes`` when the table is empty; return rows added."""

        if await self.count():
            return 0
        pairs: Sequence[tuple[str, str]] = tuple(quizzes)
        for question, answer in pairs:
            _validate(question, answer)
        async with self._sessions() as session:
            session.add_all(
                QuizRow(question=question, answer=answer)
                for question, answer in pairs
            )
            await _commit(session)
        logger.info("Seeded quiz table", extra={"count": len(pairs)})
        return len(pairs)


def _storable_id(quiz_id: int) -> bool:
    return _MIN_ID <= quiz_id <= _MAX_ID


def _validate(question: str, answer: str) -> None:
    errors: list[FieldError] = []
    if not question or not question.strip():
        errors.append(FieldError("question", EMPTY_QUESTION))
    if not answer or not answer.strip():
        errors.append(FieldError("answer", EMPTY_ANSWER))
    if errors:
        logger.info(
            "Quiz rejected",
            extra={"fields": [error.field for error in errors]},
        )
        raise ValidationError(errors)


async def _commit(session: AsyncSession) -> None:
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        logger.info(
            "Quiz rejected by constraint",
            extra={"detail": str(exc.orig)},
        )
        raise ValidationError(
            [FieldError("question", DUPLICATE_QUESTION)]
        ) from exc
