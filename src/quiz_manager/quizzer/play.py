"""Full-deck play: ask every stored quiz in random order until a miss.

A round walks ``LOADING -> SELECTING -> (PROMPTING <-> SELECTING)`` and ends
in ``WON`` when the pool runs dry or ``LOST`` on the first wrong answer. The
round object is created per ``play`` command and thrown away afterwards, so
concurrent sessions never share scores.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from .channel import SessionChannel
from .errors import QuizError, TransportClosed
from .store import Quiz, QuizStore

__all__ = [
    "IndexPool",
    "PlayRound",
    "RoundState",
    "answers_match",
    "play_round",
]

logger = logging.getLogger(__name__)

SCORE_COLOR = "magenta"


def answers_match(given: str, expected: str) -> bool:
    """Compare answers ignoring surrounding whitespace and letter case."""

    return given.strip().lower() == expected.strip().lower()


class RoundState(Enum):
    LOADING = "loading"
    SELECTING = "selecting"
    PROMPTING = "prompting"
    WON = "won"
    LOST = "lost"

    @property
    def terminal(self) -> bool:
        return self in (RoundState.WON, RoundState.LOST)


class IndexPool:
    """Positions ``0..size-1`` drawn uniformly at random without replacement.

    Each draw swaps the chosen slot with the last one and pops it.
    """

    def __init__(self, size: int, rng: random.Random | None = None) -> None:
        if size < 0:
            raise ValueError("Pool size must be non-negative.")
        self._remaining = list(range(size))
        self._rng = rng or random.Random()

    def __len__(self) -> int:
        return len(self._remaining)

    def remaining(self) -> tuple[int, ...]:
        return tuple(sorted(self._remaining))

    def draw(self) -> int:
        if not self._remaining:
            raise IndexError("draw from an empty pool")
        slot = self._rng.randrange(len(self._remaining))
        last = len(self._remaining) - 1
        self._remaining[slot], self._remaining[last] = (
            self._remaining[last],
            self._remaining[slot],
        )
        return self._remaining.pop()


@dataclass
class PlayRound:
    """Score and pool for one ``play`` command."""

    quizzes: Sequence[Quiz] = ()
    pool: IndexPool = field(default_factory=lambda: IndexPool(0))
    score: int = 0
    asked: int = 0
    state: RoundState = RoundState.LOADING
    current: Quiz | None = None

    @classmethod
    def start(
        cls, quizzes: Sequence[Quiz], rng: random.Random | None = None
    ) -> "PlayRound":
        working_set = tuple(quizzes)
        return cls(
            quizzes=working_set,
            pool=IndexPool(len(working_set), rng),
            state=RoundState.SELECTING,
        )

    def select(self) -> Quiz | None:
        """Pick the next quiz, or finish the round as won when none is left."""

        self._expect(RoundState.SELECTING)
        if not len(self.pool):
            self.current = None
            self.state = RoundState.WON
            return None
        self.current = self.quizzes[self.pool.draw()]
        self.asked += 1
        self.state = RoundState.PROMPTING
        return self.current

    def answer(self, given: str) -> bool:
        self._expect(RoundState.PROMPTING)
        quiz = self.current
        if quiz is None:
            raise RuntimeError("No quiz is being asked.")
        correct = answers_match(given, quiz.answer)
        if correct:
            self.score += 1
            self.state = RoundState.SELECTING
        else:
            self.state = RoundState.LOST
        return correct

    def abort(self) -> None:
        self.state = RoundState.LOST

    def _expect(self, state: RoundState) -> None:
        if self.state is not state:
            raise RuntimeError(
                f"Round is {self.state.value}, expected {state.value}."
            )


async def play_round(
    store: QuizStore,
    channel: SessionChannel,
    *,
    rng: random.Random | None = None,
) -> PlayRound:
    """Run one round over every stored quiz and report the final score.

    Load failures propagate to the caller before any question is asked. Once
    the round is running, failures end it as lost with the score shown; a
    closed channel is re-raised so the session can stop.
    """

    quizzes = await store.find_all()
    round_ = PlayRound.start(quizzes, rng)
    logger.debug("Play round started", extra={"quizzes": len(quizzes)})

    try:
        while not round_.state.terminal:
            quiz = round_.select()
            if quiz is None:
                await channel.emit_line(" No hay nada más que preguntar")
                break
            given = await channel.prompt(f"{quiz.question}? ")
            if round_.answer(given):
                await channel.emit_line(
                    f" CORRECTO - Lleva {round_.score} aciertos."
                )
            else:
                await channel.emit_line(" INCORRECTO")
    except TransportClosed:
        round_.abort()
        raise
    except QuizError as exc:
        round_.abort()
        await channel.emit_error(str(exc))
    except Exception as exc:
        round_.abort()
        logger.exception("Play round failed")
        await channel.emit_error(str(exc) or exc.__class__.__name__)

    await channel.emit_line(f" Fin del juego. Aciertos: {round_.score}")
    await channel.emit_banner(str(round_.score), SCORE_COLOR)
    logger.info(
        "Play round finished",
        extra={
            "state": round_.state.value,
            "score": round_.score,
            "asked": round_.asked,
        },
    )
    return round_
