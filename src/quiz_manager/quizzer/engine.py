"""Command handlers of a quiz session.

Handlers talk to the user only through the session channel and to the table
only through the store. Failures are raised as :class:`QuizError` subclasses
and rendered by the dispatcher.
"""

from __future__ import annotations

import logging
import random
from typing import Sequence

from rich.text import Text

from .channel import SessionChannel
from .errors import NotFound
from .params import validate_id
from .play import PlayRound, answers_match, play_round
from .store import Quiz, QuizStore

__all__ = ["HELP_LINES", "QuizSessionEngine"]

logger = logging.getLogger(__name__)

HELP_LINES: tuple[str, ...] = (
    "Comandos:",
    "  h|help - Muestra esta ayuda.",
    "  list - Listar los quizzes existentes.",
    "  show <id> - Muestra la pregunta y la respuesta el quiz indicado.",
    "  add - Añadir un nuevo quiz interactivamente.",
    "  delete <id> - Borrar el quiz indicado.",
    "  edit <id> - Editar el quiz indicado.",
    "  test <id> - Probar el quiz indicado.",
    "  p|play - Jugar a preguntar aleatoriamente todos los quizzes.",
    "  credits - Créditos.",
    "  q|quit - Salir del programa.",
)

ID_COLOR = "magenta"
DEFAULT_AUTHORS: tuple[str, ...] = ("Andres Delgado Gomez",)


def format_quiz(quiz: Quiz, *, prefix: str = " ") -> Text:
    """Render ``[id]:  question => answer`` with the id and arrow coloured."""

    return Text.assemble(
        prefix,
        "[",
        (str(quiz.id), ID_COLOR),
        "]:  ",
        quiz.question,
        " ",
        ("=>", ID_COLOR),
        " ",
        quiz.answer,
    )


class QuizSessionEngine:
    """One session's view of the quiz table."""

    def __init__(
        self,
        store: QuizStore,
        channel: SessionChannel,
        *,
        authors: Sequence[str] = DEFAULT_AUTHORS,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.channel = channel
        self.authors = tuple(authors)
        self._rng = rng

    async def help(self) -> None:
        for line in HELP_LINES:
            await self.channel.emit_line(line)

    async def list_quizzes(self) -> None:
        for quiz in await self.store.find_all():
            await self.channel.emit_line(
                Text.assemble(
                    " [", (str(quiz.id), ID_COLOR), "]: ", quiz.question
                )
            )

    async def show(self, raw_id: str | None) -> None:
        quiz = await self._lookup(raw_id)
        await self.channel.emit_line(format_quiz(quiz))

    async def add(self) -> Quiz:
        question = await self.channel.prompt(" Introduzca una pregunta: ")
        answer = await self.channel.prompt(" Introduzca la respuesta ")
        quiz = await self.store.create(question, answer)
        await self.channel.emit_line(
            Text.assemble(
                " [",
                (f"Se ha añadido el quiz {quiz.id}", ID_COLOR),
                "]:  ",
                quiz.question,
                " ",
                ("=>", ID_COLOR),
                " ",
                quiz.answer,
            )
        )
        return quiz

    async def edit(self, raw_id: str | None) -> Quiz:
        current = await self._lookup(raw_id)
        question = await self.channel.prompt(
            " Introduzca la pregunta ", prefill=current.question
        )
        answer = await self.channel.prompt(
            " Introduzca la respuesta ", prefill=current.answer
        )
        updated = await self.store.update(
            Quiz(id=current.id, question=question, answer=answer)
        )
        await self.channel.emit_line(
            Text.assemble(
                " Se ha cambiado el quiz ",
                (str(updated.id), ID_COLOR),
                " por:  ",
                updated.question,
                " ",
                ("=>", ID_COLOR),
                " ",
                updated.answer,
            )
        )
        return updated

    async def delete(self, raw_id: str | None) -> None:
        quiz_id = validate_id(raw_id)
        await self.store.delete(quiz_id)
        await self.channel.emit_line(
            Text.assemble(" Se ha borrado el quiz ", (str(quiz_id), ID_COLOR))
        )

    async def test(self, raw_id: str | None) -> bool:
        quiz = await self._lookup(raw_id)
        given = await self.channel.prompt(f"{quiz.question}? ")
        correct = answers_match(given, quiz.answer)
        if correct:
            await self.channel.emit_line("Su respuesta es correcta.")
            await self.channel.emit_banner("Correcta", "green")
        else:
            await self.channel.emit_line("Su respuesta es incorrecta.")
            await self.channel.emit_banner("Incorrecta", "red")
        return correct

    async def play(self) -> PlayRound:
        return await play_round(self.store, self.channel, rng=self._rng)

    async def credits(self) -> None:
        await self.channel.emit_line("Autores de la práctica:")
        for author in self.authors:
            await self.channel.emit_line(author, "green")

    async def quit(self) -> None:
        await self.channel.close()

    async def _lookup(self, raw_id: str | None) -> Quiz:
        quiz_id = validate_id(raw_id)
        quiz = await self.store.find_by_id(quiz_id)
        if quiz is None:
            logger.debug("Quiz lookup missed", extra={"quiz_id": quiz_id})
            raise NotFound(quiz_id)
        return quiz
