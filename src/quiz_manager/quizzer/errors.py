"""Error taxonomy for quizzer commands.

Every error raised by a command handler derives from :class:`QuizError` and
is rendered on the session channel by the dispatcher; none of them ends the
session except :class:`TransportClosed`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

__all__ = [
    "QuizError",
    "MissingParameter",
    "InvalidParameter",
    "NotFound",
    "FieldError",
    "ValidationError",
    "TransportClosed",
]


class QuizError(RuntimeError):
    """Base class for errors reported to the user as error lines."""


class MissingParameter(QuizError):
    def __init__(self, name: str = "id") -> None:
        super().__init__(f"Falta el parámetro <{name}>.")
        self.name = name


class InvalidParameter(QuizError):
    def __init__(self, name: str = "id", value: str | None = None) -> None:
        super().__init__(f"El valor del parámetro <{name}> no es válido.")
        self.name = name
        self.value = value


class NotFound(QuizError):
    def __init__(self, quiz_id: int) -> None:
        super().__init__(f"No existe un quiz asociado al id={quiz_id}.")
        self.quiz_id = quiz_id


@dataclass(frozen=True)
class FieldError:
    """A single rejected field and the reason shown to the user."""

    field: str
    message: str


class ValidationError(QuizError):
    """The store refused a write; carries one message per offending field."""

    header = "El quiz es erróneo:"

    def __init__(self, errors: Iterable[FieldError]) -> None:
        self.errors: Sequence[FieldError] = tuple(errors)
        super().__init__(
            "; ".join(error.message for error in self.errors) or self.header
        )

    def lines(self) -> list[str]:
        return [self.header, *(error.message for error in self.errors)]


class TransportClosed(QuizError):
    """The session channel went away; no further IO is possible."""

    def __init__(self, message: str = "La conexión se ha cerrado.") -> None:
        super().__init__(message)
