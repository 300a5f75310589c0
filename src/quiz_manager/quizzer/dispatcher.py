"""Command-line parsing and the per-session command loop."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Mapping

from .channel import SessionChannel
from .engine import QuizSessionEngine
from .errors import QuizError, TransportClosed, ValidationError

__all__ = ["Command", "CommandDispatcher", "parse_command", "VERBS"]

logger = logging.getLogger(__name__)

_ALIASES: Mapping[str, str] = {"h": "help", "p": "play", "q": "quit"}

VERBS: tuple[str, ...] = (
    "help",
    "list",
    "show",
    "add",
    "delete",
    "edit",
    "test",
    "play",
    "credits",
    "quit",
)


@dataclass(frozen=True)
class Command:
    """Normalized verb plus the optional first argument."""

    verb: str
    argument: str | None = None


def parse_command(raw: str | None) -> Command | None:
    """Split a typed line into a lower-cased verb and its argument.

    Returns ``None`` for blank input. Aliases are expanded, unknown verbs are
    kept as typed (lower-cased) so the caller can report them.
    """

    if raw is None:
        return None
    words = raw.split()
    if not words:
        return None
    verb = words[0].lower()
    verb = _ALIASES.get(verb, verb)
    argument = words[1] if len(words) > 1 else None
    return Command(verb, argument)


class CommandDispatcher:
    """Route commands to the engine and render their failures."""

    def __init__(
        self, engine: QuizSessionEngine, channel: SessionChannel
    ) -> None:
        self.engine = engine
        self.channel = channel
        self._handlers: Mapping[
            str, Callable[[str | None], Awaitable[object]]
        ] = {
            "help": lambda _arg: engine.help(),
            "list": lambda _arg: engine.list_quizzes(),
            "show": engine.show,
            "add": lambda _arg: engine.add(),
            "delete": engine.delete,
            "edit": engine.edit,
            "test": engine.test,
            "play": lambda _arg: engine.play(),
            "credits": lambda _arg: engine.credits(),
            "quit": lambda _arg: engine.quit(),
        }

    async def run(self) -> None:
        """Read and dispatch commands until quit or the channel closes."""

        try:
            while not self.channel.closed:
                await self.channel.signal_ready()
                line = await self.channel.read_command()
                if not await self.dispatch(line):
                    break
        except TransportClosed:
            logger.debug("Session channel closed")

    async def dispatch(self, line: str) -> bool:
        """Run one command line; return ``False`` once the session is over."""

        command = parse_command(line)
        if command is None:
            return True

        handler = self._handlers.get(command.verb)
        if handler is None:
            await self._report_unknown(line.split()[0])
            return True

        logger.debug(
            "Command dispatched",
            extra={"verb": command.verb, "argument": command.argument},
        )
        try:
            await handler(command.argument)
        except TransportClosed:
            raise
        except ValidationError as exc:
            for message in exc.lines():
                await self.channel.emit_error(message)
        except QuizError as exc:
            await self.channel.emit_error(str(exc))
        except Exception as exc:
            logger.exception(
                "Command failed", extra={"verb": command.verb}
            )
            await self.channel.emit_error(str(exc) or exc.__class__.__name__)

        return command.verb != "quit" and not self.channel.closed

    async def _report_unknown(self, typed: str) -> None:
        await self.channel.emit_error(f"Comando desconocido: '{typed}'")
        await self.channel.emit_line(
            "Use help para ver todos los comandos disponibles."
        )
