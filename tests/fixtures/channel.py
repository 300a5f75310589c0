"""In-memory session channel driven by a scripted list of inputs."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Iterable

from rich.text import Text

from quiz_manager.quizzer.errors import TransportClosed


@dataclass(frozen=True)
class Event:
    kind: str
    text: str = ""
    color: str | None = None
    prefill: str | None = None


@dataclass
class ScriptedChannel:
    """Records everything a session emits and answers prompts from a queue.

    ``inputs`` feeds both prompts and commands in order. When it runs dry the
    channel behaves like a disconnected peer.
    """

    inputs: deque[str] = field(default_factory=deque)
    events: list[Event] = field(default_factory=list)
    _closed: bool = False

    def feed(self, *lines: str) -> "ScriptedChannel":
        self.inputs.extend(lines)
        return self

    @property
    def closed(self) -> bool:
        return self._closed

    async def emit_line(self, text: str | Text, color: str | None = None):
        if not self._closed:
            plain = text.plain if isinstance(text, Text) else text
            self.events.append(Event("line", plain, color))

    async def emit_banner(self, text: str, color: str | None = None) -> None:
        if not self._closed:
            self.events.append(Event("banner", text, color))

    async def emit_error(self, text: str) -> None:
        if not self._closed:
            self.events.append(Event("error", text))

    async def prompt(self, text: str, *, prefill: str | None = None) -> str:
        self.events.append(Event("prompt", text, prefill=prefill))
        return (await self._next()).strip()

    async def signal_ready(self) -> None:
        if not self._closed:
            self.events.append(Event("ready"))

    async def read_command(self) -> str:
        return await self._next()

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            self.events.append(Event("close"))

    async def _next(self) -> str:
        if self._closed:
            raise TransportClosed()
        if not self.inputs:
            await self.close()
            raise TransportClosed()
        return self.inputs.popleft()

    def of_kind(self, kind: str) -> list[Event]:
        return [event for event in self.events if event.kind == kind]

    def lines(self) -> list[str]:
        return [event.text for event in self.of_kind("line")]

    def errors(self) -> list[str]:
        return [event.text for event in self.of_kind("error")]

    def banners(self) -> list[str]:
        return [event.text for event in self.of_kind("banner")]

    def prompts(self) -> list[str]:
        return [event.text for event in self.of_kind("prompt")]

    def kinds(self) -> Iterable[str]:
        return [event.kind for event in self.events]
