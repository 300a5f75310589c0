"""Session channels: the text transport a quiz session talks through.

A channel writes Rich renderables (coloured lines, banners, error lines) and
reads one line at a time. Two implementations ship here: ``StreamChannel``
for TCP clients served by :mod:`quiz_manager.quizzer.server` and
``ConsoleChannel`` for the local terminal.
"""

from __future__ import annotations

import asyncio
import io
import logging
import sys
import threading
from typing import Callable, Protocol, TextIO, Union

from rich import box
from rich.align import Align
from rich.console import Console, RenderableType
from rich.panel import Panel
from rich.text import Text

from .errors import TransportClosed

try:  # readline gives the terminal editable, pre-filled prompts.
    import readline
except ImportError:  # pragma: no cover - platform dependent
    readline = None  # type: ignore[assignment]

__all__ = [
    "LineText",
    "SessionChannel",
    "RichChannel",
    "StreamChannel",
    "ConsoleChannel",
    "render_banner",
]

logger = logging.getLogger(__name__)

LineText = Union[str, Text]

DEFAULT_READY_PROMPT = "quiz > "
LINE_TOO_LONG = "La línea es demasiado larga y se ha descartado."


class SessionChannel(Protocol):
    """What session flows need from a transport."""

    @property
    def closed(self) -> bool:
        """True once the channel has been closed by either side."""

    async def emit_line(
        self, text: LineText, color: str | None = None
    ) -> None:
        """Write one line, optionally in ``color``."""

    async def emit_banner(self, text: str, color: str | None = None) -> None:
        """Write a large decorative rendering of a short text."""

    async def emit_error(self, text: str) -> None:
        """Write an ``Error: ...`` line."""

    async def prompt(self, text: str, *, prefill: str | None = None) -> str:
        """Show ``text`` and return the next input line, trimmed."""

    async def signal_ready(self) -> None:
        """Show the command prompt."""

    async def read_command(self) -> str:
        """Return the next raw command line."""

    async def close(self) -> None:
        """Release the transport; later writes are dropped."""


def render_banner(text: str, color: str | None = None) -> Panel:
    style = f"bold {color}" if color else "bold"
    return Panel(
        Align.center(Text(text, style=style)),
        box=box.HEAVY,
        border_style=color or "white",
        expand=False,
        padding=(1, 6),
    )


class RichChannel:
    """Channel base that renders through an in-memory Rich console.

    Subclasses provide ``_write`` and ``_read_line``; everything else,
    including the closed-state rules, lives here.
    """

    def __init__(
        self,
        *,
        ready_prompt: str = DEFAULT_READY_PROMPT,
        color: bool = True,
        width: int = 80,
    ) -> None:
        self._ready_prompt = ready_prompt
        self._buffer = io.StringIO()
        self._console = Console(
            file=self._buffer,
            force_terminal=color,
            color_system="standard" if color else None,
            width=width,
            highlight=False,
            emoji=False,
        )
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def emit_line(
        self, text: LineText, color: str | None = None
    ) -> None:
        line = Text(text) if isinstance(text, str) else text.copy()
        if color:
            line.stylize(color)
        await self._emit(line)

    async def emit_banner(self, text: str, color: str | None = None) -> None:
        await self._emit(render_banner(text, color))

    async def emit_error(self, text: str) -> None:
        await self._emit(
            Text.assemble(("Error", "bold red"), ": ", (text, "red"))
        )

    async def prompt(self, text: str, *, prefill: str | None = None) -> str:
        self._ensure_open()
        rendered = self._render(Text(text, style="red"), end="")
        line = await self._ask(rendered, prefill)
        if line is None:
            await self.close()
            raise TransportClosed()
        return line.strip()

    async def signal_ready(self) -> None:
        if self._closed:
            return
        await self._write(
            self._render(Text(self._ready_prompt, style="blue"), end="")
        )

    async def read_command(self) -> str:
        self._ensure_open()
        line = await self._read_line()
        if line is None:
            await self.close()
            raise TransportClosed()
        return line

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._close()

    async def _emit(self, renderable: RenderableType) -> None:
        if self._closed:
            return
        await self._write(self._render(renderable))

    def _render(self, renderable: RenderableType, *, end: str = "\n") -> str:
        self._console.print(renderable, end=end)
        rendered = self._buffer.getvalue()
        self._buffer.seek(0)
        self._buffer.truncate()
        return rendered

    def _ensure_open(self) -> None:
        if self._closed:
            raise TransportClosed()

    async def _ask(
        self, rendered_prompt: str, prefill: str | None
    ) -> str | None:
        del prefill  # plain line transports cannot pre-fill input
        await self._write(rendered_prompt)
        return await self._read_line()

    async def _write(self, data: str) -> None:
        raise NotImplementedError

    async def _read_line(self) -> str | None:
        raise NotImplementedError

    async def _close(self) -> None:
        return None


class StreamChannel(RichChannel):
    """Channel over an asyncio stream pair (one TCP connection)."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        ready_prompt: str = DEFAULT_READY_PROMPT,
        color: bool = True,
    ) -> None:
        super().__init__(ready_prompt=ready_prompt, color=color)
        self._reader = reader
        self._writer = writer

    @property
    def peer(self) -> str:
        info = self._writer.get_extra_info("peername")
        if isinstance(info, tuple) and len(info) >= 2:
            return f"{info[0]}:{info[1]}"
        return str(info)

    async def _write(self, data: str) -> None:
        try:
            self._writer.write(data.encode("utf-8"))
            await self._writer.drain()
        except ConnectionError as exc:
            logger.info("Peer went away", extra={"peer": self.peer})
            await self.close()
            raise TransportClosed() from exc

    async def _read_line(self) -> str | None:
        while True:
            try:
                data = await self._reader.readuntil(b"\n")
            except asyncio.IncompleteReadError as exc:
                data = exc.partial
            except asyncio.LimitOverrunError as exc:
                if not await self._discard_line(exc.consumed):
                    return None
                logger.warning(
                    "Dropped oversized line",
                    extra={"peer": self.peer},
                )
                await self.emit_error(LINE_TOO_LONG)
                continue
            except ConnectionError:
                return None
            if not data:
                return None
            return data.decode("utf-8", errors="replace").rstrip("\r\n")

    async def _discard_line(self, consumed: int) -> bool:
        """Skip the rest of an over-long line; ``False`` if the peer left."""

        try:
            while True:
                await self._reader.readexactly(consumed)
                try:
                    await self._reader.readuntil(b"\n")
                    return True
                except asyncio.LimitOverrunError as exc:
                    consumed = exc.consumed
        except (asyncio.IncompleteReadError, ConnectionError):
            return False

    async def _close(self) -> None:
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except ConnectionError:
            pass


class ConsoleChannel(RichChannel):
    """Channel bound to the local terminal.

    Blocking ``input()`` calls run in a daemon thread so the event loop stays
    free and Ctrl+C never waits on a pending read. When ``readline`` is
    available, edit prompts start pre-filled.
    """

    def __init__(
        self,
        *,
        stream: TextIO | None = None,
        input_func: Callable[[str], str] | None = None,
        ready_prompt: str = DEFAULT_READY_PROMPT,
        color: bool | None = None,
    ) -> None:
        target = stream if stream is not None else sys.stdout
        super().__init__(
            ready_prompt=ready_prompt,
            color=target.isatty() if color is None else color,
        )
        self._stream = target
        self._input = input_func or input

    async def _write(self, data: str) -> None:
        self._stream.write(data)
        self._stream.flush()

    async def _read_line(self) -> str | None:
        return await self._ask("", None)

    async def _ask(
        self, rendered_prompt: str, prefill: str | None
    ) -> str | None:
        try:
            return await _in_daemon_thread(
                self._input_with_prefill, rendered_prompt, prefill
            )
        except EOFError:
            return None

    def _input_with_prefill(self, prompt: str, prefill: str | None) -> str:
        if readline is None or not prefill:
            return self._input(prompt)
        readline.set_startup_hook(lambda: readline.insert_text(prefill))
        try:
            return self._input(prompt)
        finally:
            readline.set_startup_hook()


def _in_daemon_thread(
    func: Callable[..., str], *args: object
) -> "asyncio.Future[str]":
    loop = asyncio.get_running_loop()
    future: asyncio.Future[str] = loop.create_future()

    def deliver(result: str | None, error: BaseException | None) -> None:
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)  # type: ignore[arg-type]

    def target() -> None:
        try:
            result = func(*args)
        except BaseException as exc:  # noqa: BLE001
            outcome: tuple[str | None, BaseException | None] = (None, exc)
        else:
            outcome = (result, None)
        try:
            loop.call_soon_threadsafe(deliver, *outcome)
        except RuntimeError:  # loop already closed
            pass

    threading.Thread(
        target=target, name="quiz-console-input", daemon=True
    ).start()
    return future
