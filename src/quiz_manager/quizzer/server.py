"""TCP quiz server and the local console session.

Every connection gets its own channel, engine and dispatcher running in the
task asyncio created for it; the only shared object is the store.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Callable, Optional, Sequence, TextIO

from .channel import ConsoleChannel, RichChannel, StreamChannel
from .config import QuizConfig
from .dispatcher import CommandDispatcher
from .engine import QuizSessionEngine
from .store import QuizStore

__all__ = [
    "QuizServer",
    "open_store",
    "run_console",
    "run_session",
    "serve",
]

logger = logging.getLogger(__name__)

WELCOME_COLOR = "green"


async def run_session(
    channel: RichChannel,
    store: QuizStore,
    *,
    welcome: str | None = None,
    authors: Sequence[str] = (),
    rng: random.Random | None = None,
) -> None:
    """Greet the user and run the command loop until it ends."""

    engine = QuizSessionEngine(store, channel, authors=authors, rng=rng)
    if welcome:
        await channel.emit_banner(welcome, WELCOME_COLOR)
    try:
        await CommandDispatcher(engine, channel).run()
    finally:
        await channel.close()


async def open_store(config: QuizConfig) -> QuizStore:
    """Connect to the configured database and seed it when asked to."""

    store = await QuizStore.open(config.database.url)
    if config.database.seed:
        added = await store.seed()
        if added:
            logger.info("Inserted sample quizzes", extra={"count": added})
    return store


class QuizServer:
    """Accept TCP clients and run one quiz session per connection."""

    def __init__(
        self,
        store: QuizStore,
        config: QuizConfig,
        *,
        rng_factory: Callable[[], random.Random] | None = None,
    ) -> None:
        self.store = store
        self.config = config
        self._rng_factory = rng_factory or random.Random
        self._channels: set[StreamChannel] = set()
        self._server: Optional[asyncio.AbstractServer] = None

    @property
    def sockets(self) -> tuple[tuple[str, int], ...]:
        if self._server is None:
            return ()
        return tuple(
            sock.getsockname()[:2] for sock in self._server.sockets
        )

    @property
    def session_count(self) -> int:
        return len(self._channels)

    async def start(self) -> asyncio.AbstractServer:
        self._server = await asyncio.start_server(
            self.handle_connection,
            host=self.config.server.host,
            port=self.config.server.port,
        )
        logger.info(
            "Quiz server listening",
            extra={"addresses": [f"{h}:{p}" for h, p in self.sockets]},
        )
        return self._server

    async def serve_forever(self) -> None:
        server = self._server or await self.start()
        await server.serve_forever()

    async def close(self) -> None:
        if self._server is not None:
            self._server.close()
        for channel in list(self._channels):
            await channel.close()
        if self._server is not None:
            await self._server.wait_closed()
            self._server = None
        logger.info("Quiz server stopped")

    async def handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        channel = StreamChannel(
            reader, writer, ready_prompt=self.config.session.prompt
        )
        peer = channel.peer
        self._channels.add(channel)
        logger.info("Session opened", extra={"peer": peer})
        try:
            await run_session(
                channel,
                self.store,
                welcome=self.config.session.welcome,
                authors=self.config.authors,
                rng=self._rng_factory(),
            )
        except Exception:
            logger.exception("Session crashed", extra={"peer": peer})
        finally:
            self._channels.discard(channel)
            logger.info("Session closed", extra={"peer": peer})


async def serve(config: QuizConfig) -> None:
    """Run the TCP server until cancelled, then release the store."""

    store = await open_store(config)
    server = QuizServer(store, config)
    try:
        await server.start()
        await server.serve_forever()
    finally:
        await server.close()
        await store.close()


async def run_console(
    config: QuizConfig,
    *,
    stream: TextIO | None = None,
    input_func: Callable[[str], str] | None = None,
) -> None:
    """Run a single session on the local terminal."""

    store = await open_store(config)
    channel = ConsoleChannel(
        stream=stream,
        input_func=input_func,
        ready_prompt=config.session.prompt,
    )
    logger.info("Console session opened")
    try:
        await run_session(
            channel,
            store,
            welcome=config.session.welcome,
            authors=config.authors,
        )
    finally:
        await store.close()
        logger.info("Console session closed")
