"""CLI entry points for ``quiz serve``, ``quiz console`` and ``quiz seed``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

from quiz_manager.core.logging import configure_logger

from .config import (
    CONFIG_FILENAME,
    ConfigOverrides,
    LoadResult,
    QuizConfigError,
    load_config,
)
from .server import run_console, serve
from .store import QuizStore

LOGGER_NAME = "quiz_manager"


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        help=(
            f"Path to a {CONFIG_FILENAME} file (defaults to the workspace "
            "config directory)."
        ),
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root (defaults to QUIZ_MANAGER_HOME).",
    )
    parser.add_argument(
        "--database-url",
        help=(
            "SQLAlchemy async URL of the quiz database (defaults to "
            "db/quizzes.sqlite in the workspace)."
        ),
    )
    parser.add_argument(
        "--log-level",
        help="Set the logging level for the run (defaults to INFO).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=None,
        help="Also log to stderr at DEBUG level.",
    )


def _add_seed_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--no-seed",
        dest="seed",
        action="store_false",
        default=None,
        help="Do not insert the sample quizzes into an empty table.",
    )


def build_serve_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quiz serve",
        description="Serve quiz sessions to TCP clients (e.g. telnet, nc).",
    )
    parser.add_argument("--host", help="Interface to bind.")
    parser.add_argument("--port", type=int, help="TCP port to listen on.")
    _add_common_arguments(parser)
    _add_seed_argument(parser)
    return parser


def build_console_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quiz console",
        description="Run one quiz session in this terminal.",
    )
    _add_common_arguments(parser)
    _add_seed_argument(parser)
    return parser


def build_seed_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quiz seed",
        description="Insert the sample quizzes when the table is empty.",
    )
    _add_common_arguments(parser)
    return parser


def _load(
    parser: argparse.ArgumentParser, args: argparse.Namespace
) -> LoadResult:
    load_dotenv()
    overrides = ConfigOverrides(
        host=getattr(args, "host", None),
        port=getattr(args, "port", None),
        database_url=args.database_url,
        seed=getattr(args, "seed", None),
        log_level=args.log_level,
        verbose=args.verbose,
    )
    try:
        return load_config(
            config_path=args.config,
            overrides=overrides,
            workspace_path=args.workspace,
        )
    except QuizConfigError as exc:
        parser.error(str(exc))
        raise  # pragma: no cover - parser.error exits


def _configure_logging(load_result: LoadResult) -> logging.Logger:
    logger, _ = configure_logger(
        LOGGER_NAME,
        log_dir=load_result.layout.path_for("logs"),
        level=load_result.config.logging.level,
        verbose=load_result.config.logging.verbose,
    )
    return logger


def serve_main(argv: Sequence[str] | None = None) -> int:
    parser = build_serve_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    load_result = _load(parser, args)
    logger = _configure_logging(load_result)

    server_config = load_result.config.server
    sys.stdout.write(
        f"Quiz server listening on {server_config.host}:"
        f"{server_config.port} (Ctrl+C to stop)\n"
    )
    try:
        asyncio.run(serve(load_result.config))
    except KeyboardInterrupt:
        logger.info("Interrupted; shutting down")
    except (OSError, SQLAlchemyError) as exc:
        logger.exception("Quiz server failed")
        sys.stderr.write(f"Error: {exc}\n")
        return 1
    return 0


def console_main(argv: Sequence[str] | None = None) -> int:
    parser = build_console_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    load_result = _load(parser, args)
    logger = _configure_logging(load_result)

    try:
        asyncio.run(run_console(load_result.config))
    except KeyboardInterrupt:
        sys.stdout.write("\n")
        logger.info("Console session interrupted")
    except (OSError, SQLAlchemyError) as exc:
        logger.exception("Console session failed")
        sys.stderr.write(f"Error: {exc}\n")
        return 1
    return 0


def seed_main(argv: Sequence[str] | None = None) -> int:
    parser = build_seed_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    load_result = _load(parser, args)
    logger = _configure_logging(load_result)

    try:
        added = asyncio.run(_seed(load_result.config.database.url))
    except (OSError, SQLAlchemyError) as exc:
        logger.exception("Seeding failed")
        sys.stderr.write(f"Error: {exc}\n")
        return 1

    if added:
        sys.stdout.write(f"Inserted {added} sample quiz(zes).\n")
    else:
        sys.stdout.write("Quiz table already has data; nothing inserted.\n")
    return 0


async def _seed(url: str) -> int:
    store = await QuizStore.open(url)
    try:
        return await store.seed()
    finally:
        await store.close()


if __name__ == "__main__":  # pragma: no cover - manual invocation guard
    raise SystemExit(serve_main())
