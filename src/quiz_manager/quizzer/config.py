"""Configuration loader for the quiz server and console sessions."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional, Sequence

from quiz_manager.core import workspace as workspace_mod

from .store import sqlite_url

CONFIG_FILENAME = "quiz_manager.toml"
CONFIG_ENV = "QUIZ_MANAGER_CONFIG"
ENV_PREFIX = "QUIZ_MANAGER_"
DATABASE_FILENAME = "quizzes.sqlite"

_DEFAULT_HOST = "127.0.0.1"
_DEFAULT_PORT = 3030
_DEFAULT_PROMPT = "quiz > "
_DEFAULT_WELCOME = "CORE Quiz"
_DEFAULT_AUTHORS: tuple[str, ...] = ("Andres Delgado Gomez",)
_DEFAULT_LOG_LEVEL = "INFO"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


class QuizConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class ServerConfig:
    host: str
    port: int


@dataclass(frozen=True)
class DatabaseConfig:
    url: str
    seed: bool


@dataclass(frozen=True)
class SessionConfig:
    prompt: str
    welcome: str


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    verbose: bool


@dataclass(frozen=True)
class QuizConfig:
    """Fully resolved configuration for a server or console run."""

    server: ServerConfig
    database: DatabaseConfig
    session: SessionConfig
    authors: tuple[str, ...]
    logging: LoggingConfig


@dataclass(frozen=True)
class ConfigOverrides:
    """CLI-sourced overrides applied on top of file/env options."""

    host: Optional[str] = None
    port: Optional[int] = None
    database_url: Optional[str] = None
    seed: Optional[bool] = None
    log_level: Optional[str] = None
    verbose: Optional[bool] = None


@dataclass(frozen=True)
class LoadResult:
    """Result of loading configuration, including workspace context."""

    config: QuizConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Load configuration applying precedence CLI > env > TOML > defaults."""

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env

    try:
        layout = workspace_mod.ensure_workspace(
            env=env_map, path=workspace_path
        )
    except workspace_mod.WorkspaceError as exc:
        raise QuizConfigError(str(exc)) from exc
    default_path = layout.path_for("config") / CONFIG_FILENAME

    requested_path = _resolve_config_path(
        config_path=config_path,
        env_map=env_map,
        default_path=default_path,
    )

    options = _default_table()
    loaded_path: Optional[Path]
    if requested_path.exists():
        loaded_path = requested_path
        _apply_file_options(options, read_config_file(requested_path))
    else:
        loaded_path = None
        if config_path is not None or _has_env_config(env_map):
            raise QuizConfigError(f"Config file not found: {requested_path}")

    server = ServerConfig(
        host=_require_string(
            _pick_first(
                overrides.host,
                _parse_env_string(env_map, "HOST"),
                options["server"]["host"],
            ),
            "server.host",
        ),
        port=_resolve_port(
            _pick_first(
                overrides.port,
                _parse_env_string(env_map, "PORT"),
                options["server"]["port"],
            )
        ),
    )

    database = DatabaseConfig(
        url=_resolve_database_url(
            _pick_first(
                overrides.database_url,
                _parse_env_string(env_map, "DATABASE_URL"),
                options["database"]["url"],
            ),
            layout=layout,
        ),
        seed=_resolve_bool(
            _pick_first(
                overrides.seed,
                _parse_env_bool(env_map, "SEED"),
                options["database"]["seed"],
            ),
            "database.seed",
        ),
    )

    session = SessionConfig(
        prompt=_require_string(
            _pick_first(
                _parse_env_string(env_map, "PROMPT", strip=False),
                options["session"]["prompt"],
            ),
            "session.prompt",
            allow_blank_edges=True,
        ),
        welcome=_require_string(
            options["session"]["welcome"], "session.welcome"
        ),
    )

    logging_config = LoggingConfig(
        level=_resolve_log_level(
            _pick_first(
                overrides.log_level,
                _parse_env_string(env_map, "LOG_LEVEL"),
                options["logging"]["level"],
            )
        ),
        verbose=_resolve_bool(
            _pick_first(
                overrides.verbose,
                _parse_env_bool(env_map, "VERBOSE"),
                options["logging"]["verbose"],
            ),
            "logging.verbose",
        ),
    )

    config = QuizConfig(
        server=server,
        database=database,
        session=session,
        authors=_normalize_authors(options["credits"]["authors"]),
        logging=logging_config,
    )
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def _default_table() -> MutableMapping[str, MutableMapping[str, object]]:
    return {
        "server": {"host": _DEFAULT_HOST, "port": _DEFAULT_PORT},
        "database": {"url": "", "seed": True},
        "session": {"prompt": _DEFAULT_PROMPT, "welcome": _DEFAULT_WELCOME},
        "credits": {"authors": list(_DEFAULT_AUTHORS)},
        "logging": {"level": _DEFAULT_LOG_LEVEL, "verbose": False},
    }


def read_config_file(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        raise QuizConfigError(f"Config file not found: {path}") from exc
    except OSError as exc:
        raise QuizConfigError(
            f"Cannot read config file {path}: {exc}"
        ) from exc
    except tomllib.TOMLDecodeError as exc:
        raise QuizConfigError(f"Failed to parse {path}: {exc}") from exc


def template_text() -> str:
    """Return the commented ``quiz_manager.toml`` shipped with the package."""

    resource = resources.files(__package__).joinpath(CONFIG_FILENAME)
    return resource.read_text(encoding="utf-8")


def write_config_template(path: Path, *, overwrite: bool = False) -> Path:
    """Copy the packaged template to ``path``.

    The template is checked against the known sections and keys before it is
    written, so ``quiz init`` never produces a file ``load_config`` rejects.
    """

    if path.exists() and not overwrite:
        raise QuizConfigError(f"Config already exists: {path}")
    text = template_text()
    _apply_file_options(_default_table(), tomllib.loads(text))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _apply_file_options(
    options: MutableMapping[str, MutableMapping[str, object]],
    parsed: Mapping[str, Any],
) -> None:
    # Sections are flat: every value in the file replaces one default.
    for section, values in parsed.items():
        defaults = options.get(section)
        if defaults is None:
            raise QuizConfigError(
                f"Unknown configuration section [{section}]."
            )
        if not isinstance(values, Mapping):
            raise QuizConfigError(
                f"[{section}] must be a table, found "
                f"{type(values).__name__}."
            )
        for key, value in values.items():
            if key not in defaults:
                raise QuizConfigError(
                    f"Unknown configuration key '{section}.{key}'."
                )
            defaults[key] = value


def _resolve_config_path(
    *,
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    default_path: Path,
) -> Path:
    if config_path is not None:
        return config_path.expanduser()
    env_candidate = (env_map.get(CONFIG_ENV) or "").strip()
    if env_candidate:
        return Path(env_candidate).expanduser()
    return default_path


def _has_env_config(env_map: Mapping[str, str]) -> bool:
    env_candidate = env_map.get(CONFIG_ENV)
    return bool(env_candidate and env_candidate.strip())


def _resolve_port(value: object) -> int:
    if isinstance(value, bool):
        raise QuizConfigError("server.port must be an integer.")
    if isinstance(value, str):
        try:
            value = int(value)
        except ValueError as exc:
            raise QuizConfigError(
                f"server.port must be an integer, got '{value}'."
            ) from exc
    if not isinstance(value, int):
        raise QuizConfigError("server.port must be an integer.")
    if not 0 <= value <= 65535:
        raise QuizConfigError("server.port must be between 0 and 65535.")
    return value


def _resolve_database_url(
    value: object, *, layout: workspace_mod.WorkspaceLayout
) -> str:
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise QuizConfigError("database.url must be a string.")
    url = value.strip()
    if not url:
        return sqlite_url(layout.path_for("db") / DATABASE_FILENAME)
    return url


def _resolve_bool(value: object, name: str) -> bool:
    if isinstance(value, bool):
        return value
    raise QuizConfigError(f"{name} must be a boolean.")


def _resolve_log_level(value: object) -> str:
    level = _require_string(value, "logging.level")
    return level.upper()


def _require_string(
    value: object, name: str, *, allow_blank_edges: bool = False
) -> str:
    if not isinstance(value, str):
        raise QuizConfigError(f"{name} must be a string.")
    if not value.strip():
        raise QuizConfigError(f"{name} must be a non-empty string.")
    return value if allow_blank_edges else value.strip()


def _normalize_authors(value: object) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, Sequence):
        raise QuizConfigError("credits.authors must be a list of strings.")
    authors: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise QuizConfigError(
                "credits.authors must be a list of strings."
            )
        if item.strip():
            authors.append(item.strip())
    return tuple(authors)


def _parse_env_bool(env_map: Mapping[str, str], key: str) -> Optional[bool]:
    raw = _parse_env_string(env_map, key)
    if raw is None:
        return None
    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise QuizConfigError(
        f"{ENV_PREFIX}{key} must be a boolean (true/false), got '{raw}'."
    )


def _parse_env_string(
    env_map: Mapping[str, str], key: str, *, strip: bool = True
) -> Optional[str]:
    raw = env_map.get(f"{ENV_PREFIX}{key}")
    if raw is None or not raw.strip():
        return None
    return raw.strip() if strip else raw


def _pick_first(*candidates: object) -> object:
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None
