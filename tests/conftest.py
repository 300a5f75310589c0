from __future__ import annotations

import sys
from pathlib import Path

import pytest

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

# Ensure src/ is importable without an editable install.
ROOT = TESTS_DIR.parent
for extra in (ROOT / "src",):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import ScriptedChannel  # noqa: E402
from quiz_manager.quizzer.store import sqlite_url  # noqa: E402


@pytest.fixture
def store_url(tmp_path: Path) -> str:
    """SQLite URL of a fresh database file inside the test tmp dir."""

    return sqlite_url(tmp_path / "quizzes.sqlite")


@pytest.fixture
def channel() -> ScriptedChannel:
    return ScriptedChannel()


@pytest.fixture(autouse=True)
def _isolate_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("QUIZ_MANAGER_HOME", str(tmp_path / "home"))
    for key in (
        "QUIZ_MANAGER_CONFIG",
        "QUIZ_MANAGER_HOST",
        "QUIZ_MANAGER_PORT",
        "QUIZ_MANAGER_DATABASE_URL",
        "QUIZ_MANAGER_SEED",
        "QUIZ_MANAGER_PROMPT",
        "QUIZ_MANAGER_LOG_LEVEL",
        "QUIZ_MANAGER_VERBOSE",
    ):
        monkeypatch.delenv(key, raising=False)
