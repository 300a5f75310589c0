"""Shared testing fixtures for the quiz-manager test suite."""

from .channel import ScriptedChannel  # noqa: F401
from .config import render_toml, write_config  # noqa: F401
from .store import SCENARIO_QUIZZES, run_with_store  # noqa: F401

__all__ = [
    "SCENARIO_QUIZZES",
    "ScriptedChannel",
    "render_toml",
    "run_with_store",
    "write_config",
]
