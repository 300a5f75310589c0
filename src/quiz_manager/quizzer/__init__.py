from .channel import (
    ConsoleChannel,
    RichChannel,
    SessionChannel,
    StreamChannel,
    render_banner,
)
from .config import ConfigOverrides, QuizConfig, QuizConfigError, load_config
from .dispatcher import Command, CommandDispatcher, parse_command
from .engine import QuizSessionEngine
from .errors import (
    FieldError,
    InvalidParameter,
    MissingParameter,
    NotFound,
    QuizError,
    TransportClosed,
    ValidationError,
)
from .params import validate_id
from .play import IndexPool, PlayRound, RoundState, answers_match, play_round
from .server import QuizServer, run_console, run_session, serve
from .store import SAMPLE_QUIZZES, Quiz, QuizStore, sqlite_url

__all__ = [
    "ConsoleChannel",
    "RichChannel",
    "SessionChannel",
    "StreamChannel",
    "render_banner",
    "ConfigOverrides",
    "QuizConfig",
    "QuizConfigError",
    "load_config",
    "Command",
    "CommandDispatcher",
    "parse_command",
    "QuizSessionEngine",
    "FieldError",
    "InvalidParameter",
    "MissingParameter",
    "NotFound",
    "QuizError",
    "TransportClosed",
    "ValidationError",
    "validate_id",
    "IndexPool",
    "PlayRound",
    "RoundState",
    "answers_match",
    "play_round",
    "QuizServer",
    "run_console",
    "run_session",
    "serve",
    "SAMPLE_QUIZZES",
    "Quiz",
    "QuizStore",
    "sqlite_url",
]
