from __future__ import annotations

import random

import pytest

from fixtures import ScriptedChannel, run_with_store
from quiz_manager.quizzer.dispatcher import (
    Command,
    CommandDispatcher,
    parse_command,
)
from quiz_manager.quizzer.engine import HELP_LINES, QuizSessionEngine


class LastPick(random.Random):
    """Always draws the last remaining position."""

    def randrange(self, stop, *args, **kwargs):  # noqa: ANN001
        return stop - 1


def _run_session(store_url, channel: ScriptedChannel, *lines: str):
    channel.feed(*lines)

    async def scenario(store):
        engine = QuizSessionEngine(store, channel, rng=LastPick())
        await CommandDispatcher(engine, channel).run()
        return await store.find_all()

    return run_with_store(store_url, scenario)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("help", Command("help")),
        ("H", Command("help")),
        ("  show   3  ", Command("show", "3")),
        ("SHOW 3 extra", Command("show", "3")),
        ("p", Command("play")),
        ("Q", Command("quit")),
        ("frobnicate 1", Command("frobnicate", "1")),
    ],
)
def test_parse_command(raw, expected):
    assert parse_command(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_parse_command_blank(raw):
    assert parse_command(raw) is None


def test_scenario_session(store_url, channel):
    _run_session(
        store_url,
        channel,
        "test 1",
        "4",
        "test 1",
        " 4 ",
        "test 2",
        "paris",
        "play",
        "PARIS",
        "4",
        "show 99",
        "quit",
    )

    assert channel.banners()[:3] == ["Correcta", "Correcta", "Correcta"]
    assert channel.banners()[3] == "2"
    assert " No hay nada más que preguntar" in channel.lines()
    assert channel.errors() == ["No existe un quiz asociado al id=99."]
    assert channel.closed


def test_ready_is_signalled_after_every_command(store_url, channel):
    _run_session(store_url, channel, "list", "", "credits", "q")

    kinds = list(channel.kinds())
    assert kinds.count("ready") == 4
    assert kinds[0] == "ready"
    assert kinds[-1] == "close"
    assert kinds[-2] == "ready"


def test_help_aliases(store_url, channel):
    _run_session(store_url, channel, "h", "HELP")

    assert channel.lines() == list(HELP_LINES) * 2


def test_unknown_command_is_reported(store_url, channel):
    _run_session(store_url, channel, "Dance 3")

    assert channel.errors() == ["Comando desconocido: 'Dance'"]
    assert channel.lines() == [
        "Use help para ver todos los comandos disponibles."
    ]


@pytest.mark.parametrize(
    "line, message",
    [
        ("show", "Falta el parámetro <id>."),
        ("edit x", "El valor del parámetro <id> no es válido."),
        ("delete 40", "No existe un quiz asociado al id=40."),
        ("test 8", "No existe un quiz asociado al id=8."),
        (
            "show 99999999999999999999",
            "No existe un quiz asociado al id=99999999999999999999.",
        ),
        ("show ١٢", "El valor del parámetro <id> no es válido."),
    ],
)
def test_command_errors_are_non_fatal(store_url, channel, line, message):
    quizzes = _run_session(store_url, channel, line, "list")

    assert channel.errors() == [message]
    assert channel.lines() == [" [1]: 2+2?", " [2]: capital of France?"]
    assert len(quizzes) == 2


def test_validation_errors_render_each_field(store_url, channel):
    _run_session(store_url, channel, "add", " ", "")

    assert channel.errors() == [
        "El quiz es erróneo:",
        "La pregunta no puede estar vacía.",
        "La respuesta no puede estar vacía.",
    ]


def test_edit_then_show(store_url, channel):
    quizzes = _run_session(
        store_url, channel, "edit 2", "Capital of Spain?", "Madrid", "show 2"
    )

    assert channel.lines()[-1] == " [2]:  Capital of Spain? => Madrid"
    assert quizzes[1].answer == "Madrid"


def test_unexpected_errors_are_reported(store_url, channel, monkeypatch):
    async def broken(self):
        raise LookupError("table on fire")

    monkeypatch.setattr(QuizSessionEngine, "list_quizzes", broken)

    _run_session(store_url, channel, "list", "credits")

    assert channel.errors() == ["table on fire"]
    assert "Autores de la práctica:" in channel.lines()


def test_quit_stops_reading(store_url, channel):
    _run_session(store_url, channel, "quit", "list")

    assert channel.lines() == []
    assert list(channel.inputs) == ["list"]


def test_disconnect_mid_prompt_ends_session(store_url, channel):
    quizzes = _run_session(store_url, channel, "add", "half a question")

    assert channel.closed
    assert channel.errors() == []
    assert len(quizzes) == 2
