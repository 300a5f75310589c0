from __future__ import annotations

from pathlib import Path

import pytest

from fixtures import write_config
from quiz_manager.quizzer import config as config_mod


def _load(tmp_path: Path, **kwargs) -> config_mod.LoadResult:
    kwargs.setdefault("env", {})
    kwargs.setdefault("workspace_path", tmp_path / "ws")
    return config_mod.load_config(**kwargs)


def test_defaults_without_config_file(tmp_path):
    result = _load(tmp_path)
    config = result.config

    assert result.config_path is None
    assert config.server == config_mod.ServerConfig("127.0.0.1", 3030)
    assert config.database.seed is True
    assert config.database.url == (
        "sqlite+aiosqlite:///"
        f"{result.layout.path_for('db') / 'quizzes.sqlite'}"
    )
    assert config.session.prompt == "quiz > "
    assert config.session.welcome == "CORE Quiz"
    assert config.authors == ("Andres Delgado Gomez",)
    assert config.logging == config_mod.LoggingConfig("INFO", False)


def test_workspace_config_file_is_picked_up(tmp_path):
    path = write_config(
        tmp_path / "ws" / "config" / config_mod.CONFIG_FILENAME,
        {
            "server": {"port": 4000},
            "credits": {"authors": ["Ada", " ", "Grace "]},
            "logging": {"level": "debug"},
        },
    )

    result = _load(tmp_path)

    assert result.config_path == path
    assert result.config.server.port == 4000
    assert result.config.authors == ("Ada", "Grace")
    assert result.config.logging.level == "DEBUG"


def test_precedence_cli_over_env_over_file(tmp_path):
    path = write_config(
        tmp_path / "custom.toml",
        {
            "server": {"host": "0.0.0.0", "port": 4000},
            "database": {"url": "sqlite+aiosqlite:///file.db", "seed": True},
        },
    )
    env = {
        "QUIZ_MANAGER_PORT": "5000",
        "QUIZ_MANAGER_SEED": "off",
        "QUIZ_MANAGER_DATABASE_URL": "sqlite+aiosqlite:///env.db",
    }
    overrides = config_mod.ConfigOverrides(port=6000)

    config = _load(
        tmp_path, config_path=path, env=env, overrides=overrides
    ).config

    assert config.server.host == "0.0.0.0"
    assert config.server.port == 6000
    assert config.database.seed is False
    assert config.database.url == "sqlite+aiosqlite:///env.db"


def test_config_env_points_at_file(tmp_path):
    path = write_config(tmp_path / "env.toml", {"session": {"welcome": "Hola"}})

    config = _load(
        tmp_path, env={config_mod.CONFIG_ENV: str(path)}
    ).config

    assert config.session.welcome == "Hola"


def test_env_prompt_keeps_trailing_space(tmp_path):
    config = _load(tmp_path, env={"QUIZ_MANAGER_PROMPT": "preguntas> "}).config

    assert config.session.prompt == "preguntas> "


def test_missing_explicit_config_is_an_error(tmp_path):
    with pytest.raises(config_mod.QuizConfigError, match="not found"):
        _load(tmp_path, config_path=tmp_path / "nope.toml")

    with pytest.raises(config_mod.QuizConfigError, match="not found"):
        _load(tmp_path, env={config_mod.CONFIG_ENV: str(tmp_path / "x.toml")})


@pytest.mark.parametrize(
    "tables, message",
    [
        ({"server": {"colour": "red"}}, "server.colour"),
        ({"scoreboard": {"size": 3}}, r"section \[scoreboard\]"),
        ({"server": {"port": "many"}}, "server.port"),
        ({"server": {"port": 70000}}, "between 0 and 65535"),
        ({"database": {"seed": "yes"}}, "database.seed"),
        ({"database": {"url": 3}}, "database.url"),
        ({"session": {"welcome": "  "}}, "session.welcome"),
        ({"credits": {"authors": "Ada"}}, "credits.authors"),
        ({"logging": {"level": 10}}, "logging.level"),
    ],
)
def test_invalid_values_are_rejected(tmp_path, tables, message):
    path = write_config(tmp_path / "bad.toml", tables)

    with pytest.raises(config_mod.QuizConfigError, match=message):
        _load(tmp_path, config_path=path)


def test_invalid_env_boolean(tmp_path):
    with pytest.raises(config_mod.QuizConfigError, match="QUIZ_MANAGER_VERBOSE"):
        _load(tmp_path, env={"QUIZ_MANAGER_VERBOSE": "perhaps"})


def test_invalid_toml_is_wrapped(tmp_path):
    path = tmp_path / "broken.toml"
    path.write_text("[server\n", encoding="utf-8")

    with pytest.raises(config_mod.QuizConfigError, match="parse"):
        _load(tmp_path, config_path=path)


def test_packaged_template_loads_cleanly(tmp_path):
    path = config_mod.write_config_template(tmp_path / "template.toml")

    config = _load(tmp_path, config_path=path).config

    assert config.server.port == 3030
    assert config.database.url.endswith("quizzes.sqlite")


def test_scalar_in_place_of_a_table_is_rejected(tmp_path):
    path = tmp_path / "flat.toml"
    path.write_text("server = 5\n", encoding="utf-8")

    with pytest.raises(config_mod.QuizConfigError, match=r"\[server\] must be"):
        _load(tmp_path, config_path=path)


def test_template_text_covers_every_section():
    text = config_mod.template_text()

    for section in ("server", "database", "session", "credits", "logging"):
        assert f"[{section}]" in text
    assert "port = 3030" in text


def test_write_config_template_refuses_to_clobber(tmp_path):
    target = tmp_path / "nested" / "quiz_manager.toml"
    config_mod.write_config_template(target)
    target.write_text("# edited\n", encoding="utf-8")

    with pytest.raises(config_mod.QuizConfigError, match="already exists"):
        config_mod.write_config_template(target)
    assert target.read_text(encoding="utf-8") == "# edited\n"

    config_mod.write_config_template(target, overwrite=True)
    assert target.read_text(encoding="utf-8") == config_mod.template_text()


def test_write_config_template_rejects_stale_template(tmp_path, monkeypatch):
    monkeypatch.setattr(
        config_mod, "template_text", lambda: "[server]\ncolour = 'red'\n"
    )
    target = tmp_path / "quiz_manager.toml"

    with pytest.raises(config_mod.QuizConfigError, match="server.colour"):
        config_mod.write_config_template(target)
    assert not target.exists()


def test_read_config_file_reports_missing_file(tmp_path):
    with pytest.raises(config_mod.QuizConfigError, match="not found"):
        config_mod.read_config_file(tmp_path / "absent.toml")
