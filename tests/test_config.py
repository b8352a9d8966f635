import os
from pathlib import Path

import pytest

from puppet_scraper.config import Config, load_config, parse_bool

ENV_VARS = ["PS_QUERY", "PS_DELAY_MS", "PS_LIMIT", "PS_PRETTY", "PS_HEADFUL", "PS_BROWSER", "PS_LOG_FILE", "PS_LOG_LEVEL"]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.setattr(os, "environ", os.environ.copy())
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = load_config(env_file=None)
    assert config == Config()
    assert config.limit is None
    assert config.delay_ms == 500.0


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("PS_QUERY", "$.items[*]")
    monkeypatch.setenv("PS_DELAY_MS", "0")
    monkeypatch.setenv("PS_LIMIT", "25")
    monkeypatch.setenv("PS_PRETTY", "yes")
    monkeypatch.setenv("PS_LOG_FILE", "logs/run.log")
    monkeypatch.setenv("PS_LOG_LEVEL", "debug")

    config = load_config(env_file=None)

    assert config.query == "$.items[*]"
    assert config.delay_ms == 0.0
    assert config.limit == 25
    assert config.pretty is True
    assert config.log_file == Path("logs/run.log")
    assert config.log_level == "DEBUG"


def test_env_file_is_read(tmp_path: Path):
    env_file = tmp_path / ".env"
    env_file.write_text("PS_LIMIT=3\nPS_HEADFUL=on\n")
    config = load_config(env_file=str(env_file))
    assert config.limit == 3
    assert config.headful is True


def test_parse_bool():
    assert parse_bool("True")
    assert parse_bool(" on ")
    assert not parse_bool("0")
    assert not parse_bool("nope")
