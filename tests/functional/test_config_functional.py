"""Functional tests for configuration loading precedence and validation."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from ordinal import config as config_module
from ordinal.config import SearchConfig, load_config


@pytest.fixture()
def isolated(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for key in (
        "SEQUENCE_START_AT",
        "HISTORY_SESSION_KEY",
        "HISTORY_ADMIN_PREFIX",
        "SEARCH_DEFAULT_LIMIT",
        "SEARCH_MAX_LIMIT",
        "SESSION_SECRET",
    ):
        monkeypatch.delenv(key, raising=False)
    return tmp_path


def test_defaults(isolated) -> None:
    cfg = load_config()
    assert cfg.sequence.start_at == 0
    assert cfg.history.session_key == "History"
    assert cfg.search.default_limit == 10


def test_json_file_then_text_override_then_env(isolated, monkeypatch) -> None:
    (isolated / "ordinal_config.json").write_text(
        json.dumps({"sequence": {"start_at": 1}, "search": {"default_limit": 20}}), encoding="utf-8"
    )
    assert load_config().sequence.start_at == 1
    assert load_config().search.default_limit == 20

    (isolated / "config").mkdir()
    (isolated / "config" / "sequence.start_at").write_text("2\n", encoding="utf-8")
    assert load_config().sequence.start_at == 2

    monkeypatch.setenv("SEQUENCE_START_AT", "3")
    assert load_config().sequence.start_at == 3


def test_admin_prefix_slashes_are_stripped(isolated, monkeypatch) -> None:
    monkeypatch.setenv("HISTORY_ADMIN_PREFIX", "/backoffice/")
    assert load_config().history.admin_prefix == "backoffice"


def test_invalid_values_raise(isolated, monkeypatch) -> None:
    monkeypatch.setenv("SEARCH_DEFAULT_LIMIT", "500")
    with pytest.raises(ValidationError):
        load_config()
    monkeypatch.setenv("SEARCH_DEFAULT_LIMIT", "ten")
    with pytest.raises(ValueError):
        load_config()


def test_search_config_validation() -> None:
    with pytest.raises(ValidationError):
        SearchConfig(default_limit=0)


def test_config_paths_are_relative_to_working_directory() -> None:
    assert str(config_module.ROOT_CONFIG) == "ordinal_config.json"
    assert str(config_module.CONFIG_DIR) == "config"


def test_session_secret_from_environment(isolated, monkeypatch) -> None:
    assert load_config().history.session_secret == "ordinal-dev-session-secret"
    monkeypatch.setenv("SESSION_SECRET", "s3cret")
    assert load_config().history.session_secret == "s3cret"
    monkeypatch.setenv("SESSION_SECRET", "   ")
    with pytest.raises(ValidationError):
        load_config()
