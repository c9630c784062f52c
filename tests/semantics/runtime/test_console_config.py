"""
Semantic test: console configuration.

Invariant:
Unknown keys and roles are rejected, agency owners must name their agency
and the bearer token is only ever read from the environment.
"""

# pylint: disable=missing-function-docstring
from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from dispatch_console.runtime.config import TOKEN_ENV_VAR, ConsoleConfig, load_config, token_from_env


def test_defaults() -> None:
    cfg = ConsoleConfig.from_json_obj({"api_base_url": "https://api.example.test"})
    assert cfg.page_size == 10
    assert cfg.export_limit == 10_000
    assert cfg.refresh_window_s == 0.5
    assert cfg.currency_token == "KSH"
    assert cfg.role == "admin"


@pytest.mark.parametrize(
    "obj",
    [
        {"api_base_url": "https://api.example.test", "token": "secret"},
        {"api_base_url": "https://api.example.test", "role": "driver"},
        {"api_base_url": "https://api.example.test", "role": "agency_owner"},
        {"api_base_url": "https://api.example.test", "page_size": 0},
        {"api_base_url": ""},
    ],
)
def test_invalid_configs(obj) -> None:
    with pytest.raises(ValidationError):
        ConsoleConfig.from_json_obj(obj)


def test_load_from_file(tmp_path) -> None:
    path = tmp_path / "console.json"
    path.write_text(
        json.dumps(
            {
                "api_base_url": "https://api.example.test",
                "push_url": "wss://push.example.test/ws",
                "role": "agency_owner",
                "agency_id": "agency-3",
            }
        ),
        encoding="utf-8",
    )
    cfg = load_config(path)
    assert cfg.agency_id == "agency-3"
    assert cfg.push_url == "wss://push.example.test/ws"


def test_missing_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.json")


def test_token_from_env(monkeypatch) -> None:
    monkeypatch.setenv(TOKEN_ENV_VAR, "  abc  ")
    assert token_from_env() == "abc"
    monkeypatch.setenv(TOKEN_ENV_VAR, " ")
    assert token_from_env() is None
