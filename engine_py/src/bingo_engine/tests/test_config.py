"""
Tests for environment-driven server configuration.
"""

import pytest
from pydantic import ValidationError

from bingo_engine.config import ServerConfig


def test_defaults(monkeypatch):
    for name in ("HOST", "PORT", "LOG_LEVEL", "RELOAD", "SNAPSHOT_PATH", "CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)

    config = ServerConfig.from_env()

    assert config.host == "0.0.0.0"
    assert config.port == 8000
    assert config.log_level == "info"
    assert config.reload is False
    assert config.snapshot_path == "data/bingo-state.json"
    assert config.cors_origins == ["*"]


def test_from_env(monkeypatch):
    """Test every setting is read and normalised."""
    monkeypatch.setenv("PORT", "3000")
    monkeypatch.setenv("LOG_LEVEL", " DEBUG ")
    monkeypatch.setenv("RELOAD", "true")
    monkeypatch.setenv("SNAPSHOT_PATH", "")
    monkeypatch.setenv("CORS_ORIGINS", "http://localhost:3000, https://bingo.example")

    config = ServerConfig.from_env()

    assert config.port == 3000
    assert config.log_level == "debug"
    assert config.reload is True
    assert config.snapshot_path == ""
    assert config.cors_origins == ["http://localhost:3000", "https://bingo.example"]


def test_invalid_values():
    with pytest.raises(ValidationError):
        ServerConfig(log_level="loud")
    with pytest.raises(ValidationError):
        ServerConfig(port=0)
