"""Tests for the autoroute command line."""

import socket

import pytest
import yaml
from typer.testing import CliRunner

from autoroute import __version__
from autoroute.cli import app
from autoroute.routing import DEFAULT_TIER_MODELS

runner = CliRunner()


@pytest.fixture
def missing_config(tmp_path):
    return str(tmp_path / "absent.yaml")


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class TestTestCommand:
    """Test `autoroute test`."""

    def test_simple_message(self, missing_config):
        result = runner.invoke(app, ["test", "What is 2+2?", "--config", missing_config])
        assert result.exit_code == 0
        assert "SIMPLE" in result.output
        assert DEFAULT_TIER_MODELS.simple in result.output
        assert "weighted" in result.output

    def test_reasoning_message(self, missing_config):
        result = runner.invoke(
            app, ["test", "Prove that sqrt(2) is irrational step by step", "-c", missing_config])
        assert result.exit_code == 0
        assert "REASONING" in result.output
        assert "rules" in result.output
        assert "97.0%" in result.output

    def test_uses_configured_models(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"tier_models": {
            "SIMPLE": "local/tiny", "MEDIUM": "b", "COMPLEX": "c", "REASONING": "d",
        }}))
        result = runner.invoke(app, ["test", "What is 2+2?", "--config", str(path)])
        assert result.exit_code == 0
        assert "local/tiny" in result.output

    def test_bad_config_exits(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("tier_models: [1, 2]\n")
        result = runner.invoke(app, ["test", "hi", "--config", str(path)])
        assert result.exit_code == 1


class TestStatusCommand:
    """Test `autoroute status`."""

    def test_not_running(self, missing_config, monkeypatch):
        monkeypatch.setenv("AUTOROUTE_PORT", str(free_port()))
        monkeypatch.setenv("AUTOROUTE_BASE_URL", "http://localhost:4000")
        result = runner.invoke(app, ["status", "--config", missing_config])
        assert result.exit_code == 0
        assert "http://localhost:4000" in result.output
        assert "Proxy is not running" in result.output

    def test_unset_upstream(self, missing_config, monkeypatch):
        monkeypatch.setenv("AUTOROUTE_PORT", str(free_port()))
        result = runner.invoke(app, ["status", "--config", missing_config])
        assert "not set" in result.output


class TestStartCommand:
    """Test `autoroute start` failure paths."""

    def test_missing_upstream(self, missing_config):
        result = runner.invoke(app, ["start", "--config", missing_config])
        assert result.exit_code == 1
        assert "base_url" in result.output


class TestVersionCommand:
    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output
