"""Tests for configuration loading."""

import pytest
import yaml

from autoroute.config import DEFAULT_PORT, ProxyConfig, load_config
from autoroute.errors import ConfigurationError
from autoroute.routing import DEFAULT_TIER_MODELS


@pytest.fixture
def config_file(tmp_path):
    """Write a config.yaml and return its path."""
    def write(data):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump(data))
        return path
    return write


class TestLoadConfig:
    """Test file and environment sources."""

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "absent.yaml")
        assert config.base_url == ""
        assert config.port == DEFAULT_PORT
        assert config.tier_models == DEFAULT_TIER_MODELS

    def test_reads_file(self, config_file):
        path = config_file({
            "base_url": "http://localhost:4000/",
            "api_key": "sk-file",
            "port": 9000,
            "tier_models": {
                "SIMPLE": "a", "MEDIUM": "b", "COMPLEX": "c", "REASONING": "d",
            },
        })
        config = load_config(path)
        assert config.upstream_url == "http://localhost:4000"
        assert config.api_key == "sk-file"
        assert config.port == 9000
        assert config.tier_models.simple == "a"

    def test_environment_overrides_file(self, config_file, monkeypatch):
        path = config_file({"base_url": "http://file", "api_key": "sk-file", "port": 9000})
        monkeypatch.setenv("AUTOROUTE_BASE_URL", "http://env")
        monkeypatch.setenv("AUTOROUTE_API_KEY", "sk-env")
        monkeypatch.setenv("AUTOROUTE_PORT", "9100")
        config = load_config(path)
        assert config.base_url == "http://env"
        assert config.api_key == "sk-env"
        assert config.port == 9100

    def test_invalid_port(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AUTOROUTE_PORT", "eighty")
        with pytest.raises(ConfigurationError, match="AUTOROUTE_PORT"):
            load_config(tmp_path / "absent.yaml")

    def test_incomplete_tier_models(self, config_file):
        path = config_file({"tier_models": {"SIMPLE": "a"}})
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigurationError):
            load_config(path)


class TestProxyConfig:
    """Test validation and display."""

    def test_missing_base_url(self):
        with pytest.raises(ConfigurationError, match="base_url"):
            ProxyConfig(api_key="sk").validate()

    def test_missing_api_key(self):
        with pytest.raises(ConfigurationError, match="api_key"):
            ProxyConfig(base_url="http://localhost:4000").validate()

    def test_valid(self):
        ProxyConfig(base_url="http://localhost:4000", api_key="sk").validate()

    def test_to_dict_masks_key(self):
        d = ProxyConfig(base_url="http://x", api_key="sk-1234567890abcdef").to_dict()
        assert d["api_key"] == "sk-1...cdef"
        assert d["tier_models"]["SIMPLE"] == DEFAULT_TIER_MODELS.simple
