"""Proxy configuration.

Settings come from ~/.autoroute/config.yaml, with environment variables
taking precedence:

    AUTOROUTE_BASE_URL   upstream OpenAI-compatible endpoint
    AUTOROUTE_API_KEY    bearer credential for the upstream
    AUTOROUTE_PORT       local listening port (default 8401)

Example config.yaml:

    base_url: http://localhost:4000
    api_key: sk-...
    port: 8401
    tier_models:
      SIMPLE: gemini/gemini-2.0-flash
      MEDIUM: deepseek/deepseek-chat
      COMPLEX: anthropic/claude-sonnet-4
      REASONING: deepseek/deepseek-reasoner
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from autoroute.errors import ConfigurationError
from autoroute.routing.router import DEFAULT_TIER_MODELS, TierModels

DEFAULT_PORT = 8401
DEFAULT_HOST = "127.0.0.1"

ENV_BASE_URL = "AUTOROUTE_BASE_URL"
ENV_API_KEY = "AUTOROUTE_API_KEY"
ENV_PORT = "AUTOROUTE_PORT"


@dataclass(frozen=True)
class ProxyConfig:
    """Everything the proxy needs to start."""
    base_url: str = ""
    api_key: str = ""
    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    tier_models: TierModels = field(default_factory=lambda: DEFAULT_TIER_MODELS)

    @property
    def upstream_url(self) -> str:
        """Base URL without a trailing slash."""
        return self.base_url.rstrip("/")

    def validate(self) -> None:
        """Raise ConfigurationError unless the upstream is fully specified."""
        if not self.base_url:
            raise ConfigurationError(
                f"base_url is required (set it in the config file or {ENV_BASE_URL})")
        if not self.api_key:
            raise ConfigurationError(
                f"api_key is required (set it in the config file or {ENV_API_KEY})")

    def to_dict(self) -> dict[str, Any]:
        """Serializable view with the API key masked."""
        return {
            "base_url": self.base_url,
            "api_key": mask_secret(self.api_key),
            "port": self.port,
            "host": self.host,
            "tier_models": self.tier_models.to_dict(),
        }


def mask_secret(value: str) -> str:
    if not value:
        return ""
    if len(value) <= 8:
        return "***"
    return f"{value[:4]}...{value[-4:]}"


def get_config_dir() -> Path:
    """Get the autoroute config directory."""
    return Path.home() / ".autoroute"


def get_config_path() -> Path:
    """Get the config file path."""
    return get_config_dir() / "config.yaml"


def _read_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Could not parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping")
    return data


def _parse_port(value: Any, source: str) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid port {value!r} from {source}")
    if not 0 <= port <= 65535:
        raise ConfigurationError(f"Port {port} from {source} is out of range")
    return port


def load_config(path: Path | None = None) -> ProxyConfig:
    """Load configuration from file and environment.

    Args:
        path: Config file to read. Defaults to ~/.autoroute/config.yaml.
            A missing file is treated as empty.

    Returns:
        ProxyConfig. Not validated; call validate() before starting.
    """
    config_path = path or get_config_path()
    data = _read_file(config_path)

    base_url = os.environ.get(ENV_BASE_URL) or data.get("base_url") or ""
    api_key = os.environ.get(ENV_API_KEY) or data.get("api_key") or ""

    if os.environ.get(ENV_PORT):
        port = _parse_port(os.environ[ENV_PORT], ENV_PORT)
    elif data.get("port") is not None:
        port = _parse_port(data["port"], str(config_path))
    else:
        port = DEFAULT_PORT

    tier_data = data.get("tier_models")
    if tier_data is None:
        tier_models = DEFAULT_TIER_MODELS
    elif isinstance(tier_data, dict):
        tier_models = TierModels.from_mapping(tier_data)
    else:
        raise ConfigurationError("tier_models must be a mapping of tier -> model")

    return ProxyConfig(
        base_url=str(base_url),
        api_key=str(api_key),
        port=port,
        host=str(data.get("host") or DEFAULT_HOST),
        tier_models=tier_models,
    )
