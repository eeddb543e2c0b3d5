"""
Settings for ollama-cli.

Values are layered: built-in defaults, then settings.yaml in the data
directory, then environment variables (a .env file is honored), then
explicit overrides from the command line.
"""

import os
import logging
from dataclasses import dataclass, fields, asdict
from pathlib import Path
from typing import Optional, Mapping

import yaml
from dotenv import load_dotenv

from . import get_data_dir

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_MODEL = "llama3.2"

# Environment variable -> settings field
ENV_VARS = {
    "OLLAMA_API_BASE_URL": "base_url",
    "OLLAMA_MODEL": "model",
    "OLLAMA_CLI_MAX_ROUNDS": "max_rounds",
    "OLLAMA_CLI_REQUEST_TIMEOUT": "request_timeout",
    "OLLAMA_CLI_SHELL_TIMEOUT": "shell_timeout",
}


@dataclass
class Settings:
    """Runtime configuration passed to the provider and orchestrator."""
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    max_rounds: int = 25  # 0 = unbounded
    request_timeout: float = 120.0  # read timeout, seconds
    shell_timeout: float = 60.0  # 0 = no limit
    system_prompt: Optional[str] = None
    confirm_shell: bool = False

    def __post_init__(self):
        self.base_url = self.base_url.rstrip("/")
        self.max_rounds = int(self.max_rounds)
        self.request_timeout = float(self.request_timeout)
        self.shell_timeout = float(self.shell_timeout)
        if self.max_rounds < 0:
            raise ValueError(f"max_rounds must be >= 0, got {self.max_rounds}")

    def to_dict(self) -> dict:
        return asdict(self)


def get_config_path() -> Path:
    return get_data_dir() / "config" / "settings.yaml"


def _coerce(name: str, value):
    """Convert a raw string/YAML value to the type of the settings field."""
    if value is None:
        return None
    if name in ("max_rounds",):
        return int(value)
    if name in ("request_timeout", "shell_timeout"):
        return float(value)
    if name == "confirm_shell":
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    return value


def load_config(config_path: Path = None) -> dict:
    """Read settings.yaml, returning {} when it does not exist."""
    config_path = Path(config_path) if config_path else get_config_path()
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{config_path}: expected a mapping, got {type(data).__name__}")
        return data
    return {}


def load_settings(
    config_path: Path = None,
    env: Mapping[str, str] = None,
    **overrides,
) -> Settings:
    """Build Settings from defaults, YAML file, environment and overrides.

    Args:
        config_path: settings.yaml location (defaults to the data directory)
        env: Environment mapping (defaults to os.environ after loading .env)
        **overrides: Explicit values; None means "not given"
    """
    if env is None:
        load_dotenv()
        env = os.environ

    known = {f.name for f in fields(Settings)}
    values = {}

    for key, value in load_config(config_path).items():
        if key not in known:
            logger.warning(f"Ignoring unknown setting '{key}' in settings.yaml")
            continue
        if value is not None:
            values[key] = _coerce(key, value)

    for var, key in ENV_VARS.items():
        raw = env.get(var)
        if raw:
            values[key] = _coerce(key, raw)

    for key, value in overrides.items():
        if key not in known:
            raise TypeError(f"Unknown setting: {key}")
        if value is not None:
            values[key] = _coerce(key, value)

    settings = Settings(**values)
    logger.debug(f"Settings: {settings}")
    return settings


def save_settings(settings: Settings, config_path: Path = None):
    config_path = Path(config_path) if config_path else get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, 'w') as f:
        yaml.dump(settings.to_dict(), f, default_flow_style=False)
