"""Configuration loader with environment variable resolution."""

from __future__ import annotations

import json
import os
import re
from pathlib import Path

from chatcore.config.models import AppConfig

# ${VAR} or ${VAR:-default}
_ENV_PATTERN = re.compile(r"\$\{(\w+)(?::-([^}]*))?\}")


def _substitute(match: re.Match[str]) -> str:
    name, default = match.group(1), match.group(2)
    if name in os.environ:
        return os.environ[name]
    return default if default is not None else match.group(0)


def _resolve_env_vars(value: object) -> object:
    """Recursively resolve ``${ENV_VAR}`` placeholders in config values."""
    if isinstance(value, str):
        return _ENV_PATTERN.sub(_substitute, value)
    if isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]
    return value


def load_config(path: str | Path = "config.json") -> AppConfig:
    """Load the application configuration from a JSON file.

    - Resolves ``${ENV_VAR}`` and ``${ENV_VAR:-default}`` placeholders from
      environment variables.  Unset variables without a default are left
      untouched.
    - Validates the document against :class:`AppConfig`.

    Raises:
        FileNotFoundError: If the config file does not exist.
        pydantic.ValidationError: If the config is invalid.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    raw = json.loads(config_path.read_text(encoding="utf-8"))
    resolved = _resolve_env_vars(raw)

    if not isinstance(resolved, dict):
        raise ValueError("Config file must contain a JSON object")

    return AppConfig.model_validate(resolved)
