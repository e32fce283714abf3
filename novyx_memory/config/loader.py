"""Resolve MemoryConfig from a .env file, a JSON config file and the environment."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping

from dotenv import find_dotenv, load_dotenv
from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from novyx_memory.config.schema import MemoryConfig
from novyx_memory.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".novyx" / "config.json"

# Environment variable -> MemoryConfig field. Environment wins over the file.
ENV_OVERRIDES: dict[str, str] = {
    "NOVYX_API_KEY": "api_key",
    "NOVYX_API_URL": "api_url",
    "NOVYX_AUTO_SAVE": "auto_save",
    "NOVYX_AUTO_RECALL": "auto_recall",
    "NOVYX_RECALL_LIMIT": "recall_limit",
    "NOVYX_TIMEOUT": "timeout",
}


class ConfigError(Exception):
    """Raised when a config file exists but cannot be used."""


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return data


def _env_values(environ: Mapping[str, str]) -> dict[str, str]:
    values: dict[str, str] = {}
    for env_name, field_name in ENV_OVERRIDES.items():
        raw = environ.get(env_name)
        if raw is not None and raw.strip() != "":
            values[field_name] = raw.strip()
    return values


def load_config(
    config_path: Path | None = None,
    env_file: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> MemoryConfig:
    """Build the settings object consumed by the client and middleware.

    Args:
        config_path: JSON config file. Defaults to ``~/.novyx/config.json`` when it exists.
        env_file: ``.env`` file to load. Defaults to the nearest one found from the cwd.
        environ: Environment mapping, ``os.environ`` by default.

    A missing API key is not an error here; the client degrades to its
    disabled behavior instead.
    """
    if environ is None:
        dotenv_path = str(env_file) if env_file else find_dotenv(usecwd=True)
        if dotenv_path:
            load_dotenv(dotenv_path, override=False)
        environ = os.environ

    data: dict[str, Any] = {}
    path = config_path or (DEFAULT_CONFIG_PATH if DEFAULT_CONFIG_PATH.exists() else None)
    if path is not None:
        # Normalize camelCase keys so the environment overlay replaces them
        data.update({to_snake(k): v for k, v in _read_json(Path(path)).items()})
        logger.debug("Loaded memory config file", path=str(path), keys=sorted(data))

    data.update(_env_values(environ))

    try:
        config = MemoryConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid memory config: {e}") from e

    if not config.is_configured:
        logger.debug("No memory API key resolved", api_url=config.api_url)
    return config
