"""
Configuration loader for ai_commit.

The tool reads an optional JSON configuration file. The first file found
in the following order wins:

1. ``.ai-commit.json`` in the current directory (per-repository settings)
2. ``~/.config/ai-commit/config.json``
3. ``~/.ai-commit.json``

If none exists, built-in defaults are used (OpenAI, ``gpt-4``, key read
from ``OPENAI_API_KEY``). A file that exists but is malformed or has
fields of the wrong type raises :class:`ConfigError`.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from ai_commit.llm.errors import ConfigError


logger = logging.getLogger(__name__)
# Attach a null handler so that importing this module never emits "No
# handler" warnings. The CLI configures the root logger explicitly.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


LOCAL_CONFIG_NAME = ".ai-commit.json"

DEFAULT_CONFIG: Dict[str, Any] = {
    "provider": "openai",
    "model": "gpt-4",
    "api_key_env": "OPENAI_API_KEY",
    "api_key": None,
    "base_url": None,
}

_REQUIRED_STRING_KEYS = ["provider", "model", "api_key_env"]
_OPTIONAL_STRING_KEYS = ["api_key", "base_url"]

# Written by ``ai-commit init``. JSON has no comments, so the template only
# contains the keys; the CLI prints the explanation.
_TEMPLATE: Dict[str, Any] = {
    "provider": "openai",
    "model": "gpt-4",
    "api_key_env": "OPENAI_API_KEY",
    "base_url": None,
}


def _get_global_config_path() -> Path:
    return Path.home() / ".config" / "ai-commit" / "config.json"


def _get_home_config_path() -> Path:
    return Path.home() / ".ai-commit.json"


def config_search_paths(cwd: Optional[Path] = None) -> List[Path]:
    """Return the candidate configuration files in priority order."""
    base = cwd if cwd is not None else Path.cwd()
    return [
        base / LOCAL_CONFIG_NAME,
        _get_global_config_path(),
        _get_home_config_path(),
    ]


def _validate(data: Dict[str, Any], source: Path) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration in {source} must be a JSON object")
    config = dict(DEFAULT_CONFIG)
    config.update(data)
    for key in _REQUIRED_STRING_KEYS:
        if not isinstance(config.get(key), str) or not config[key].strip():
            raise ConfigError(f"'{key}' must be a non-empty string")
    for key in _OPTIONAL_STRING_KEYS:
        if config.get(key) is not None and not isinstance(config[key], str):
            raise ConfigError(f"'{key}' must be a string")
    return config


def load_config(cwd: Optional[Path] = None) -> Dict[str, Any]:
    """Load the configuration and return it merged over the defaults.

    Args:
        cwd: Directory searched for a per-repository ``.ai-commit.json``.
             Defaults to the current working directory.

    Returns:
        A dictionary with keys ``provider``, ``model``, ``api_key_env``,
        ``api_key`` and ``base_url``.

    Raises:
        ConfigError: If a configuration file exists but is unreadable,
            malformed, or has fields of the wrong type.
    """
    for path in config_search_paths(cwd):
        if not path.exists():
            continue
        try:
            content = path.read_text(encoding="utf-8")
            data = json.loads(content)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Failed to read or parse configuration file: %s", exc)
            raise ConfigError(f"Invalid configuration in {path}: {exc}") from exc
        config = _validate(data, path)
        logger.debug("Loaded configuration from: %s", path)
        return config

    logger.debug("No configuration file found; using defaults")
    return dict(DEFAULT_CONFIG)


def get_api_key(config: Dict[str, Any]) -> Optional[str]:
    """Return the API key from the config, falling back to its environment variable."""
    key = config.get("api_key")
    if key:
        return key
    env_name = config.get("api_key_env")
    if env_name:
        return os.environ.get(env_name) or None
    return None


def init_config(local: bool = False, force: bool = False, cwd: Optional[Path] = None) -> Path:
    """Write a default configuration file and return its path.

    Args:
        local: Write ``.ai-commit.json`` in ``cwd`` instead of the
               user-level ``~/.config/ai-commit/config.json``.
        force: Overwrite an existing file.
        cwd: Directory used for a local config. Defaults to the current
             working directory.

    Raises:
        ConfigError: If the file exists and ``force`` is False, or it
            cannot be written.
    """
    if local:
        path = (cwd if cwd is not None else Path.cwd()) / LOCAL_CONFIG_NAME
    else:
        path = _get_global_config_path()

    if path.exists() and not force:
        raise ConfigError(
            f"Config file already exists at {path}. Use --force to overwrite."
        )
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(_TEMPLATE, indent=2) + "\n", encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to write config to {path}: {exc}") from exc
    logger.debug("Wrote default configuration to: %s", path)
    return path
