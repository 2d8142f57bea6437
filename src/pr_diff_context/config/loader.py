"""
Configuration loader for pr_diff_context.

Settings are read from an optional JSON file named ``config.json`` in
the ``~/.pr_diff_context/`` directory. Every key is optional: a missing
file yields the defaults. A file that cannot be parsed, or a key with a
value of the wrong type, raises :class:`ConfigError`.

Access tokens may also come from the ``GITHUB_TOKEN`` and
``AZURE_DEVOPS_TOKEN`` environment variables, which take precedence over
the file.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pr_diff_context.tree.file_categorizer import rules_from_mapping


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


CONFIG_FILE_NAME = "config.json"

DEFAULTS: Dict[str, Any] = {
    "output_file": "pr_diff_result.md",
    "context_lines": 3,
    "include_new_content": True,
    "include_comments": True,
    "request_timeout": 30,
    "clone_timeout": 600,
    "github_api_url": "https://api.github.com",
    "azure_api_version": "7.0",
    "exclude_dirs": [".git"],
    "category_extensions": None,
    "github_token": None,
    "azure_devops_token": None,
}

_ENV_TOKENS = {
    "github_token": "GITHUB_TOKEN",
    "azure_devops_token": "AZURE_DEVOPS_TOKEN",
}


class ConfigError(Exception):
    """Raised when the configuration file is malformed or invalid."""

    pass


def _get_config_directory() -> Path:
    """Return the directory holding the user's configuration file."""
    return Path.home() / ".pr_diff_context"


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate(data: Dict[str, Any]) -> None:
    for key in ("output_file", "github_api_url", "azure_api_version"):
        if key in data and not isinstance(data[key], str):
            raise ConfigError(f"'{key}' must be a string")
    for key in ("github_token", "azure_devops_token"):
        if data.get(key) is not None and not isinstance(data[key], str):
            raise ConfigError(f"'{key}' must be a string")
    for key in ("include_new_content", "include_comments"):
        if key in data and not isinstance(data[key], bool):
            raise ConfigError(f"'{key}' must be a boolean")
    if "context_lines" in data:
        if not _is_int(data["context_lines"]) or data["context_lines"] < 0:
            raise ConfigError("'context_lines' must be a non-negative integer")
    for key in ("request_timeout", "clone_timeout"):
        if key in data:
            timeout = data[key]
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
                raise ConfigError(f"'{key}' must be a positive number")
    if "exclude_dirs" in data:
        dirs = data["exclude_dirs"]
        if not isinstance(dirs, list) or not all(isinstance(item, str) for item in dirs):
            raise ConfigError("'exclude_dirs' must be a list of strings")
    mapping = data.get("category_extensions")
    if mapping is not None:
        if not isinstance(mapping, dict) or not all(
            isinstance(exts, list) and all(isinstance(ext, str) for ext in exts)
            for exts in mapping.values()
        ):
            raise ConfigError("'category_extensions' must map category names to lists of strings")
        try:
            rules_from_mapping(mapping)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Load the configuration and return it merged over the defaults.

    Args:
        config_path: Explicit configuration file. Defaults to
            ``~/.pr_diff_context/config.json``.

    Returns:
        A dictionary with every key of :data:`DEFAULTS`.

    Raises:
        ConfigError: If the file exists but is malformed or invalid.
    """
    if config_path is None:
        config_path = _get_config_directory() / CONFIG_FILE_NAME

    config: Dict[str, Any] = dict(DEFAULTS)
    if config_path.exists():
        try:
            content = config_path.read_text(encoding="utf-8")
            data = json.loads(content)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Failed to read or parse configuration file: %s", exc)
            raise ConfigError(f"Invalid JSON in {config_path.name}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"{config_path.name} must contain a JSON object")
        _validate(data)
        unknown = sorted(set(data) - set(DEFAULTS))
        if unknown:
            logger.warning("Ignoring unknown configuration keys: %s", ", ".join(unknown))
        config.update({key: value for key, value in data.items() if key in DEFAULTS})
        logger.debug("Loaded configuration from: %s", config_path)
    else:
        logger.debug("No configuration file at %s; using defaults", config_path)

    for key, env_name in _ENV_TOKENS.items():
        value = os.environ.get(env_name)
        if value:
            config[key] = value
    return config
