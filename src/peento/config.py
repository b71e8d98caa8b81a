"""Configuration loading with precedence resolution.

This module handles all configuration for a peento application:

* **Config files** -- a single YAML or JSON document (``peento.yaml``,
  ``peento.yml`` or ``peento.json`` in the working directory, or an
  explicit path) deserialised into :class:`~peento.models.AppConfig`.
  See :func:`load_config_file` and :func:`find_config_file`.
* **Merging** -- :func:`merge_config` deep-merges user settings over the
  defaults so a config file only needs the keys it changes.
* **Precedence resolution** -- :func:`resolve_config` layers CLI flags,
  environment variables, the config file, and defaults into the final
  effective configuration.
"""

from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import ValidationError

from peento.exceptions import ConfigError
from peento.models import AppConfig

_CONFIG_FILENAMES = ("peento.yaml", "peento.yml", "peento.json")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


# --- Merging ---


def merge_config(defaults: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge *overrides* into a copy of *defaults*.

    Nested mappings are merged key by key; any other value in *overrides*
    (including lists) replaces the default outright. Neither input is
    modified.

    Args:
        defaults: The base settings.
        overrides: Settings that win over *defaults*.

    Returns:
        A new merged dict.
    """
    merged = copy.deepcopy(dict(defaults))
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def build_config(overrides: Optional[Mapping[str, Any] | AppConfig] = None) -> AppConfig:
    """Fill the defaults in and validate.

    Args:
        overrides: A partial settings mapping, a ready :class:`AppConfig`
            (returned as-is), or ``None`` for pure defaults.

    Raises:
        ConfigError: If the merged settings fail validation.
    """
    if isinstance(overrides, AppConfig):
        return overrides
    data = merge_config(AppConfig().model_dump(mode="python"), overrides or {})
    try:
        return AppConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


# --- Config files ---


def find_config_file(directory: Optional[Path] = None) -> Optional[Path]:
    """Return the first conventional config file in *directory* (default: cwd)."""
    base = directory or Path.cwd()
    for filename in _CONFIG_FILENAMES:
        candidate = base / filename
        if candidate.is_file():
            return candidate
    return None


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse a YAML or JSON config file into a dict (no validation).

    Raises:
        ConfigError: If the file is missing, unreadable, or not a mapping.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Invalid config file at {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config file at {path}: top level must be a mapping")
    return data


def load_config_file(path: Path) -> AppConfig:
    """Load and validate a config file on top of the defaults.

    Raises:
        ConfigError: If the file cannot be parsed or fails validation.
    """
    return build_config(read_config_file(path))


# --- Precedence resolution ---


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"Environment variable {name} must be a boolean, got '{value}'")


def resolve_config(
    cli_config: Optional[str] = None,
    cli_port: Optional[int] = None,
    cli_debug: Optional[bool] = None,
    cli_plugins: Optional[list[str]] = None,
) -> AppConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_port``, ``cli_debug``, ``cli_plugins``)
        2. Environment variables (``PEENTO_PORT``, ``PEENTO_DEBUG``)
        3. Config file (``cli_config``, else ``PEENTO_CONFIG``, else
           ``./peento.yaml`` / ``./peento.yml`` / ``./peento.json``)
        4. Defaults

    CLI plugins are appended after the plugins listed in the config file.

    Returns:
        The effective :class:`AppConfig`.
    """
    # 3. Config file
    config_path: Optional[Path] = None
    if cli_config is not None:
        config_path = Path(cli_config)
    elif os.environ.get("PEENTO_CONFIG"):
        config_path = Path(os.environ["PEENTO_CONFIG"])
    else:
        config_path = find_config_file()

    settings: dict[str, Any] = read_config_file(config_path) if config_path else {}

    # 2. Environment variables
    env_port = os.environ.get("PEENTO_PORT")
    if env_port:
        try:
            settings["port"] = int(env_port)
        except ValueError:
            raise ConfigError(f"PEENTO_PORT must be an integer, got '{env_port}'") from None
    env_debug = os.environ.get("PEENTO_DEBUG")
    if env_debug is not None:
        settings["debug"] = _parse_bool("PEENTO_DEBUG", env_debug)

    # 1. CLI flags
    if cli_port is not None:
        settings["port"] = cli_port
    if cli_debug is not None:
        settings["debug"] = cli_debug
    if cli_plugins:
        settings["plugins"] = list(settings.get("plugins", [])) + list(cli_plugins)

    return build_config(settings)
