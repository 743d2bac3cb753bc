"""
Configuration management for the budget tracker.

Loads settings from a YAML file and fills anything missing from
DEFAULT_CONFIG, so callers can always rely on every key being present.
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from exceptions import ConfigError

logger = logging.getLogger(__name__)

# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    "user_id": "default",
    "logging": {
        "level": "INFO",
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        "file": None,
    },
    "database": {
        "connection_string": None,
        "data_dir": "data",
        "path": "budget_tracker.db",
    },
    "budgets": {
        "default_notification_threshold": 80,
    },
    "dashboard": {
        "default_time_range": "month",
    },
}

CONFIG_FILE = "config.yaml"


def _deep_merge(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML file (defaults to config.yaml)

    Returns:
        Configuration dictionary with defaults for missing values

    Raises:
        ConfigError: If the file is not valid YAML or not a mapping
    """
    path = Path(config_path or CONFIG_FILE)
    if not path.exists():
        logger.debug("Config file %s not found; using defaults", path)
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(path, "r") as f:
            loaded = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(
            "Config file is not valid YAML",
            details={"config_path": str(path)},
            original_error=exc
        ) from exc

    if not isinstance(loaded, dict):
        raise ConfigError(
            "Config file must contain a mapping at the top level",
            details={"config_path": str(path), "type": type(loaded).__name__}
        )

    config = _deep_merge(DEFAULT_CONFIG, loaded)
    logger.info("Configuration loaded from %s", path)
    return config


def save_config(config: Dict[str, Any], config_path: Optional[Union[str, Path]] = None) -> None:
    """
    Save configuration to a YAML file, preserving keys not present in ``config``.

    Raises:
        ConfigError: If the file cannot be written
    """
    path = Path(config_path or CONFIG_FILE)
    existing = load_config(path) if path.exists() else {}
    existing = _deep_merge(existing, config)
    try:
        with open(path, "w") as f:
            yaml.safe_dump(existing, f, default_flow_style=False)
    except OSError as exc:
        raise ConfigError(
            "Unable to write config file",
            details={"config_path": str(path)},
            original_error=exc
        ) from exc
    logger.info("Configuration saved to %s", path)


def get_default_user(config: Dict[str, Any]) -> str:
    return str(config.get("user_id") or DEFAULT_CONFIG["user_id"])


def get_default_threshold(config: Dict[str, Any]) -> int:
    budgets = config.get("budgets") or {}
    return int(budgets.get("default_notification_threshold", 80))


def get_default_time_range(config: Dict[str, Any]) -> str:
    dashboard = config.get("dashboard") or {}
    return dashboard.get("default_time_range") or DEFAULT_CONFIG["dashboard"]["default_time_range"]
