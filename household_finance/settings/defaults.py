"""Configuration loader for JSON settings files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

# Configuration directory
CONFIG_DIR = Path(__file__).parent


def load_config(config_name: str) -> Dict[str, Any]:
    """Load a configuration file by name.

    Args:
        config_name: Name of the config file (without .json extension)

    Returns:
        Dictionary containing the configuration

    Raises:
        FileNotFoundError: If the configuration file doesn't exist
        json.JSONDecodeError: If the configuration file is invalid JSON

    Example:
        >>> config = load_config('cpf')
        >>> config['ordinary_wage_ceiling']
        8000
    """
    config_path = CONFIG_DIR / f"{config_name}.json"

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        return json.load(f)


def get_config_value(config_name: str, *keys: str, default: Any = None) -> Any:
    """Get a nested configuration value by key path.

    Example:
        >>> get_config_value('cpf', 'annual_wage_ceiling')
        102000
    """
    try:
        value = load_config(config_name)
        for key in keys:
            value = value[key]
        return value
    except (KeyError, TypeError, FileNotFoundError):
        return default
