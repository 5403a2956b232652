"""Configuration loading for Indicharts.

Settings live in ``~/.config/indicharts/config.toml``; the ``INDICHARTS_CONFIG``
environment variable points at another file. Missing keys fall back to
DEFAULT_CONFIG.
"""

import copy
import os
from pathlib import Path
from typing import Optional

import toml

from indicharts.errors import InvalidConfigurationError

CONFIG_ENV_VAR = "INDICHARTS_CONFIG"

DEFAULT_CONFIG = {
    "database": {
        "path": "",  # Empty means <config dir>/indicharts.db
    },
    "backend": {
        "base_url": "",
        "timeout_sec": 10.0,
        "user_id": "",
    },
    "alerts": {
        "default_cooldown_sec": 600,
        "default_hysteresis": 0.5,
        "default_period": 14,
    },
    "logging": {
        "level": "INFO",
    },
}


def get_config_dir() -> Path:
    """Directory holding the config file, database and recovery cache."""
    return Path.home() / ".config" / "indicharts"


def get_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return get_config_dir() / "config.toml"


def _merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[Path] = None) -> dict:
    """Load configuration merged over the defaults.

    Args:
        path: Config file to read. Defaults to get_config_path().

    Returns:
        Configuration dictionary. Defaults only when the file does not exist.

    Raises:
        InvalidConfigurationError: If the file is not valid TOML.
    """
    config_path = Path(path) if path is not None else get_config_path()
    if not config_path.exists():
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        loaded = toml.load(config_path)
    except toml.TomlDecodeError as e:
        raise InvalidConfigurationError(f"{config_path}: {e}") from e
    return _merge(DEFAULT_CONFIG, loaded)


def get_db_path(config: dict) -> Path:
    configured = config.get("database", {}).get("path")
    if configured:
        return Path(configured).expanduser()
    return get_config_dir() / "indicharts.db"


def get_recovery_path(config: dict) -> Path:
    return get_db_path(config).parent / "recovery.json"


def create_template_config(path: Optional[Path] = None) -> Path:
    """Create a template configuration file.

    Returns:
        Path of the written file.
    """
    config_path = Path(path) if path is not None else get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        toml.dump(DEFAULT_CONFIG, f)

    return config_path
