"""
Player configuration.

Settings come from ``config.json`` in the config directory, then from the
environment (a ``.env`` file is honoured through python-dotenv).
"""

import dataclasses
import json
import logging
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from shared.constants import (
    CONFIG_FILENAME,
    DEFAULT_CATALOG_TIMEOUT,
    DEFAULT_CONFIG_DIR,
    DEFAULT_VOLUME,
    ENV_CATALOG_KEY,
    ENV_CATALOG_URL,
    ENV_CONFIG_DIR,
    ENV_LOG_LEVEL,
    MAX_VOLUME,
    MIN_VOLUME,
    STORAGE_FILENAME,
)

logger = logging.getLogger(__name__)


@dataclass
class PlayerSettings:
    """
    Local player preferences.

    catalog_url/catalog_key point at the Supabase project holding the
    ``songs`` table; when unset the built-in song list is used.
    """
    catalog_url: Optional[str] = None
    catalog_key: Optional[str] = None
    catalog_timeout: float = DEFAULT_CATALOG_TIMEOUT
    default_volume: float = DEFAULT_VOLUME
    load_timeout: Optional[float] = None
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def __post_init__(self):
        self.default_volume = max(MIN_VOLUME, min(MAX_VOLUME, float(self.default_volume)))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlayerSettings':
        """Create settings from a dictionary, ignoring unknown keys."""
        field_names = {f.name for f in dataclasses.fields(cls)}
        filtered_data = {k: v for k, v in data.items() if k in field_names}
        return cls(**filtered_data)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> 'PlayerSettings':
        return cls.from_dict(json.loads(json_str))


def get_config_dir() -> Path:
    """Config directory, overridable through POCKETPLAY_CONFIG_DIR."""
    return Path(os.getenv(ENV_CONFIG_DIR) or DEFAULT_CONFIG_DIR).expanduser()


def get_storage_path() -> Path:
    return get_config_dir() / STORAGE_FILENAME


def load_settings(config_path: Optional[Path] = None) -> PlayerSettings:
    """
    Load settings from disk and apply environment overrides.

    A missing or malformed config file is not fatal: defaults are used and a
    warning is logged.
    """
    load_dotenv()
    path = Path(config_path) if config_path else get_config_dir() / CONFIG_FILENAME

    settings = PlayerSettings()
    if path.exists():
        try:
            settings = PlayerSettings.from_json(path.read_text(encoding="utf-8"))
        except (OSError, ValueError, TypeError) as e:
            logger.warning(f"Ignoring unreadable config file {path}: {e}")
            settings = PlayerSettings()

    catalog_url = os.getenv(ENV_CATALOG_URL)
    if catalog_url:
        settings.catalog_url = catalog_url
    catalog_key = os.getenv(ENV_CATALOG_KEY)
    if catalog_key:
        settings.catalog_key = catalog_key
    log_level = os.getenv(ENV_LOG_LEVEL)
    if log_level:
        settings.log_level = log_level

    return settings
