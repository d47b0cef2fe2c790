"""Configuration loading utilities."""

import json
import os
import stat
from pathlib import Path

from loguru import logger

from wxrelay.config.schema import Config


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".wxrelay" / "config.json"


def get_data_dir() -> Path:
    """Get the wxrelay data directory."""
    from wxrelay.utils.helpers import get_data_path
    return get_data_path()


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file or create default.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object.
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            current_mode = stat.S_IMODE(os.stat(path).st_mode)
            if current_mode & 0o077:
                logger.warning(
                    f"Config file has insecure permissions: {oct(current_mode)}. "
                    f"Fixing to 0o600 (owner read/write only)..."
                )
                os.chmod(path, 0o600)
        except OSError as e:
            logger.warning(f"Could not verify config permissions: {e}")

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            data = _migrate_config(data)
            return Config.model_validate(data)
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning(f"Failed to load config from {path}: {e}")
            logger.warning("Using default configuration.")

    return Config()


def save_config(config: Config, config_path: Path | None = None) -> None:
    """
    Save configuration to file with secure permissions.

    Args:
        config: Configuration to save.
        config_path: Optional path to save to. Uses default if not provided.
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump(by_alias=True)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)

    os.chmod(path, 0o600)
    logger.debug(f"Config saved with secure permissions: {path}")


def _migrate_config(data: dict) -> dict:
    """Migrate the legacy flat config.json layout to the current one.

    Legacy files look like::

        {"openai": {"model": ..., "baseURL": ..., "apiKey": ...},
         "maxHistoryLength": 20, "searchEngineURL": "http://..."}
    """
    legacy = data.pop("openai", None)
    if isinstance(legacy, dict):
        provider = data.setdefault("provider", {})
        provider.setdefault("model", legacy.get("model", "gpt-4o-mini"))
        if legacy.get("apiKey"):
            provider.setdefault("apiKey", legacy["apiKey"])
        if legacy.get("baseURL"):
            provider.setdefault("apiBase", legacy["baseURL"])

    if "maxHistoryLength" in data:
        data.setdefault("history", {}).setdefault("maxLength", data.pop("maxHistoryLength"))

    if "searchEngineURL" in data:
        data.setdefault("search", {}).setdefault("url", data.pop("searchEngineURL"))

    return data
