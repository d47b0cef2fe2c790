"""Utility functions for wxrelay."""

from wxrelay.utils.helpers import ensure_dir, get_data_path
from wxrelay.utils.logging import configure_logging

__all__ = [
    "ensure_dir",
    "get_data_path",
    "configure_logging",
]
