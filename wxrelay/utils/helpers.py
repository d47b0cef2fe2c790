"""Filesystem helpers."""

from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, creating parents as needed."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """Get the wxrelay data directory (~/.wxrelay)."""
    return ensure_dir(Path.home() / ".wxrelay")
