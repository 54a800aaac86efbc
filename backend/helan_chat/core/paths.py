"""Project path helpers."""

from functools import lru_cache
from pathlib import Path


@lru_cache
def get_project_root() -> Path:
    """Return the backend directory (the one holding the ``helan_chat`` package)."""
    return Path(__file__).resolve().parents[2]
