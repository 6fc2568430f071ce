"""
Single source of truth for the platform version.

Reads from pyproject.toml at import time and caches.
"""

from __future__ import annotations

from pathlib import Path

__all__ = ["VERSION", "APP_NAME"]

APP_NAME = "ChainPilot"
_FALLBACK_VERSION = "0.1.0"


def _read_version() -> str:
    """Read version directly from pyproject.toml, falling back to a constant."""
    toml_path = Path(__file__).resolve().parent.parent / "pyproject.toml"
    if not toml_path.exists():
        return _FALLBACK_VERSION
    for line in toml_path.read_text(encoding="utf-8").splitlines():
        if line.strip().startswith("version"):
            # version = "0.1.0"
            return line.split("=", 1)[1].strip().strip('"').strip("'")
    return _FALLBACK_VERSION


VERSION = _read_version()
