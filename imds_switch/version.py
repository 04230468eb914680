"""Package version, overridable at build time."""

import os
import tomllib
from pathlib import Path

PYPROJECT_PATH = Path(__file__).parent.parent / "pyproject.toml"


def get_version() -> str:
    """BUILD_VERSION if set, else the pyproject.toml version, else "unknown"."""
    if build_version := os.getenv("BUILD_VERSION"):
        return build_version

    try:
        with open(PYPROJECT_PATH, "rb") as f:
            return tomllib.load(f).get("project", {}).get("version", "unknown")
    except (OSError, tomllib.TOMLDecodeError):
        return "unknown"


__version__ = get_version()
