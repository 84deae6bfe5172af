"""
Version lookup.

Installed distributions report their metadata version. A source checkout
that was never installed reads ``pyproject.toml`` next to the package.
"""
import importlib.metadata
from pathlib import Path
from typing import Optional

import tomli

DISTRIBUTION = "solver-sdk"
UNKNOWN_VERSION = "0.0.0+unknown"

PYPROJECT = Path(__file__).resolve().parent.parent / "pyproject.toml"


def installed_version(distribution: str = DISTRIBUTION) -> Optional[str]:
    try:
        return importlib.metadata.version(distribution)
    except importlib.metadata.PackageNotFoundError:
        return None


def source_version(pyproject: Path = PYPROJECT) -> Optional[str]:
    """Version declared in ``[project]`` of a pyproject file, if there is one."""
    try:
        with open(pyproject, "rb") as f:
            project = tomli.load(f).get("project", {})
    except (OSError, tomli.TOMLDecodeError):
        return None
    return project.get("version")


__version__ = installed_version() or source_version() or UNKNOWN_VERSION
