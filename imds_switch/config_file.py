"""
Role Registry File Loading

Locates and reads the JSON role registry, validating it against
``RegistryConfig``. Resolution order for the file path:

1. An explicit path (``--config`` on the command line)
2. The ``IMDS_SWITCH_CONFIG`` environment variable
3. ``$XDG_CONFIG_HOME/imds-switch/<profile>.json`` (``~/.config`` if unset)

Usage:
    from imds_switch.config_file import RegistryFile

    registry = RegistryFile(profile="default").load()
    print(registry.default_role)

Module: config_file
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from .config_schema import RegistryConfig
from .errors import ConfigFileError


class RegistryFile:
    """
    Role registry file reader

    Supports multiple named profiles (e.g., "default", "work", "lab"),
    each stored as its own JSON file under the base directory.
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        base_dir: Optional[Path] = None,
        profile: str = "default",
    ):
        """
        Initialize the registry file reader

        Args:
            path: Explicit registry file path (overrides profile lookup)
            base_dir: Base configuration directory (defaults to ~/.config/imds-switch)
            profile: Profile name to use (defaults to "default")
        """
        self.base_dir = base_dir or self._get_default_base_dir()
        self.profile = profile
        self._explicit_path = Path(path).expanduser() if path else None

    @staticmethod
    def _get_default_base_dir() -> Path:
        xdg_home = os.getenv("XDG_CONFIG_HOME")
        base = Path(xdg_home) if xdg_home else Path.home() / ".config"
        return base / "imds-switch"

    @property
    def path(self) -> Path:
        """Resolved path of the registry file."""
        if self._explicit_path:
            return self._explicit_path
        env_path = os.getenv("IMDS_SWITCH_CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        return self.base_dir / f"{self.profile}.json"

    def list_profiles(self) -> list[str]:
        """
        Lists profiles that have a registry file in the base directory

        Returns:
            Sorted list of profile names
        """
        if not self.base_dir.exists():
            return []
        return sorted(p.stem for p in self.base_dir.glob("*.json"))

    def read(self) -> Dict[str, Any]:
        """
        Reads and parses the registry file without validating it

        Returns:
            Parsed JSON object

        Raises:
            ConfigFileError: If the file is missing, unreadable or not a JSON object
        """
        config_path = self.path

        if not config_path.exists():
            raise ConfigFileError(
                f"Role registry not found: {config_path}",
                suggestion="Create it, or point IMDS_SWITCH_CONFIG / --config at an existing file.",
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigFileError(f"Invalid JSON in role registry: {config_path} (line {e.lineno}: {e.msg})") from e
        except OSError as e:
            raise ConfigFileError(f"Failed to read role registry: {config_path}. {e}") from e

        if not isinstance(data, dict):
            raise ConfigFileError(f"Role registry must contain a JSON object: {config_path}")

        return data

    def load(self) -> RegistryConfig:
        """
        Reads and validates the registry file

        Returns:
            Validated RegistryConfig

        Raises:
            ConfigFileError: If the file cannot be read or fails validation
        """
        data = self.read()
        try:
            return RegistryConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigFileError(
                f"Invalid role registry: {self.path}",
                suggestion=str(e),
            ) from e


def load_registry(path: Optional[Union[str, Path]] = None, profile: str = "default") -> RegistryConfig:
    """
    Convenience function to load and validate a role registry

    Args:
        path: Explicit registry path (optional)
        profile: Profile name used when no path is given

    Returns:
        Validated RegistryConfig
    """
    return RegistryFile(path=path, profile=profile).load()
