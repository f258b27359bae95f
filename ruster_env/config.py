"""
Configuration management for ruster-env.

This module handles loading the optional YAML configuration file that
provides default values for command-line options.

Example ``.ruster-env.yaml``:

    options:
      path: .env.local
      shell: powershell
      verbose: true
      no_overwrite: false
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .shells import Shell

DEFAULT_ENV_PATH = ".env"
OPTION_NAMES = ("path", "shell", "verbose", "no_overwrite")


@dataclass
class RusterEnvConfig:
    """Main configuration for ruster-env."""

    path: str = DEFAULT_ENV_PATH
    shell: Shell | None = None
    verbose: bool = False
    no_overwrite: bool = False
    source: Path | None = None

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> "RusterEnvConfig":
        """
        Load configuration from a YAML file.

        Args:
            config_path: Path to the configuration file. If None, searches
                        for config in standard locations.

        Returns:
            A RusterEnvConfig instance; defaults when no file is found.
        """
        if config_path is None:
            config_path = cls._find_config_file()

        if config_path is None or not Path(config_path).exists():
            return cls()

        return cls._parse_config_file(config_path)

    @classmethod
    def _find_config_file(cls) -> str | None:
        """Search for config file in standard locations."""
        search_paths = [
            Path.cwd() / ".ruster-env.yaml",
            Path.cwd() / ".ruster-env.yml",
            Path.cwd() / "ruster-env.yaml",
            Path.cwd() / "ruster-env.yml",
            Path.home() / ".config" / "ruster-env.yaml",
            Path.home() / ".ruster-env.yaml",
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        return None

    @classmethod
    def _parse_config_file(cls, config_path: str | Path) -> "RusterEnvConfig":
        """Parse a YAML configuration file."""
        path = Path(config_path)

        try:
            data = yaml.safe_load(path.read_text())
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in config file: {exc}", exc) from exc
        except OSError as exc:
            raise ConfigurationError(f"Cannot read config file {path}: {exc}", exc) from exc

        if data is None:
            return cls(source=path)

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")

        options = data.get("options") or {}
        if not isinstance(options, dict):
            raise ConfigurationError(f"'options' in {path} must be a mapping")

        unknown = sorted(str(name) for name in options if name not in OPTION_NAMES)
        if unknown:
            raise ConfigurationError(f"Unknown option(s) in {path}: {', '.join(unknown)}")

        shell = None
        if options.get("shell") is not None:
            try:
                shell = Shell.from_name(str(options["shell"]))
            except ValueError as exc:
                raise ConfigurationError(str(exc), exc) from exc

        env_path = options.get("path", DEFAULT_ENV_PATH)
        if not isinstance(env_path, str) or not env_path:
            raise ConfigurationError(f"Option 'path' in {path} must be a non-empty string")

        return cls(
            path=env_path,
            shell=shell,
            verbose=_bool_option(options, "verbose", path),
            no_overwrite=_bool_option(options, "no_overwrite", path),
            source=path,
        )


def _bool_option(options: dict[str, Any], name: str, path: Path) -> bool:
    value = options.get(name, False)
    if not isinstance(value, bool):
        raise ConfigurationError(f"Option '{name}' in {path} must be true or false, got {value!r}")
    return value


class ConfigurationError(Exception):
    """Exception raised for configuration errors."""

    def __init__(self, message: str, from_exception: Exception | None = None) -> None:
        self.message = message
        self.from_exception = from_exception
        super().__init__(message)
        if from_exception:
            self.__cause__ = from_exception
