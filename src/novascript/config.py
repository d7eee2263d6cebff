"""
Configuration for the NovaScript runner.

A configuration file is a YAML mapping:

    globals:            # extra bindings seeded into the global environment
      greeting: hello
      limits: {max: 10}
    short_circuit: false
    log_level: WARNING
    show_source: true

The file named by the ``NOVASCRIPT_CONFIG`` environment variable is used
when no path is given explicitly.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .errors import ConfigError
from .runtime.values import to_runtime

NOVASCRIPT_CONFIG = "NOVASCRIPT_CONFIG"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class NovaConfig:
    """Interpreter and runner settings."""

    globals: Dict[str, Any] = field(default_factory=dict)
    short_circuit: bool = False     # lazy && / || (enhancement, off by default)
    log_level: str = "WARNING"
    show_source: bool = True        # quote the source line under diagnostics

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NovaConfig":
        """Build a config from a parsed mapping, validating every key."""
        if not isinstance(data, dict):
            raise ConfigError(f"expected mapping at root, got {type(data).__name__}")

        unknown = sorted(set(data) - {"globals", "short_circuit", "log_level", "show_source"})
        if unknown:
            raise ConfigError(f"unknown configuration key(s): {', '.join(map(str, unknown))}")

        config = cls()

        bindings = data.get("globals") or {}
        if not isinstance(bindings, dict):
            raise ConfigError("'globals' must be a mapping")
        config.globals = {str(name): to_runtime(value, deep=True) for name, value in bindings.items()}

        for key in ("short_circuit", "show_source"):
            if key in data:
                if not isinstance(data[key], bool):
                    raise ConfigError(f"'{key}' must be true or false")
                setattr(config, key, data[key])

        if "log_level" in data:
            level = str(data["log_level"]).upper()
            if level not in LOG_LEVELS:
                raise ConfigError(f"'log_level' must be one of {', '.join(LOG_LEVELS)}")
            config.log_level = level

        return config

    @classmethod
    def load(cls, path: Union[str, Path]) -> "NovaConfig":
        """Load a configuration file."""
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigError(f"config file not found: {config_path}")

        try:
            with config_path.open("r", encoding="utf-8") as fp:
                data = yaml.safe_load(fp)
        except yaml.YAMLError as e:
            raise ConfigError(f"YAML parse error in {config_path}: {e}") from e

        return cls.from_dict(data or {})

    @classmethod
    def from_env(cls) -> "NovaConfig":
        """Load the file named by NOVASCRIPT_CONFIG, or return defaults."""
        env_path = os.environ.get(NOVASCRIPT_CONFIG)
        if env_path:
            return cls.load(Path(env_path).expanduser())
        return cls()

    @property
    def logging_level(self) -> int:
        return getattr(logging, self.log_level)


def load_config(path: Optional[Union[str, Path]] = None) -> NovaConfig:
    """Load ``path`` when given, else fall back to the environment."""
    if path is not None:
        return NovaConfig.load(path)
    return NovaConfig.from_env()
