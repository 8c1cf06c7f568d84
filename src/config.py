"""
Configuration management for stack utilities.

Settings come from, in increasing precedence: built-in defaults, a YAML
config file, STACK_UTILS_* environment variables and command-line flags.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Union
from dataclasses import dataclass, field, fields


DEFAULT_CONFIG_FILE = ".stack-utils.yaml"


@dataclass
class ToolConfig:
    """Settings for stack operations."""

    # AWS session
    region: Optional[str] = None
    profile: Optional[str] = None

    # Event tailing
    poll_interval: float = 1.0
    tail: bool = True

    # Naming convention
    params_dir: str = "params"

    # Stack operations
    default_capabilities: list[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            k: v for k, v in self.__dict__.items()
            if not k.startswith('_')
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolConfig":
        """Create config from dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        data = dict(data)
        capabilities = data.get("default_capabilities")
        if isinstance(capabilities, str):
            data["default_capabilities"] = [capabilities]
        elif capabilities is not None and not isinstance(capabilities, list):
            raise ValueError("default_capabilities must be a list of capability names")
        return cls(**data)

    def merged(self, **overrides: Any) -> "ToolConfig":
        """Return a copy with every non-None override applied."""
        data = self.to_dict()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return ToolConfig.from_dict(data)


class ConfigManager:
    """Loads tool configuration from file and environment."""

    ENV_PREFIX = "STACK_UTILS_"

    # Environment variables and the type they are parsed as
    ENV_SETTINGS = {
        "POLL_INTERVAL": ("poll_interval", float),
        "PARAMS_DIR": ("params_dir", str),
    }

    def __init__(self, config_file: Optional[Union[str, Path]] = None):
        """
        Initialize config manager.

        Args:
            config_file: Explicit YAML config file; must exist if given
        """
        self.config_file = Path(config_file) if config_file else None
        if self.config_file and not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

    def _find_config_file(self) -> Optional[Path]:
        """Find the configuration file."""
        if self.config_file:
            return self.config_file

        candidate = Path.cwd() / DEFAULT_CONFIG_FILE
        if candidate.exists():
            return candidate
        return None

    def _load_file(self) -> Dict[str, Any]:
        config_file = self._find_config_file()
        if not config_file:
            return {}

        with open(config_file, 'r') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file must contain a mapping: {config_file}")
        return data

    def _load_environment(self) -> Dict[str, Any]:
        settings = {}
        for suffix, (key, parse) in self.ENV_SETTINGS.items():
            value = os.environ.get(f"{self.ENV_PREFIX}{suffix}")
            if value:
                try:
                    settings[key] = parse(value)
                except ValueError as e:
                    raise ValueError(f"Invalid {self.ENV_PREFIX}{suffix}: {value}") from e
        return settings

    def load(self, **overrides: Any) -> ToolConfig:
        """Load configuration, applying file, environment and overrides in order."""
        config = ToolConfig.from_dict(self._load_file())
        config = config.merged(**self._load_environment())
        return config.merged(**overrides)


def get_config(config_file: Optional[Union[str, Path]] = None, **overrides: Any) -> ToolConfig:
    """Get configuration for the current invocation."""
    return ConfigManager(config_file).load(**overrides)
