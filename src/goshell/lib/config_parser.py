"""Configuration parser for the shell.

Parses and validates a YAML file such as:

    prompt: "goshell> "
    echo: false
    log_level: INFO
    variables:
      greeting: hello
    history:
      file: ~/.goshell_history
      length: 1000
"""

from __future__ import annotations

import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional, Union
from pydantic import BaseModel, Field, field_validator

CONFIG_ENV_VAR = "GOSHELL_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".goshell.yaml"

LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


class HistoryConfig(BaseModel):
    """REPL history configuration."""
    file: Optional[Path] = None
    length: int = 1000

    @field_validator('file', mode='before')
    @classmethod
    def expand_user(cls, v: Any) -> Any:
        """Expand ~ in history file paths."""
        if isinstance(v, str):
            return Path(v).expanduser()
        return v

    @field_validator('length')
    @classmethod
    def validate_length(cls, v: int) -> int:
        """Ensure history length is positive."""
        if v <= 0:
            raise ValueError(f"History length must be positive, got {v}")
        return v


class ShellConfig(BaseModel):
    """Top-level shell configuration."""
    prompt: str = "goshell> "
    continuation_prompt: str = "> "
    echo: bool = False
    log_level: str = "WARNING"
    variables: Dict[str, Any] = Field(default_factory=dict)
    history: HistoryConfig = Field(default_factory=HistoryConfig)

    @field_validator('log_level', mode='before')
    @classmethod
    def validate_log_level(cls, v: Any) -> str:
        """Ensure log level is a known logging level name."""
        level = str(v).upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Log level must be one of {LOG_LEVELS}, got '{v}'")
        return level

    @field_validator('variables')
    @classmethod
    def validate_variable_names(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        """Ensure variable names are usable from the shell."""
        for name in v:
            if not name or any(c.isspace() for c in name):
                raise ValueError(f"Invalid variable name: {name!r}")
        return v


class ConfigParser:
    """Parse and validate shell configuration."""

    def __init__(self, config_path: Union[str, Path]):
        """Initialize parser with config file path.

        Args:
            config_path: Path to YAML config file

        Raises:
            FileNotFoundError: If the file does not exist
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        self.config: Optional[ShellConfig] = None
        self._raw_config: Optional[Dict[str, Any]] = None

    def parse(self) -> ShellConfig:
        """Parse and validate configuration.

        Returns:
            Validated configuration object

        Raises:
            yaml.YAMLError: If YAML parsing fails
            pydantic.ValidationError: If validation fails
        """
        with open(self.config_path) as f:
            self._raw_config = yaml.safe_load(f) or {}

        if not isinstance(self._raw_config, dict):
            raise ValueError(f"Configuration must be a mapping: {self.config_path}")

        self.config = ShellConfig(**self._raw_config)
        return self.config

    def get_config(self) -> ShellConfig:
        """Get the parsed configuration.

        Raises:
            ValueError: If parse() has not been called
        """
        if self.config is None:
            raise ValueError("Configuration not parsed. Call parse() first.")
        return self.config


def load_config(config_path: Union[str, Path]) -> ConfigParser:
    """Load and parse configuration file.

    Args:
        config_path: Path to YAML config file

    Returns:
        Parsed configuration

    Example:
        >>> parser = load_config("goshell.yaml")
        >>> config = parser.get_config()
    """
    parser = ConfigParser(config_path)
    parser.parse()
    return parser


def default_config_path() -> Optional[Path]:
    """Locate the user configuration file.

    Returns:
        $GOSHELL_CONFIG if set, else ~/.goshell.yaml if it exists, else None
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    if DEFAULT_CONFIG_PATH.exists():
        return DEFAULT_CONFIG_PATH
    return None
