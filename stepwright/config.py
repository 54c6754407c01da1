"""
Configuration management for stepwright.

Loads ~/.config/stepwright/config.yaml (or $STEPWRIGHT_HOME/config.yaml).

Example config.yaml:
    framework_root: ~/frameworks
    load_timeout_s: 30
    max_workers: 4
    log_level: INFO
    log_format: pretty
    log_file: ~/.config/stepwright/logs/stepwright.log
    env_file: ~/.config/stepwright/.env
"""

import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from stepwright.errors import ConfigError

HOME_ENV_VAR = "STEPWRIGHT_HOME"
FRAMEWORK_ROOT_ENV_VAR = "STEPWRIGHT_FRAMEWORK_ROOT"
DEFAULT_HOME = "~/.config/stepwright"
CONFIG_FILENAME = "config.yaml"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("pretty", "structured")


def get_stepwright_home() -> Path:
    """Return the stepwright home directory ($STEPWRIGHT_HOME or ~/.config/stepwright)."""
    home = os.environ.get(HOME_ENV_VAR)
    if home:
        return Path(home)
    return Path(DEFAULT_HOME).expanduser()


@dataclass
class StepwrightConfig:
    """
    stepwright settings.

    Attributes:
        framework_root: Directory holding one sub-directory per framework
        load_timeout_s: Timeout for each descriptor parse and step load (None disables)
        max_workers: Frameworks discovered concurrently
        log_level: Logging level name
        log_format: "pretty" (rich console) or "structured" (JSON lines)
        log_file: Optional log file path
        env_file: Optional .env file loaded into the environment
    """
    framework_root: Optional[str] = None
    load_timeout_s: Optional[float] = 30.0
    max_workers: int = 1
    log_level: str = "INFO"
    log_format: str = "pretty"
    log_file: Optional[str] = None
    env_file: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StepwrightConfig":
        """Build a config from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @property
    def framework_root_path(self) -> Optional[Path]:
        if not self.framework_root:
            return None
        return Path(self.framework_root).expanduser()

    @property
    def log_file_path(self) -> Optional[Path]:
        if not self.log_file:
            return None
        return Path(self.log_file).expanduser()

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigError: If a value is out of range
        """
        if self.load_timeout_s is not None and self.load_timeout_s <= 0:
            raise ConfigError(f"load_timeout_s must be positive, got {self.load_timeout_s}")
        if self.max_workers < 1:
            raise ConfigError(f"max_workers must be at least 1, got {self.max_workers}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level}")
        if self.log_format not in LOG_FORMATS:
            raise ConfigError(f"log_format must be one of {', '.join(LOG_FORMATS)}, got {self.log_format}")


def apply_env_overrides(config: StepwrightConfig) -> StepwrightConfig:
    """Apply $STEPWRIGHT_FRAMEWORK_ROOT on top of a config, in place."""
    override = os.environ.get(FRAMEWORK_ROOT_ENV_VAR)
    if override:
        config.framework_root = override
    return config


def load_config(config_path: Optional[Path] = None) -> StepwrightConfig:
    """
    Load stepwright configuration from YAML.

    Args:
        config_path: Path to config file. Defaults to <home>/config.yaml

    Returns:
        StepwrightConfig instance

    Raises:
        FileNotFoundError: If the config file does not exist
        ConfigError: If the file is not valid YAML or a value is invalid
    """
    if config_path is None:
        config_path = get_stepwright_home() / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(
            f"stepwright config.yaml not found at {config_path}. Run `stepwright init` to create one."
        )

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {config_path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration in {config_path} must be a mapping")

    config = StepwrightConfig.from_dict(data)

    if config.env_file:
        env_path = Path(config.env_file).expanduser()
        if env_path.exists():
            load_dotenv(env_path)

    apply_env_overrides(config)
    config.validate()
    return config
