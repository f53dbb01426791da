"""
Configuration management for knocker-monitor.

This module provides classes and methods for loading, validating,
and managing application configuration with CLI integration support.
"""

import yaml
import os
from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, asdict, field
from .settings import Settings


@dataclass
class JournalConfig:
    """Configuration for the journal backend."""
    backend: str = Settings.DEFAULT_BACKEND
    unit: str = Settings.DEFAULT_UNIT
    user_mode: bool = True
    file: Optional[str] = None  # JSON-lines export, for the 'file' backend
    backlog_size: int = Settings.DEFAULT_BACKLOG_SIZE


@dataclass
class MonitorConfig:
    """Configuration for the tail follower."""
    open_retry_delay: float = Settings.OPEN_RETRY_DELAY
    reconnect_delay: float = Settings.RECONNECT_DELAY
    schema_version: str = Settings.SCHEMA_VERSION
    dedupe_window: int = Settings.DEDUPE_WINDOW


@dataclass
class ServiceConfig:
    """Configuration for controlling knocker.service."""
    unit: str = Settings.DEFAULT_UNIT
    user_mode: bool = True
    knocker_command: str = Settings.KNOCKER_COMMAND
    auto_start: bool = False


@dataclass
class NotificationConfig:
    """Configuration for desktop notifications."""
    on_error: bool = True
    on_knock: bool = True


@dataclass
class DisplayConfig:
    """Configuration for display settings."""
    refresh_interval: int = Settings.DEFAULT_REFRESH_INTERVAL
    max_event_lines: int = Settings.DEFAULT_MAX_EVENT_LINES


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = Settings.DEFAULT_LOG_LEVEL
    file: Optional[str] = None


_SECTIONS = {
    'journal': JournalConfig,
    'monitor': MonitorConfig,
    'service': ServiceConfig,
    'notifications': NotificationConfig,
    'display': DisplayConfig,
    'logging': LoggingConfig,
}


@dataclass
class Config:
    """Main configuration class for knocker-monitor."""
    journal: JournalConfig = field(default_factory=JournalConfig)
    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    service: ServiceConfig = field(default_factory=ServiceConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self):
        # Environment variable overrides
        if os.getenv('KNOCKER_MONITOR_UNIT'):
            self.journal.unit = os.getenv('KNOCKER_MONITOR_UNIT')
            self.service.unit = os.getenv('KNOCKER_MONITOR_UNIT')
        if os.getenv('KNOCKER_MONITOR_BACKEND'):
            self.journal.backend = os.getenv('KNOCKER_MONITOR_BACKEND')
        if os.getenv('KNOCKER_MONITOR_LOG_LEVEL'):
            self.logging.level = os.getenv('KNOCKER_MONITOR_LOG_LEVEL')
        if os.getenv('KNOCKER_MONITOR_BACKLOG_SIZE'):
            self.journal.backlog_size = int(os.getenv('KNOCKER_MONITOR_BACKLOG_SIZE', Settings.DEFAULT_BACKLOG_SIZE))

    @classmethod
    def default_path(cls) -> Path:
        """Return the per-user configuration file path."""
        return Path(Settings.DEFAULT_CONFIG_PATH).expanduser()

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> 'Config':
        """
        Load configuration from a YAML file or return default configuration.

        Args:
            config_path: Path to configuration file

        Returns:
            Config instance
        """
        # Check for config path in environment if not provided
        if not config_path:
            env_config_path = os.getenv('KNOCKER_MONITOR_CONFIG')
            if env_config_path:
                config_path = Path(env_config_path)
            elif cls.default_path().exists():
                config_path = cls.default_path()

        if config_path and Path(config_path).exists():
            with open(config_path, 'r') as f:
                data = yaml.safe_load(f)
                if data is None:
                    data = {}
                return cls.from_dict(data)
        else:
            # Return default configuration
            return cls()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """
        Create Config instance from dictionary.

        Unknown sections and options are ignored.

        Args:
            data: Configuration dictionary

        Returns:
            Config instance
        """
        config_data = {}

        for name, section_cls in _SECTIONS.items():
            section_data = data.get(name)
            if isinstance(section_data, dict):
                known = set(section_cls.__dataclass_fields__)
                config_data[name] = section_cls(**{k: v for k, v in section_data.items() if k in known})
            else:
                config_data[name] = section_cls()

        return cls(**config_data)

    @classmethod
    def get_default_config_dict(cls) -> Dict[str, Any]:
        """Return the default configuration as a dictionary."""
        return {name: asdict(section_cls()) for name, section_cls in _SECTIONS.items()}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert Config instance to dictionary.

        Returns:
            Configuration dictionary
        """
        return asdict(self)

    def save(self, config_path: Path) -> None:
        """
        Save configuration to a YAML file.

        Args:
            config_path: Path to save configuration file
        """
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)

    def validate(self) -> List[str]:
        """
        Validate the configuration and return a list of errors.

        Returns:
            List of validation errors, empty if valid
        """
        errors = []

        # Validate journal settings
        if self.journal.backend not in Settings.BACKENDS:
            errors.append(f"Invalid journal backend: {self.journal.backend}. Valid values: {', '.join(Settings.BACKENDS)}")
        if self.journal.backend == 'file' and not self.journal.file:
            errors.append("Journal backend 'file' requires journal.file")
        if not self.journal.unit:
            errors.append("Journal unit must not be empty")
        if self.journal.backlog_size < 0:
            errors.append("Journal backlog size must not be negative")

        # Validate monitor settings
        if self.monitor.open_retry_delay <= 0:
            errors.append("Monitor open retry delay must be positive")
        if self.monitor.reconnect_delay <= 0:
            errors.append("Monitor reconnect delay must be positive")
        if self.monitor.dedupe_window <= 0:
            errors.append("Monitor dedupe window must be positive")

        # Validate display settings
        if self.display.refresh_interval <= 0:
            errors.append("Display refresh interval must be positive")
        if self.display.max_event_lines <= 0:
            errors.append("Display max event lines must be positive")

        # Validate logging level
        if self.logging.level.upper() not in Settings.LOG_LEVELS:
            errors.append(f"Invalid logging level: {self.logging.level}. Valid values: {', '.join(Settings.LOG_LEVELS)}")

        return errors

    def get_env_overrides(self) -> Dict[str, Any]:
        """
        Get configuration values that are overridden by environment variables.

        Returns:
            Dictionary of environment variable overrides
        """
        overrides = {}

        if os.getenv('KNOCKER_MONITOR_UNIT'):
            overrides['journal.unit'] = os.getenv('KNOCKER_MONITOR_UNIT')
        if os.getenv('KNOCKER_MONITOR_BACKEND'):
            overrides['journal.backend'] = os.getenv('KNOCKER_MONITOR_BACKEND')
        if os.getenv('KNOCKER_MONITOR_LOG_LEVEL'):
            overrides['logging.level'] = os.getenv('KNOCKER_MONITOR_LOG_LEVEL')
        if os.getenv('KNOCKER_MONITOR_BACKLOG_SIZE'):
            overrides['journal.backlog_size'] = int(os.getenv('KNOCKER_MONITOR_BACKLOG_SIZE'))

        return overrides

    def apply_cli_overrides(self, cli_options: Dict[str, Any]) -> None:
        """
        Apply command-line interface options as overrides to the configuration.

        Args:
            cli_options: Dictionary of CLI options to apply
        """
        if cli_options.get('unit'):
            self.journal.unit = cli_options['unit']
            self.service.unit = cli_options['unit']
        if cli_options.get('journal_file'):
            self.journal.backend = 'file'
            self.journal.file = str(cli_options['journal_file'])
        if cli_options.get('backlog') is not None:
            self.journal.backlog_size = cli_options['backlog']
        if cli_options.get('log_level'):
            self.logging.level = cli_options['log_level']
