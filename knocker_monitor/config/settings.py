"""
Settings management for knocker-monitor.

This module provides application-wide settings and constants.
"""

from dataclasses import dataclass


@dataclass
class Settings:
    """Application settings and constants."""

    # Application settings
    APP_NAME: str = "knocker-monitor"
    APP_TITLE: str = "Knocker"
    APP_VERSION: str = "0.1.0"

    # Default paths
    DEFAULT_CONFIG_PATH: str = "~/.config/knocker-monitor/config.yaml"
    LOCAL_CONFIG_PATH: str = "./knocker_monitor.yaml"

    # Journal settings
    DEFAULT_UNIT: str = "knocker.service"
    DEFAULT_BACKEND: str = "journalctl"
    BACKENDS: tuple = ("journalctl", "file")
    DEFAULT_BACKLOG_SIZE: int = 100
    JOURNALCTL_COMMAND: str = "journalctl"
    SYSTEMCTL_COMMAND: str = "systemctl"
    KNOCKER_COMMAND: str = "knocker"

    # Record schema the parser is built against
    SCHEMA_VERSION: str = "1"

    # Tail follower delays (seconds)
    OPEN_RETRY_DELAY: float = 5.0
    RECONNECT_DELAY: float = 2.0
    DEDUPE_WINDOW: int = 256

    # Largest single journal line accepted from journalctl
    STREAM_LINE_LIMIT: int = 1024 * 1024

    # UI settings
    DEFAULT_REFRESH_INTERVAL: int = 10  # seconds
    DEFAULT_MAX_EVENT_LINES: int = 200

    # Logging settings
    DEFAULT_LOG_LEVEL: str = "INFO"
    LOG_LEVELS: tuple = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

    CADENCE_LABELS: tuple = (
        ('ttl', 'based on TTL'),
        ('ttl_response', 'based on TTL response'),
        ('check_interval', 'based on interval'),
    )
