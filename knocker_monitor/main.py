"""
Main application entry point for knocker-monitor.

This module launches the Textual status panel on top of the journal
monitor and the service controller.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from .config.config import Config
from .core.monitor import KnockerMonitor
from .core.service import KnockerService
from .ui.app import KnockerApp
from .utils.log_setup import setup_logging


def run_app(config_path: Optional[Path] = None, cli_options: Optional[Dict[str, Any]] = None) -> int:
    """
    Run the main application.

    Args:
        config_path: Path to configuration file
        cli_options: Command-line overrides (unit, journal_file, backlog)

    Returns:
        Exit code
    """
    try:
        config = Config.load(config_path)
        config.apply_cli_overrides(cli_options or {})

        log_level = os.environ.get('KNOCKER_MONITOR_LOG_LEVEL', config.logging.level)
        # The terminal belongs to the UI; only log to a file, if configured
        setup_logging(log_level, Path(config.logging.file) if config.logging.file else None, console=False)

        service = KnockerService(config)
        monitor = KnockerMonitor(config)

        app = KnockerApp(config, monitor, service)
        app.run()

        return 0

    except Exception as e:
        logging.error(f"Application error: {e}")
        return 1
