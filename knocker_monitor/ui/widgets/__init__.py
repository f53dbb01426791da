"""
Widgets module for knocker-monitor UI.

This module provides the widget components for the application.
"""

from .status_panel import StatusPanel
from .event_log import EventLog

__all__ = [
    'StatusPanel',
    'EventLog'
]
