"""
Event log widget module for the knocker-monitor Textual UI.

This module provides a scrolling log of Knocker events as they arrive.
"""

from collections import deque
from datetime import datetime
from typing import Deque, Optional
import logging

from rich.text import Text
from textual.widgets import RichLog

from ...core.events import Event, EventKind
from ...utils.formatting import FormattingUtils


EVENT_STYLES = {
    EventKind.ERROR: "bold red",
    EventKind.WHITELIST_APPLIED: "green",
    EventKind.WHITELIST_EXPIRED: "yellow",
    EventKind.KNOCK_TRIGGERED: "cyan",
}


class EventLog(RichLog):
    """
    Widget for displaying Knocker events with real-time updates.
    """

    DEFAULT_CSS = """
    EventLog {
        border: round $primary;
    }
    """

    def __init__(self, max_lines: int = 200, **kwargs):
        """
        Initialize the event log widget.

        Args:
            max_lines: Number of events kept on screen
        """
        super().__init__(max_lines=max_lines, wrap=True, markup=False, **kwargs)
        self.logger = logging.getLogger(self.__class__.__name__)
        # Recent events, alongside the rendered lines
        self.events: Deque[Event] = deque(maxlen=max_lines)

    @staticmethod
    def render_event(event: Event, received: Optional[datetime] = None) -> Text:
        """
        Build the log line for an event.

        Args:
            event: Event to render
            received: Arrival time (defaults to now)

        Returns:
            Styled text line
        """
        stamp = (received or datetime.now()).strftime("%H:%M:%S")
        line = Text(f"{stamp}  ", style="dim")
        line.append(FormattingUtils.format_event(event), style=EVENT_STYLES.get(event.kind, ""))
        return line

    def add_event(self, event: Event) -> None:
        """Append an event to the log."""
        self.events.append(event)
        self.write(self.render_event(event))
