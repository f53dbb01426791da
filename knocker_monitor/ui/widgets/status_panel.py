"""
Status panel widget module for the knocker-monitor Textual UI.

This module provides the widget showing the service state, the active
whitelist entry and the next scheduled knock.
"""

from typing import Optional
import logging

from textual.app import ComposeResult
from textual.containers import Vertical
from textual.widgets import Static

from ...core.events import StateSnapshot
from ...utils.formatting import FormattingUtils


class StatusPanel(Vertical):
    """
    Widget for displaying the current Knocker state.
    """

    DEFAULT_CSS = """
    StatusPanel {
        height: auto;
        border: round $accent;
        padding: 0 1;
    }
    """

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.logger = logging.getLogger(self.__class__.__name__)
        self.state = StateSnapshot()
        self.service_active: Optional[bool] = None

    def compose(self) -> ComposeResult:
        yield Static(id="service-line")
        yield Static(id="whitelist-line")
        yield Static(id="schedule-line")

    def on_mount(self) -> None:
        self.refresh_lines()

    def update_state(self, state: StateSnapshot, service_active: Optional[bool] = None) -> None:
        """
        Show a new snapshot.

        Args:
            state: Current snapshot
            service_active: Whether systemd reports the unit active, if known
        """
        self.state = state
        if service_active is not None:
            self.service_active = service_active
        self.refresh_lines()

    def service_text(self) -> str:
        """Service line: the state from the journal, plus systemd's view when they disagree."""
        version = f" (v{self.state.version})" if self.state.version else ""
        text = f"Service: {FormattingUtils.format_service_state(self.state.service_state)}{version}"
        if self.service_active is not None:
            text += f"  [dim]systemd: {'active' if self.service_active else 'inactive'}[/dim]"
        return text

    def refresh_lines(self, now: Optional[float] = None) -> None:
        """Redraw all lines; countdowns are computed against ``now``."""
        if not self.is_mounted:
            return
        self.query_one("#service-line", Static).update(self.service_text())
        self.query_one("#whitelist-line", Static).update(FormattingUtils.describe_whitelist(self.state, now))
        self.query_one("#schedule-line", Static).update(FormattingUtils.describe_next_knock(self.state, now))
