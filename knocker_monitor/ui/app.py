"""
Main Textual application UI for knocker-monitor.

A small status panel: service state, the active whitelist entry, the next
scheduled knock and a running log of Knocker events, with key bindings to
start/stop the service and to knock on demand.
"""

from typing import List, Optional, Tuple
import logging

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.widgets import Footer, Header

from ..config.config import Config
from ..core.event_bus import Subscription
from ..core.events import Event, EventKind
from ..core.monitor import KnockerMonitor
from ..core.service import KnockerService
from ..utils.formatting import FormattingUtils
from .widgets import EventLog, StatusPanel


class KnockerApp(App):
    """
    Main Textual application for knocker-monitor.
    """

    TITLE = "Knocker"
    SUB_TITLE = "Service Inactive"

    BINDINGS = [
        Binding("t", "toggle_service", "Start/Stop"),
        Binding("k", "knock", "Knock Now"),
        Binding("r", "refresh", "Refresh"),
        Binding("q", "quit", "Quit"),
        Binding("ctrl+d", "quit", "Quit"),
    ]

    def __init__(self, config: Config, monitor: KnockerMonitor, service: KnockerService):
        """
        Initialize the application.

        Args:
            config: Application configuration
            monitor: Journal monitor (started when the app mounts)
            service: knocker.service controller
        """
        self.config = config
        self.monitor = monitor
        self.service = service
        self.logger = logging.getLogger(__name__)

        self.service_active = False
        self._knocking = False
        self._subscriptions: List[Subscription] = []

        super().__init__()

    def compose(self) -> ComposeResult:
        """Create child widgets for the app."""
        yield Header()
        yield Container(
            StatusPanel(id="status-panel"),
            EventLog(max_lines=self.config.display.max_event_lines, id="events"),
        )
        yield Footer()

    async def on_mount(self) -> None:
        """Check that Knocker is installed, then subscribe to the monitor and start it."""
        if not await self.service.is_installed():
            self.logger.error("knocker executable not found, not starting the monitor")
            self.sub_title = "Not Installed"
            self.notify("Knocker is not installed (knocker not found on PATH)",
                        title="Knocker", severity="error", timeout=30)
            return

        for kind in EventKind:
            self._subscriptions.append(self.monitor.subscribe(kind, self._on_event))

        await self.monitor.start()
        await self.refresh_service_state()

        # Countdowns and service state drift without events
        self.set_interval(self.config.display.refresh_interval, self._periodic_refresh)

        if self.config.service.auto_start and not self.service_active:
            self.run_worker(self._auto_start(), exclusive=True)

    async def on_unmount(self) -> None:
        for subscription in self._subscriptions:
            self.monitor.unsubscribe(subscription)
        self._subscriptions = []
        await self.monitor.stop()

    def _on_event(self, event: Event) -> None:
        self.query_one(EventLog).add_event(event)

        notification = self.notification_for(event)
        if notification:
            title, message, severity = notification
            self.notify(message, title=title, severity=severity)

        if event.kind == EventKind.SERVICE_STATE:
            self.run_worker(self.refresh_service_state(), group="service-state")

        self.refresh_status()

    def notification_for(self, event: Event) -> Optional[Tuple[str, str, str]]:
        """
        Decide whether an event deserves a desktop notification.

        Args:
            event: Event just received

        Returns:
            (title, message, severity) or None
        """
        if event.kind == EventKind.WHITELIST_APPLIED and self.config.notifications.on_knock:
            expiry = FormattingUtils.format_timestamp(event.get('expires_unix'))
            return ("Knocker", f"Whitelisted {event.get('whitelist_ip', 'unknown address')} until {expiry}",
                    "information")
        if event.kind == EventKind.ERROR and self.config.notifications.on_error:
            return ("Knocker Error", event.get('error_msg') or event.message or "Unknown error", "error")
        return None

    def refresh_status(self) -> None:
        """Redraw the status lines from the current snapshot."""
        self.query_one(StatusPanel).update_state(self.monitor.get_state(), self.service_active)

    async def refresh_service_state(self) -> None:
        """Ask systemd whether the service is active and update the subtitle."""
        self.service_active = await self.service.is_active()
        self.sub_title = "Service Active" if self.service_active else "Service Inactive"
        self.refresh_status()

    async def _periodic_refresh(self) -> None:
        await self.refresh_service_state()

    async def _auto_start(self) -> None:
        if not await self.service.start():
            self.notify(f"Failed to start {self.service.unit}", title="Knocker", severity="error")
        await self.refresh_service_state()

    async def action_toggle_service(self) -> None:
        """Start the service if it is inactive, stop it otherwise."""
        if self.service_active:
            if not await self.service.stop():
                self.notify(f"Failed to stop {self.service.unit}", title="Knocker", severity="error")
        else:
            if not await self.service.start():
                self.notify(f"Failed to start {self.service.unit}", title="Knocker", severity="error")

        # systemd needs a moment before is-active reflects the change
        self.set_timer(0.5, self.refresh_service_state)

    async def action_knock(self) -> None:
        """Trigger a manual knock; repeated presses within two seconds are ignored."""
        if self._knocking:
            return
        self._knocking = True
        try:
            if await self.service.trigger_knock():
                self.notify("Knock triggered successfully", title="Knocker")
            else:
                self.notify("Failed to trigger knock", title="Knocker", severity="error")
        finally:
            self.set_timer(2, self._enable_knock)

    def _enable_knock(self) -> None:
        self._knocking = False

    async def action_refresh(self) -> None:
        """Refresh the service state and status lines."""
        await self.refresh_service_state()
