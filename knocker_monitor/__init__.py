"""
knocker-monitor - status monitor for the Knocker port-knocking service.

This package follows the journal of knocker.service, derives the current
whitelist and schedule state from its structured events, and exposes it to
subscribers, a terminal status panel and a command-line interface.
"""

from .__version__ import __version__
from .core.events import CadenceSource, Event, EventKind, ServiceStatus, StateSnapshot
from .core.event_bus import EventBus, Subscription
from .core.monitor import KnockerMonitor
from .core.service import KnockerService

__all__ = [
    "CadenceSource",
    "Event",
    "EventKind",
    "ServiceStatus",
    "StateSnapshot",
    "EventBus",
    "Subscription",
    "KnockerMonitor",
    "KnockerService",
    "__version__",
]


def main():
    """Main entry point for the CLI."""
    from .cli import main as cli_main
    return cli_main()
