"""
Knocker journal monitor.

The monitor seeds its state from the journal backlog, then follows the
journal for new events. Every event is reduced into the snapshot first
and published second, so subscribers always see an up-to-date state.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .backlog import BacklogLoader
from .event_bus import EventBus, EventHandler, Subscription
from .events import Event, EventKind, StateSnapshot
from .journal import JournalSource, create_source
from .state_reducer import fold, reduce
from .tail_follower import FollowerState, TailFollower
from ..config.config import Config
from ..parsers.entry_parser import EntryParser


class KnockerMonitor:
    """
    Monitors the knocker.service journal and keeps the current state.

    All state changes happen on the event loop the monitor was started
    on; :meth:`get_state` hands out immutable snapshots.
    """

    def __init__(self, config: Optional[Config] = None, source: Optional[JournalSource] = None,
                 event_bus: Optional[EventBus] = None, parser: Optional[EntryParser] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        """
        Initialize the monitor.

        Args:
            config: Application configuration
            source: Journal backend (created from the configuration if omitted)
            event_bus: Subscription registry to publish to
            parser: Entry parser shared by backlog and follower
            sleep: Coroutine function used for reconnect delays
        """
        self.config = config or Config()
        self.logger = logging.getLogger(__name__)

        self.source = source or create_source(self.config)
        self.event_bus = event_bus or EventBus()
        self.parser = parser or EntryParser(self.config)

        unit = self.config.journal.unit
        self.backlog = BacklogLoader(self.source, unit, self.parser)
        self.follower = TailFollower(
            self.source, unit, self._apply,
            parser=self.parser,
            open_retry_delay=self.config.monitor.open_retry_delay,
            reconnect_delay=self.config.monitor.reconnect_delay,
            dedupe_window=self.config.monitor.dedupe_window,
            sleep=sleep,
        )

        self._state = StateSnapshot()
        self._running = False
        self._seed_task: Optional[asyncio.Future] = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def follower_state(self) -> FollowerState:
        return self.follower.state

    def get_state(self) -> StateSnapshot:
        """
        Get the current state snapshot.

        Returns:
            Immutable snapshot; later events replace it rather than change it
        """
        return self._state

    def subscribe(self, kind: EventKind, handler: EventHandler) -> Subscription:
        """Register ``handler`` for events of ``kind``."""
        return self.event_bus.subscribe(kind, handler)

    def subscribe_all(self, handler: EventHandler) -> Subscription:
        """Register ``handler`` for every event."""
        return self.event_bus.subscribe_all(handler)

    def unsubscribe(self, subscription: Subscription) -> bool:
        """Remove a subscription made through this monitor."""
        return self.event_bus.unsubscribe(subscription)

    async def start(self):
        """
        Seed the state from the backlog and start following the journal.

        Calling start on a running monitor does nothing. After :meth:`stop`
        the state is rebuilt from scratch.
        """
        if self._running:
            return
        self._running = True

        self._state = StateSnapshot()
        self.follower.reset()

        self._seed_task = asyncio.ensure_future(self.backlog.load(self.config.journal.backlog_size))
        try:
            events = await self._seed_task
        except asyncio.CancelledError:
            if not self._running:
                self.logger.info("Monitor stopped during backlog seeding")
                return
            self._running = False
            raise
        finally:
            self._seed_task = None

        if not self._running:
            return

        self._state = fold(events, self._state)
        self.follower.remember(events)
        self.follower.start()
        self.logger.info(f"Monitoring {self.config.journal.unit} (service {self._state.service_state.value})")

    async def stop(self):
        """
        Stop monitoring. Pending reads are cancelled; calling stop twice is harmless.
        """
        if not self._running:
            return
        self._running = False

        if self._seed_task is not None:
            self._seed_task.cancel()

        await self.follower.stop()
        self.logger.info("Monitoring stopped")

    def _apply(self, event: Event):
        self._state = reduce(self._state, event)
        self.event_bus.publish(event)

    async def __aenter__(self) -> 'KnockerMonitor':
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()
