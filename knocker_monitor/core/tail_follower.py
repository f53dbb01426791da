"""
Journal tail following for knocker-monitor.

This module keeps a live read of new journal records open, feeds each one
through the entry parser to the monitor, and reconnects with a fixed delay
whenever the stream cannot be opened, breaks, or ends.
"""

import asyncio
import logging
from collections import deque
from enum import Enum
from typing import Awaitable, Callable, Iterable, Optional

from .errors import MalformedRecord, StreamOpenFailure, StreamReadFailure
from .events import Event
from .journal import JournalSource, RecordStream
from ..config.settings import Settings
from ..parsers.entry_parser import EntryParser


class FollowerState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    BACKOFF = "backoff"
    STOPPED = "stopped"


class TailFollower:
    """
    Follows the journal of one unit and hands every new event to ``on_event``.

    State machine::

        idle -> connecting -> streaming -> backoff -> connecting ...
        (any) -> stopped              on stop()

    Opening failures back off for ``open_retry_delay`` seconds, end of
    stream and read errors for ``reconnect_delay`` seconds. All waiting
    goes through ``sleep`` so tests can substitute a fake scheduler.
    """

    def __init__(self, source: JournalSource, unit: str, on_event: Callable[[Event], None],
                 parser: Optional[EntryParser] = None,
                 open_retry_delay: float = Settings.OPEN_RETRY_DELAY,
                 reconnect_delay: float = Settings.RECONNECT_DELAY,
                 dedupe_window: int = Settings.DEDUPE_WINDOW,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        """
        Initialize the tail follower.

        Args:
            source: Journal backend to follow
            unit: systemd unit to follow
            on_event: Called with each new event, in journal order
            parser: Entry parser (a default one is created if omitted)
            open_retry_delay: Delay before retrying a failed open
            reconnect_delay: Delay before reconnecting after end of stream or a read error
            dedupe_window: Number of recent cursors remembered to drop replays
            sleep: Coroutine function used for backoff delays
        """
        self.source = source
        self.unit = unit
        self.on_event = on_event
        self.parser = parser or EntryParser()
        self.open_retry_delay = open_retry_delay
        self.reconnect_delay = reconnect_delay
        self.logger = logging.getLogger(__name__)

        self._sleep = sleep
        self._state = FollowerState.IDLE
        self._task: Optional[asyncio.Task] = None
        self._stopping = False

        self._last_cursor: Optional[str] = None
        self._recent_cursors = deque(maxlen=dedupe_window)
        self._recent_cursor_set = set()

        # Counters, mostly for diagnostics
        self.delivered = 0
        self.reconnects = 0
        self.skipped = 0

    @property
    def state(self) -> FollowerState:
        return self._state

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def last_cursor(self) -> Optional[str]:
        return self._last_cursor

    def _set_state(self, state: FollowerState):
        if state != self._state:
            self.logger.debug(f"Tail follower: {self._state.value} -> {state.value}")
            self._state = state

    def reset(self):
        """Forget the resume cursor and the replay window."""
        self._last_cursor = None
        self._recent_cursors.clear()
        self._recent_cursor_set.clear()

    def remember(self, events: Iterable[Event]):
        """
        Mark events as already processed.

        Used to continue right after the backlog: the last cursor becomes
        the resume point and replays of these events are dropped.

        Args:
            events: Events in chronological order
        """
        for event in events:
            if event.cursor is not None:
                self._remember_cursor(event.cursor)
                self._last_cursor = event.cursor

    def _remember_cursor(self, cursor: str):
        if len(self._recent_cursors) == self._recent_cursors.maxlen:
            self._recent_cursor_set.discard(self._recent_cursors[0])
        self._recent_cursors.append(cursor)
        self._recent_cursor_set.add(cursor)

    def start(self):
        """
        Start following in a background task on the running loop.

        Does nothing if the follower is already running.
        """
        if self.running:
            self.logger.debug("Tail follower already running")
            return

        self._stopping = False
        self._set_state(FollowerState.IDLE)
        self._task = asyncio.ensure_future(self._run())

    async def stop(self):
        """
        Stop following.

        A pending read or backoff delay is cancelled immediately and no
        retry fires afterwards. Calling stop more than once is harmless.
        """
        self._stopping = True
        task = self._task
        self._task = None

        if task is not None and not task.done():
            task.cancel()
            if task is not asyncio.current_task():
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        self._set_state(FollowerState.STOPPED)

    async def _run(self):
        try:
            while not self._stopping:
                self._set_state(FollowerState.CONNECTING)
                try:
                    stream = await self.source.follow(self.unit, self._last_cursor)
                except (StreamOpenFailure, OSError) as e:
                    self.logger.error(f"Failed to start following journal: {e}")
                    await self._backoff(self.open_retry_delay)
                    continue

                self._set_state(FollowerState.STREAMING)
                self.logger.info(f"Following journal for {self.unit}")
                try:
                    await self._consume(stream)
                    self.logger.info("Journal stream ended")
                except StreamReadFailure as e:
                    self.logger.error(f"Error reading journal line: {e}")
                except Exception:
                    self.logger.exception("Unexpected error while following journal")
                finally:
                    await self._close_stream(stream)

                await self._backoff(self.reconnect_delay)
        except asyncio.CancelledError:
            self._set_state(FollowerState.STOPPED)
            raise

    async def _consume(self, stream: RecordStream):
        while not self._stopping:
            record = await stream.read_record()
            if record is None:
                return
            self._handle_record(record)

    def _handle_record(self, record):
        if self._stopping:
            return

        try:
            event = self.parser.parse(record)
        except MalformedRecord as e:
            self.skipped += 1
            self.logger.debug(f"Skipping malformed journal record: {e}")
            return

        if event is None:
            return

        if event.cursor is not None:
            if event.cursor in self._recent_cursor_set:
                self.logger.debug(f"Dropping already processed record {event.cursor}")
                return
            self._remember_cursor(event.cursor)
            self._last_cursor = event.cursor

        self.delivered += 1
        self.on_event(event)

    async def _close_stream(self, stream: RecordStream):
        try:
            await stream.close()
        except OSError as e:
            self.logger.warning(f"Error closing journal stream: {e}")

    async def _backoff(self, delay: float):
        if self._stopping:
            return
        self._set_state(FollowerState.BACKOFF)
        self.reconnects += 1
        self.logger.info(f"Reconnecting to journal in {delay:g}s")
        await self._sleep(delay)
