"""
Backlog loading for knocker-monitor.

Reads a bounded window of historical journal records once, at startup, so
the monitor does not begin with an empty snapshot.
"""

import logging
from typing import List, Optional

from .errors import MalformedRecord, QueryFailure
from .events import Event
from .journal import JournalSource
from ..parsers.entry_parser import EntryParser


class BacklogLoader:
    """
    Fetches and parses the most recent Knocker events.
    """

    def __init__(self, source: JournalSource, unit: str, parser: Optional[EntryParser] = None):
        """
        Initialize the backlog loader.

        Args:
            source: Journal backend to query
            unit: systemd unit whose records are loaded
            parser: Entry parser (a default one is created if omitted)
        """
        self.source = source
        self.unit = unit
        self.parser = parser or EntryParser()
        self.logger = logging.getLogger(__name__)

    async def load(self, max_records: int) -> List[Event]:
        """
        Load up to ``max_records`` recent records as events.

        Records the collaborator returns in any order are put back into
        chronological order before being returned, so folding the result
        yields the latest state. Unparseable records are skipped.

        Args:
            max_records: Upper bound on records requested

        Returns:
            Events ordered oldest first; empty if the query failed
        """
        if max_records <= 0:
            return []

        try:
            records = await self.source.query(self.unit, max_records)
        except (QueryFailure, OSError) as e:
            self.logger.error(f"Failed to fetch initial state: {e}")
            return []

        if self.source.newest_first:
            records = list(reversed(records))

        events = []
        skipped = 0
        for record in records:
            try:
                event = self.parser.parse(record)
            except MalformedRecord as e:
                skipped += 1
                self.logger.debug(f"Skipping malformed backlog record: {e}")
                continue
            if event is not None:
                events.append(event)

        if skipped:
            self.logger.info(f"Skipped {skipped} malformed backlog record(s)")

        events = self.order_events(events)
        self.logger.info(f"Loaded {len(events)} Knocker event(s) from {len(records)} backlog record(s)")
        return events

    def order_events(self, events: List[Event]) -> List[Event]:
        """
        Sort events chronologically by journal timestamp.

        The sort is stable, and only applied when every event carries a
        timestamp; otherwise the (oldest-first) query order is kept.

        Args:
            events: Events in query order, oldest first

        Returns:
            Events in chronological order
        """
        if all(event.timestamp_us is not None for event in events):
            return sorted(events, key=lambda event: event.timestamp_us)

        self.logger.debug("Backlog records without timestamps, keeping query order")
        return list(events)
