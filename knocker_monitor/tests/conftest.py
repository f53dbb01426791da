"""
Pytest configuration for knocker-monitor tests.

This file contains fixtures and fakes for the journal collaborators.
"""

import asyncio
import json
from typing import List, Optional

import pytest

from knocker_monitor.config.config import Config
from knocker_monitor.core.journal import JournalSource, RecordStream
from knocker_monitor.parsers.entry_parser import EntryParser


def make_record(kind: str, cursor: Optional[str] = None, ts: Optional[int] = None,
                schema: Optional[str] = "1", message: str = "", **fields) -> dict:
    """
    Build a journal record the way ``journalctl -o json`` emits it.

    Keyword fields are upper-cased and prefixed, e.g. ``whitelist_ip`` becomes
    ``KNOCKER_WHITELIST_IP``. All values are strings, as in the journal.
    """
    record = {'KNOCKER_EVENT': kind, 'MESSAGE': message}
    if schema is not None:
        record['KNOCKER_SCHEMA_VERSION'] = schema
    if cursor is not None:
        record['__CURSOR'] = cursor
    if ts is not None:
        record['__REALTIME_TIMESTAMP'] = str(ts)
    for name, value in fields.items():
        record[f"KNOCKER_{name.upper()}"] = str(value)
    return record


def make_line(kind: str, **kwargs) -> str:
    """Same as :func:`make_record`, serialized as one JSON line."""
    return json.dumps(make_record(kind, **kwargs))


class FakeStream(RecordStream):
    """
    Scripted record stream.

    Items are returned in order; an exception item is raised instead. When
    the script runs out the stream ends (``end=True``) or blocks until
    cancelled (``end=False``).
    """

    def __init__(self, items=None, end: bool = True):
        self.items = list(items or [])
        self.end = end
        self.closed = False
        self.reads = 0

    async def read_record(self):
        await asyncio.sleep(0)
        self.reads += 1
        if self.items:
            item = self.items.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        if self.end:
            return None
        await asyncio.Event().wait()

    async def close(self):
        self.closed = True


class FakeSource(JournalSource):
    """
    Scripted journal backend recording every call.

    ``streams`` are handed out by successive follow() calls; an exception
    item is raised instead. Once exhausted, follow() returns a stream that
    blocks until cancelled.
    """

    def __init__(self, backlog=None, streams=None, newest_first: bool = False,
                 query_error: Optional[Exception] = None):
        self.backlog = list(backlog or [])
        self.streams = list(streams or [])
        self.newest_first = newest_first
        self.query_error = query_error
        self.query_calls: List[tuple] = []
        self.follow_calls: List[tuple] = []
        self.opened: List[FakeStream] = []

    async def query(self, unit, max_records):
        self.query_calls.append((unit, max_records))
        if self.query_error is not None:
            raise self.query_error
        return self.backlog[-max_records:]

    async def follow(self, unit, after_cursor=None):
        self.follow_calls.append((unit, after_cursor))
        item = self.streams.pop(0) if self.streams else FakeStream(end=False)
        if isinstance(item, Exception):
            raise item
        self.opened.append(item)
        return item


class FakeSleep:
    """Records requested delays and returns after a single loop iteration."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay):
        self.delays.append(delay)
        await asyncio.sleep(0)


async def wait_until(predicate, timeout: float = 2.0):
    """Poll ``predicate`` on the running loop until it holds or time runs out."""
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.001)
    await asyncio.wait_for(_poll(), timeout)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep KNOCKER_MONITOR_* variables from the host out of the tests."""
    for name in ('KNOCKER_MONITOR_CONFIG', 'KNOCKER_MONITOR_UNIT', 'KNOCKER_MONITOR_BACKEND',
                 'KNOCKER_MONITOR_LOG_LEVEL', 'KNOCKER_MONITOR_BACKLOG_SIZE'):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def sample_config():
    """Create a sample configuration for testing."""
    config = Config()
    config.journal.backlog_size = 50
    config.display.refresh_interval = 1  # Faster for tests
    return config


@pytest.fixture
def parser(sample_config):
    """Create an entry parser for testing."""
    return EntryParser(sample_config)


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def journal_file(tmp_path):
    """Create a JSON-lines journal export for testing."""
    path = tmp_path / "knocker.jsonl"
    lines = [
        make_line('ServiceState', cursor='c1', ts=1000, service_state='running', version='1.4.0'),
        "not json at all",
        make_line('WhitelistApplied', cursor='c2', ts=2000, whitelist_ip='203.0.113.7',
                  expires_unix=1700003600, ttl_sec=3600),
        make_line('NextKnockUpdated', cursor='c3', ts=3000, next_at_unix=1700003000),
    ]
    path.write_text("\n".join(lines) + "\n")
    return path
