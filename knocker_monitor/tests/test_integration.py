"""
Integration tests for knocker-monitor.

These tests drive the KnockerMonitor end to end over scripted journal
backends: backlog seeding, live reduction, publication and restarts.
"""

import asyncio

import pytest

from knocker_monitor.core.errors import QueryFailure
from knocker_monitor.core.events import EventKind, ServiceStatus, StateSnapshot
from knocker_monitor.core.monitor import KnockerMonitor
from knocker_monitor.core.tail_follower import FollowerState
from knocker_monitor.core.journal import JsonLinesFileSource

from .conftest import FakeSource, FakeStream, make_line, wait_until


BACKLOG = [
    make_line('ServiceState', cursor='c1', ts=1000, service_state='running', version='1.4.0'),
    make_line('WhitelistApplied', cursor='c2', ts=2000, whitelist_ip='203.0.113.7',
              expires_unix=1700003600, ttl_sec=3600),
    make_line('StatusSnapshot', cursor='c3', ts=3000, whitelist_ip='203.0.113.7',
              expires_unix=1700003600, ttl_sec=3600, next_at_unix=1700003000, cadence_source='ttl'),
]


class TestKnockerMonitor:
    """Integration tests for KnockerMonitor."""

    @pytest.mark.asyncio
    async def test_start_seeds_state_without_publishing(self, sample_config, fake_sleep):
        source = FakeSource(backlog=BACKLOG)
        monitor = KnockerMonitor(sample_config, source=source, sleep=fake_sleep)
        published = []
        monitor.subscribe_all(published.append)

        await monitor.start()
        state = monitor.get_state()
        await wait_until(lambda: monitor.follower_state == FollowerState.STREAMING)
        await monitor.stop()

        assert state.service_state == ServiceStatus.RUNNING
        assert state.version == '1.4.0'
        assert state.whitelist_ip == '203.0.113.7'
        assert state.next_at_unix == 1700003000
        assert published == []
        assert source.query_calls == [('knocker.service', 50)]
        assert source.follow_calls == [('knocker.service', 'c3')]

    @pytest.mark.asyncio
    async def test_live_event_is_reduced_before_publication(self, sample_config, fake_sleep):
        source = FakeSource(backlog=BACKLOG, streams=[FakeStream([
            make_line('WhitelistExpired', cursor='c4', ts=4000),
        ], end=False)])
        monitor = KnockerMonitor(sample_config, source=source, sleep=fake_sleep)
        seen = []
        monitor.subscribe(EventKind.WHITELIST_EXPIRED,
                          lambda event: seen.append((event, monitor.get_state())))

        async with monitor:
            await wait_until(lambda: len(seen) == 1)

        event, state_at_delivery = seen[0]
        assert event.cursor == 'c4'
        assert state_at_delivery.whitelist_ip is None
        assert state_at_delivery.next_at_unix == 1700003000
        assert not monitor.running

    @pytest.mark.asyncio
    async def test_snapshots_are_immutable(self, sample_config, fake_sleep):
        source = FakeSource(backlog=BACKLOG, streams=[FakeStream([
            make_line('NextKnockUpdated', cursor='c4', next_at_unix=1700009999),
        ], end=False)])
        monitor = KnockerMonitor(sample_config, source=source, sleep=fake_sleep)

        await monitor.start()
        before = monitor.get_state()
        await wait_until(lambda: monitor.get_state() is not before)
        await monitor.stop()

        assert before.next_at_unix == 1700003000
        assert monitor.get_state().next_at_unix == 1700009999

    @pytest.mark.asyncio
    async def test_replayed_backlog_is_not_republished(self, sample_config, fake_sleep):
        source = FakeSource(backlog=BACKLOG, streams=[FakeStream(
            [BACKLOG[-1], make_line('KnockTriggered', cursor='c4', trigger_source='timer')], end=False)])
        monitor = KnockerMonitor(sample_config, source=source, sleep=fake_sleep)
        published = []
        monitor.subscribe_all(published.append)

        async with monitor:
            await wait_until(lambda: len(published) == 1)
            await asyncio.sleep(0.01)

        assert [e.cursor for e in published] == ['c4']

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, sample_config, fake_sleep):
        source = FakeSource(backlog=BACKLOG)
        monitor = KnockerMonitor(sample_config, source=source, sleep=fake_sleep)

        await monitor.start()
        await monitor.start()
        await monitor.stop()
        await monitor.stop()

        assert len(source.query_calls) == 1

    @pytest.mark.asyncio
    async def test_restart_reseeds_from_scratch(self, sample_config, fake_sleep):
        source = FakeSource(backlog=BACKLOG)
        monitor = KnockerMonitor(sample_config, source=source, sleep=fake_sleep)

        await monitor.start()
        await wait_until(lambda: len(source.follow_calls) == 1)
        await monitor.stop()
        assert monitor.get_state().whitelist_ip == '203.0.113.7'

        source.backlog = [make_line('ServiceState', cursor='d1', ts=5000, service_state='stopped')]
        await monitor.start()
        state = monitor.get_state()
        await wait_until(lambda: len(source.follow_calls) == 2)
        await monitor.stop()

        assert state.service_state == ServiceStatus.STOPPED
        assert state.whitelist_ip is None
        assert source.follow_calls[-1] == ('knocker.service', 'd1')

    @pytest.mark.asyncio
    async def test_backlog_failure_still_follows(self, sample_config, fake_sleep):
        source = FakeSource(query_error=QueryFailure("journalctl exited with status 1"),
                            streams=[FakeStream([make_line('ServiceState', cursor='c1',
                                                           service_state='failed')], end=False)])
        monitor = KnockerMonitor(sample_config, source=source, sleep=fake_sleep)

        await monitor.start()
        assert monitor.get_state() == StateSnapshot()
        await wait_until(lambda: monitor.get_state().service_state == ServiceStatus.FAILED)
        await monitor.stop()

        assert source.follow_calls == [('knocker.service', None)]

    @pytest.mark.asyncio
    async def test_failing_subscriber_does_not_stop_monitoring(self, sample_config, fake_sleep):
        source = FakeSource(streams=[FakeStream([
            make_line('Error', cursor='c1', error_msg='first'),
            make_line('Error', cursor='c2', error_msg='second'),
        ], end=False)])
        monitor = KnockerMonitor(sample_config, source=source, sleep=fake_sleep)
        received = []

        def broken(event):
            raise RuntimeError("subscriber bug")

        monitor.subscribe(EventKind.ERROR, broken)
        monitor.subscribe(EventKind.ERROR, received.append)

        async with monitor:
            await wait_until(lambda: len(received) == 2)

        assert [e.get('error_msg') for e in received] == ['first', 'second']

    @pytest.mark.asyncio
    async def test_unsubscribe(self, sample_config, fake_sleep):
        source = FakeSource(streams=[FakeStream([make_line('Error', cursor='c1')], end=False)])
        monitor = KnockerMonitor(sample_config, source=source, sleep=fake_sleep)
        received = []
        subscription = monitor.subscribe(EventKind.ERROR, received.append)
        assert monitor.unsubscribe(subscription)

        async with monitor:
            await wait_until(lambda: monitor.follower.delivered == 1)

        assert received == []

    @pytest.mark.asyncio
    async def test_stop_during_backlog_seeding(self, sample_config, fake_sleep):
        source = FakeSource(backlog=BACKLOG)
        gate = asyncio.Event()
        original_query = source.query

        async def slow_query(unit, max_records):
            await gate.wait()
            return await original_query(unit, max_records)

        source.query = slow_query
        monitor = KnockerMonitor(sample_config, source=source, sleep=fake_sleep)

        starting = asyncio.ensure_future(monitor.start())
        await asyncio.sleep(0.01)
        await monitor.stop()
        await asyncio.wait_for(starting, timeout=1)

        assert not monitor.running
        assert source.follow_calls == []
        assert monitor.get_state() == StateSnapshot()

    @pytest.mark.asyncio
    async def test_file_backend_end_to_end(self, sample_config, journal_file):
        sample_config.journal.backend = 'file'
        sample_config.journal.file = str(journal_file)
        monitor = KnockerMonitor(sample_config)
        assert isinstance(monitor.source, JsonLinesFileSource)

        applied = []
        monitor.subscribe(EventKind.WHITELIST_APPLIED, applied.append)

        async with monitor:
            state = monitor.get_state()
            assert state.service_state == ServiceStatus.RUNNING
            assert state.next_at_unix == 1700003000

            await wait_until(lambda: monitor.follower_state == FollowerState.STREAMING)
            await asyncio.sleep(0.2)  # let the watchdog observer settle
            with open(journal_file, 'a') as f:
                f.write(make_line('WhitelistApplied', cursor='c9', ts=9000,
                                  whitelist_ip='198.51.100.4', expires_unix=1700009000) + "\n")

            await wait_until(lambda: len(applied) == 1, timeout=5)
            assert monitor.get_state().whitelist_ip == '198.51.100.4'
