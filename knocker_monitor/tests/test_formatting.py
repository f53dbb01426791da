"""
Tests for the display formatting helpers.
"""

import json

import pytest

from knocker_monitor.core.events import CadenceSource, Event, EventKind, ServiceStatus, StateSnapshot
from knocker_monitor.utils.formatting import FormattingUtils


NOW = 1700000000


class TestFormattingUtils:
    """Test cases for FormattingUtils."""

    @pytest.mark.parametrize("seconds, expected", [
        (0, "0s"),
        (45, "45s"),
        (300, "5m"),
        (7380, "2h 3m"),
        (100800, "1d 4h"),
        (-5, "0s"),
    ])
    def test_format_duration(self, seconds, expected):
        assert FormattingUtils.format_duration(seconds) == expected

    def test_format_timestamp_missing(self):
        assert FormattingUtils.format_timestamp(None) == "N/A"
        assert FormattingUtils.format_timestamp(0) == "N/A"

    def test_format_cadence_source(self):
        assert FormattingUtils.format_cadence_source(None) == ""
        assert FormattingUtils.format_cadence_source(CadenceSource.TTL) == "based on TTL"
        assert FormattingUtils.format_cadence_source('check_interval') == "based on interval"

    def test_format_service_state(self):
        assert FormattingUtils.format_service_state(ServiceStatus.RUNNING) == "[green]RUNNING[/green]"
        assert FormattingUtils.format_service_state(ServiceStatus.UNKNOWN) == "[blue]UNKNOWN[/blue]"

    def test_describe_whitelist(self):
        assert FormattingUtils.describe_whitelist(StateSnapshot(), NOW) == "No active whitelist"

        active = StateSnapshot(whitelist_ip='203.0.113.7', expires_unix=NOW + 300)
        assert FormattingUtils.describe_whitelist(active, NOW) == "203.0.113.7 (expires in 5m)"

        lapsed = StateSnapshot(whitelist_ip='203.0.113.7', expires_unix=NOW - 1)
        assert FormattingUtils.describe_whitelist(lapsed, NOW) == "203.0.113.7 (expired)"

    def test_describe_next_knock(self):
        assert FormattingUtils.describe_next_knock(StateSnapshot(), NOW) == "No scheduled knock"

        upcoming = StateSnapshot(next_at_unix=NOW + 120, cadence_source=CadenceSource.TTL)
        assert FormattingUtils.describe_next_knock(upcoming, NOW) == "Next knock in 2m (based on TTL)"

        overdue = StateSnapshot(next_at_unix=NOW - 60)
        assert FormattingUtils.describe_next_knock(overdue, NOW).startswith("Next knock: ")

    @pytest.mark.parametrize("event, expected", [
        (Event(kind=EventKind.WHITELIST_EXPIRED), "WhitelistExpired: Whitelist expired"),
        (Event(kind=EventKind.KNOCK_TRIGGERED, data={'trigger_source': 'manual', 'result': 'ok'}),
         "KnockTriggered: Knock triggered by manual: ok"),
        (Event(kind=EventKind.ERROR, message='Knock failed'), "Error: Knock failed"),
        (Event(kind=EventKind.SERVICE_STATE, data={'service_state': ServiceStatus.STOPPED}),
         "ServiceState: Service stopped"),
        (Event(kind=EventKind.STATUS_SNAPSHOT), "StatusSnapshot: Status snapshot"),
    ])
    def test_format_event(self, event, expected):
        assert FormattingUtils.format_event(event) == expected

    def test_snapshot_lines(self):
        state = StateSnapshot(service_state=ServiceStatus.RUNNING, version='1.4.0')
        lines = FormattingUtils.snapshot_lines(state, NOW)

        assert list(lines) == ['Service', 'Whitelist', 'Schedule']
        assert lines['Service'] == "running (v1.4.0)"
        assert lines['Whitelist'] == "No active whitelist"

    def test_format_json(self):
        assert json.loads(FormattingUtils.format_json({'a': 1})) == {'a': 1}
