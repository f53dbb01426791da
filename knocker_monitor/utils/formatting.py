"""
Formatting utilities module for knocker-monitor.

This module provides the display strings shared by the CLI and the UI.
"""

import json
import logging
import time
from datetime import datetime
from typing import Any, Dict, Optional

from ..config.settings import Settings
from ..core.events import CadenceSource, Event, EventKind, ServiceStatus, StateSnapshot


class FormattingUtils:
    """
    Utility class for formatting operations.
    """

    logger = logging.getLogger(__name__)

    @staticmethod
    def format_duration(seconds: int) -> str:
        """
        Format a duration compactly.

        Args:
            seconds: Duration in seconds

        Returns:
            String such as ``45s``, ``5m``, ``2h 3m`` or ``1d 4h``
        """
        seconds = max(0, int(seconds))
        if seconds < 60:
            return f"{seconds}s"
        if seconds < 3600:
            return f"{seconds // 60}m"
        if seconds < 86400:
            return f"{seconds // 3600}h {(seconds % 3600) // 60}m"
        return f"{seconds // 86400}d {(seconds % 86400) // 3600}h"

    @staticmethod
    def format_timestamp(unix_timestamp: Optional[int], format_str: str = "%Y-%m-%d %H:%M:%S") -> str:
        """
        Format a Unix timestamp in local time.

        Args:
            unix_timestamp: Seconds since the epoch
            format_str: strftime format

        Returns:
            Formatted timestamp, or ``N/A`` when missing
        """
        if not unix_timestamp:
            return "N/A"
        return datetime.fromtimestamp(unix_timestamp).strftime(format_str)

    @staticmethod
    def format_cadence_source(cadence_source: Optional[Any]) -> str:
        """
        Describe which mechanism scheduled the next knock.

        Args:
            cadence_source: CadenceSource or its string value

        Returns:
            Human readable description, empty when unknown
        """
        if not cadence_source:
            return ""
        value = cadence_source.value if isinstance(cadence_source, CadenceSource) else str(cadence_source)
        return dict(Settings.CADENCE_LABELS).get(value, value)

    @staticmethod
    def format_service_state(state: ServiceStatus) -> str:
        """Format a service state with Rich markup."""
        colors = {
            ServiceStatus.RUNNING: 'green',
            ServiceStatus.STOPPED: 'yellow',
            ServiceStatus.FAILED: 'red',
        }
        color = colors.get(state, 'blue')
        return f"[{color}]{state.value.upper()}[/{color}]"

    @staticmethod
    def describe_whitelist(state: StateSnapshot, now: Optional[float] = None) -> str:
        """
        Describe the active whitelist entry.

        Args:
            state: Current snapshot
            now: Current Unix time (defaults to the system clock)

        Returns:
            e.g. ``203.0.113.7 (expires in 5m)``
        """
        if not state.whitelist_ip or not state.expires_unix:
            return "No active whitelist"

        now = int(time.time() if now is None else now)
        remaining = state.expires_unix - now
        if remaining > 0:
            return f"{state.whitelist_ip} (expires in {FormattingUtils.format_duration(remaining)})"
        return f"{state.whitelist_ip} (expired)"

    @staticmethod
    def describe_next_knock(state: StateSnapshot, now: Optional[float] = None) -> str:
        """
        Describe when the next automatic knock fires.

        Args:
            state: Current snapshot
            now: Current Unix time (defaults to the system clock)

        Returns:
            e.g. ``Next knock in 2m (based on TTL)``
        """
        if not state.next_at_unix or state.next_at_unix <= 0:
            return "No scheduled knock"

        now = int(time.time() if now is None else now)
        source = FormattingUtils.format_cadence_source(state.cadence_source)
        source_info = f" ({source})" if source else ""

        time_until = state.next_at_unix - now
        if time_until > 0:
            return f"Next knock in {FormattingUtils.format_duration(time_until)}{source_info}"
        return f"Next knock: {FormattingUtils.format_timestamp(state.next_at_unix)}{source_info}"

    @staticmethod
    def format_event(event: Event) -> str:
        """
        Format an event as a single log line.

        Args:
            event: Event to format

        Returns:
            One-line description
        """
        kind = event.kind
        if kind == EventKind.WHITELIST_APPLIED:
            detail = (f"Whitelisted {event.get('whitelist_ip', '?')} until "
                      f"{FormattingUtils.format_timestamp(event.get('expires_unix'))}")
        elif kind == EventKind.WHITELIST_EXPIRED:
            detail = "Whitelist expired"
        elif kind == EventKind.NEXT_KNOCK_UPDATED:
            detail = f"Next knock at {FormattingUtils.format_timestamp(event.get('next_at_unix'))}"
        elif kind == EventKind.KNOCK_TRIGGERED:
            detail = f"Knock triggered by {event.get('trigger_source', 'unknown')}"
            if event.has('result'):
                detail += f": {event.get('result')}"
        elif kind == EventKind.ERROR:
            detail = event.get('error_msg') or event.message or "Unknown error"
            if event.has('error_code'):
                detail = f"[{event.get('error_code')}] {detail}"
        elif kind == EventKind.SERVICE_STATE:
            state = event.get('service_state', ServiceStatus.UNKNOWN)
            detail = f"Service {state.value}"
            if event.has('version'):
                detail += f" (v{event.get('version')})"
        else:
            detail = event.message or "Status snapshot"

        return f"{kind.value}: {detail}"

    @staticmethod
    def snapshot_lines(state: StateSnapshot, now: Optional[float] = None) -> Dict[str, str]:
        """
        Build the labelled lines shown for a snapshot.

        Returns:
            Ordered mapping of label to text
        """
        version = f" (v{state.version})" if state.version else ""
        return {
            'Service': f"{state.service_state.value}{version}",
            'Whitelist': FormattingUtils.describe_whitelist(state, now),
            'Schedule': FormattingUtils.describe_next_knock(state, now),
        }

    @staticmethod
    def format_json(data: Any, indent: int = 2) -> str:
        """
        Format data as indented JSON string.

        Args:
            data: Data to format as JSON
            indent: Number of spaces for indentation

        Returns:
            Formatted JSON string
        """
        try:
            return json.dumps(data, indent=indent, default=str, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            FormattingUtils.logger.error(f"Error formatting JSON: {str(e)}")
            return str(data)
