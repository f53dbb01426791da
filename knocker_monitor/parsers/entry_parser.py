"""
Journal entry parser for knocker-monitor.

Converts one structured journal record written by knocker.service into a
typed :class:`~knocker_monitor.core.events.Event`.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Union

from .base_parser import BaseParser
from ..config.settings import Settings
from ..core.errors import SchemaVersionMismatch
from ..core.events import CadenceSource, Event, EventKind, ServiceStatus


EVENT_KEY = 'KNOCKER_EVENT'
SCHEMA_VERSION_KEY = 'KNOCKER_SCHEMA_VERSION'
MESSAGE_KEY = 'MESSAGE'
CURSOR_KEY = '__CURSOR'
REALTIME_KEY = '__REALTIME_TIMESTAMP'

TEXT_FIELDS = {
    'KNOCKER_VERSION': 'version',
    'KNOCKER_WHITELIST_IP': 'whitelist_ip',
    'KNOCKER_TRIGGER_SOURCE': 'trigger_source',
    'KNOCKER_RESULT': 'result',
    'KNOCKER_ERROR_CODE': 'error_code',
    'KNOCKER_ERROR_MSG': 'error_msg',
    'KNOCKER_CONTEXT': 'context',
    'KNOCKER_PROFILE': 'profile',
    'KNOCKER_PORTS': 'ports',
}

NUMERIC_FIELDS = {
    'KNOCKER_EXPIRES_UNIX': 'expires_unix',
    'KNOCKER_TTL_SEC': 'ttl_sec',
    'KNOCKER_NEXT_AT_UNIX': 'next_at_unix',
}

SERVICE_STATE_KEY = 'KNOCKER_SERVICE_STATE'
CADENCE_SOURCE_KEY = 'KNOCKER_CADENCE_SOURCE'

SERVICE_STATE_ALIASES = {
    'running': ServiceStatus.RUNNING,
    'started': ServiceStatus.RUNNING,
    'active': ServiceStatus.RUNNING,
    'stopped': ServiceStatus.STOPPED,
    'stopping': ServiceStatus.STOPPED,
    'inactive': ServiceStatus.STOPPED,
    'failed': ServiceStatus.FAILED,
}


class EntryParser(BaseParser):
    """
    Parser for Knocker journal entries.

    Records without a ``KNOCKER_EVENT`` field are not Knocker events and
    yield None. Records advertising another schema version are parsed on a
    best-effort basis after a warning.
    """

    def __init__(self, config=None, schema_version: Optional[str] = None):
        """
        Initialize the entry parser.

        Args:
            config: Application configuration (optional)
            schema_version: Schema version to expect; defaults to the
                configured or built-in version
        """
        super().__init__(config)
        self.logger = logging.getLogger(__name__)

        if schema_version is None and config is not None:
            schema_version = getattr(getattr(config, 'monitor', None), 'schema_version', None)
        self.schema_version = str(schema_version or Settings.SCHEMA_VERSION)

        # version -> number of records seen with it
        self.schema_mismatches: Dict[Any, int] = {}

    def parse(self, source: Union[str, bytes, Mapping[str, Any]]) -> Optional[Event]:
        """
        Parse one journal record.

        Args:
            source: JSON text line or decoded record mapping

        Returns:
            Parsed event, or None when the record is not a Knocker event

        Raises:
            MalformedRecord: If the record is not structured data
        """
        record = self.load_record(source)

        kind_name = self.safe_get_text(record, EVENT_KEY)
        if kind_name is None:
            return None

        try:
            kind = EventKind(kind_name)
        except ValueError:
            self.logger.debug(f"Ignoring unknown Knocker event kind: {kind_name}")
            return None

        version = self.safe_get_text(record, SCHEMA_VERSION_KEY)
        if version != self.schema_version:
            self._report_schema_mismatch(version)

        return Event(
            kind=kind,
            message=self.safe_get_text(record, MESSAGE_KEY) or '',
            data=self.extract_fields(record),
            schema_version=version,
            cursor=self.safe_get_text(record, CURSOR_KEY),
            timestamp_us=self.safe_parse_int(self.safe_get_text(record, REALTIME_KEY)),
        )

    def extract_fields(self, record: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Extract the event payload from a journal record.

        Args:
            record: Decoded journal record

        Returns:
            Dictionary containing only the fields present in the record
        """
        data: Dict[str, Any] = self.collect(record, TEXT_FIELDS)

        for wire_key, name in NUMERIC_FIELDS.items():
            raw = self.safe_get_text(record, wire_key)
            value = self.safe_parse_int(raw)
            if value is not None:
                data[name] = value
            elif raw is not None:
                self.logger.debug(f"Dropping non-numeric {wire_key}={raw!r}")

        state = self.safe_get_text(record, SERVICE_STATE_KEY)
        if state is not None:
            data['service_state'] = SERVICE_STATE_ALIASES.get(state.strip().lower(), ServiceStatus.UNKNOWN)

        cadence = self.safe_get_text(record, CADENCE_SOURCE_KEY)
        if cadence is not None:
            try:
                data['cadence_source'] = CadenceSource(cadence.strip().lower())
            except ValueError:
                self.logger.debug(f"Dropping unknown cadence source: {cadence}")

        return data

    def _report_schema_mismatch(self, version: Optional[str]):
        count = self.schema_mismatches.get(version, 0)
        self.schema_mismatches[version] = count + 1
        if count == 0:
            self.logger.warning(str(SchemaVersionMismatch(version, self.schema_version)))
