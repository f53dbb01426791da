"""
Core data models for knocker-monitor.

Defines the closed set of Knocker event kinds, the parsed event record and
the state snapshot derived from the event stream.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


class EventKind(str, Enum):
    """Event kinds emitted by knocker.service."""
    SERVICE_STATE = "ServiceState"
    STATUS_SNAPSHOT = "StatusSnapshot"
    WHITELIST_APPLIED = "WhitelistApplied"
    WHITELIST_EXPIRED = "WhitelistExpired"
    NEXT_KNOCK_UPDATED = "NextKnockUpdated"
    KNOCK_TRIGGERED = "KnockTriggered"
    ERROR = "Error"


class ServiceStatus(str, Enum):
    UNKNOWN = "unknown"
    STOPPED = "stopped"
    RUNNING = "running"
    FAILED = "failed"


class CadenceSource(str, Enum):
    """Mechanism that scheduled the next knock."""
    TTL = "ttl"
    TTL_RESPONSE = "ttl_response"
    CHECK_INTERVAL = "check_interval"


@dataclass(frozen=True)
class Event:
    """
    A single parsed Knocker event.

    ``data`` only holds the fields present in the journal record; a missing
    field is missing here too.
    """
    kind: EventKind
    message: str = ""
    data: Mapping[str, Any] = field(default_factory=dict)
    schema_version: Optional[str] = None
    cursor: Optional[str] = None
    timestamp_us: Optional[int] = None

    def __post_init__(self):
        # Freeze the payload so events can be shared between subscribers
        object.__setattr__(self, 'data', MappingProxyType(dict(self.data)))

    def get(self, name: str, default: Any = None) -> Any:
        """Return a payload field, or ``default`` when it is absent."""
        return self.data.get(name, default)

    def has(self, name: str) -> bool:
        return name in self.data

    def to_dict(self) -> Dict[str, Any]:
        """Convert the event to a plain dictionary for output."""
        payload = {}
        for key, value in self.data.items():
            payload[key] = value.value if isinstance(value, Enum) else value
        return {
            'kind': self.kind.value,
            'message': self.message,
            'data': payload,
            'schema_version': self.schema_version,
            'cursor': self.cursor,
            'timestamp_us': self.timestamp_us,
        }


@dataclass(frozen=True)
class StateSnapshot:
    """
    Current best-known state of the Knocker service.

    Instances are immutable; the monitor replaces its snapshot on every
    reduced event instead of mutating it.
    """
    whitelist_ip: Optional[str] = None
    expires_unix: Optional[int] = None
    ttl_sec: Optional[int] = None
    next_at_unix: Optional[int] = None
    cadence_source: Optional[CadenceSource] = None
    service_state: ServiceStatus = ServiceStatus.UNKNOWN
    version: Optional[str] = None

    @property
    def is_whitelisted(self) -> bool:
        return self.whitelist_ip is not None

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the snapshot to a dictionary of plain values.

        Returns:
            Dictionary suitable for JSON or YAML output
        """
        result = asdict(self)
        result['service_state'] = self.service_state.value
        if self.cadence_source is not None:
            result['cadence_source'] = self.cadence_source.value
        return result
