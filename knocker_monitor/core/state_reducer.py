"""
State reduction for knocker-monitor.

The snapshot is derived solely by folding events, oldest first, through
:func:`reduce`.
"""

from dataclasses import replace
from typing import Callable, Dict, Iterable, Optional

from .events import Event, EventKind, ServiceStatus, StateSnapshot


def _service_state(snapshot: StateSnapshot, event: Event) -> StateSnapshot:
    return replace(
        snapshot,
        service_state=event.get('service_state', ServiceStatus.UNKNOWN),
        version=event.get('version'),
    )


def _status_snapshot(snapshot: StateSnapshot, event: Event) -> StateSnapshot:
    return replace(
        snapshot,
        whitelist_ip=event.get('whitelist_ip'),
        expires_unix=event.get('expires_unix'),
        ttl_sec=event.get('ttl_sec'),
        next_at_unix=event.get('next_at_unix'),
        cadence_source=event.get('cadence_source'),
    )


def _whitelist_applied(snapshot: StateSnapshot, event: Event) -> StateSnapshot:
    return replace(
        snapshot,
        whitelist_ip=event.get('whitelist_ip'),
        expires_unix=event.get('expires_unix'),
        ttl_sec=event.get('ttl_sec'),
    )


def _whitelist_expired(snapshot: StateSnapshot, event: Event) -> StateSnapshot:
    return replace(snapshot, whitelist_ip=None, expires_unix=None, ttl_sec=None)


def _next_knock_updated(snapshot: StateSnapshot, event: Event) -> StateSnapshot:
    return replace(snapshot, next_at_unix=event.get('next_at_unix'))


def _informational(snapshot: StateSnapshot, event: Event) -> StateSnapshot:
    return snapshot


_REDUCERS: Dict[EventKind, Callable[[StateSnapshot, Event], StateSnapshot]] = {
    EventKind.SERVICE_STATE: _service_state,
    EventKind.STATUS_SNAPSHOT: _status_snapshot,
    EventKind.WHITELIST_APPLIED: _whitelist_applied,
    EventKind.WHITELIST_EXPIRED: _whitelist_expired,
    EventKind.NEXT_KNOCK_UPDATED: _next_knock_updated,
    EventKind.KNOCK_TRIGGERED: _informational,
    EventKind.ERROR: _informational,
}

_missing = set(EventKind) - set(_REDUCERS)
if _missing:
    raise RuntimeError(f"No reducer for event kinds: {sorted(k.value for k in _missing)}")


def reduce(snapshot: StateSnapshot, event: Event) -> StateSnapshot:
    """
    Apply one event to a snapshot.

    Args:
        snapshot: Current snapshot (left untouched)
        event: Event to apply

    Returns:
        The next snapshot
    """
    return _REDUCERS[event.kind](snapshot, event)


def fold(events: Iterable[Event], initial: Optional[StateSnapshot] = None) -> StateSnapshot:
    """Apply events in order, starting from ``initial`` or an empty snapshot."""
    snapshot = initial if initial is not None else StateSnapshot()
    for event in events:
        snapshot = reduce(snapshot, event)
    return snapshot
