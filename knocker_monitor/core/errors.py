"""
Error types for knocker-monitor.

None of these are fatal to the process: callers skip, retry or degrade.
"""


class KnockerMonitorError(Exception):
    """Base exception for knocker-monitor errors."""
    pass


class MalformedRecord(KnockerMonitorError):
    """Raised when a journal record cannot be read as structured data."""
    pass


class SchemaVersionMismatch(KnockerMonitorError):
    """Diagnostic for a record advertising an unexpected schema version."""

    def __init__(self, found, expected: str):
        self.found = found
        self.expected = expected
        super().__init__(f"Unknown Knocker schema version: {found!r} (expected {expected!r})")


class StreamOpenFailure(KnockerMonitorError):
    """Raised when the live journal stream cannot be opened."""
    pass


class StreamReadFailure(KnockerMonitorError):
    """Raised when reading from an open journal stream fails."""
    pass


class QueryFailure(KnockerMonitorError):
    """Raised when the backlog query cannot be completed."""
    pass
