"""
Error taxonomy for trigger polling.

PreconditionError and MalformedSnapshotError can be raised by the pure core;
FetchError belongs to fetchers and is retried by the poll driver.
"No change" is never an error.
"""


class TriggerError(Exception):
    """Base class for every trigger polling failure."""


class PreconditionError(TriggerError):
    """A required scope or parameter is missing or invalid. User-fixable, no retry."""


class FetchError(TriggerError):
    """Transient network, auth or remote failure while fetching a snapshot."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedSnapshotError(TriggerError):
    """Upstream snapshot has a shape that cannot be normalized. Soft failure."""


class CursorVersionError(TriggerError):
    """Persisted cursor was written by an unknown schema version."""
