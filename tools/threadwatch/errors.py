"""Error taxonomy shared by the pipeline stages."""

from __future__ import annotations


class HarvesterError(Exception):
    """Base class for every error raised by threadwatch."""


class TransientError(HarvesterError):
    """Network failure or unexpected HTTP status; the current unit is skipped."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(HarvesterError):
    """The resource is gone (HTTP 404).  An expected terminal state."""


class ParseError(HarvesterError):
    """Malformed date or content; the affected unit is skipped."""


class StorageError(HarvesterError):
    """Disk write or permission failure."""


class InsufficientDataError(HarvesterError):
    """Thread selection could not fill every bucket quota."""

    def __init__(self, message: str, *, expected: int, actual: int) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class ConfigurationError(HarvesterError):
    """Missing required configuration; aborts the run."""
