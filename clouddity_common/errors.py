"""
Error taxonomy for cluster management.

Every failable operation raises one of these. No layer below the CLI
logs-and-continues; the top-level caller decides what to do.
"""

from typing import Any


class ClouddityError(Exception):
    """Base class for all errors raised by clouddity."""


class ConfigurationError(ClouddityError):
    """
    Malformed or missing configuration.

    Raised synchronously before any I/O is attempted.
    """


class ProviderError(ClouddityError):
    """A cloud provider call failed (network, auth or provider-side error)."""


class ReconciliationError(ClouddityError):
    """A live resource could not be matched to its declared definition."""


class IterationError(ClouddityError):
    """
    A per-record operation failed during sequential execution.

    Carries the record that failed and the original exception as ``cause``.
    """

    def __init__(self, record: Any, cause: BaseException):
        super().__init__(f"Operation failed on {record}: {cause}")
        self.record = record
        self.cause = cause


def raise_for_error(error: BaseException | None) -> None:
    """Raise ``error`` if it is not None (for callers preferring exceptions)."""
    if error is not None:
        raise error
