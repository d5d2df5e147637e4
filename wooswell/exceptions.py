"""Exception classes for the WooCommerce to Swell migration toolkit."""

from typing import Any, Optional


class MigrationError(Exception):
    """Base exception for migration errors."""


class ConfigurationError(MigrationError):
    """Raised when a required credential, directory or setting is missing."""


class RetrievalError(MigrationError):
    """Raised when a page of records cannot be fetched from either platform."""


class WriteError(MigrationError):
    """Raised when a write call fails or returns an unusable response."""


class UnmappedStatusError(MigrationError):
    """Raised when a source order status has no target equivalent."""

    def __init__(self, status: Any):
        super().__init__(f"No Swell status mapping for WooCommerce order status {status!r}")
        self.status = status


class MigrationAbortedError(MigrationError):
    """
    Raised when a batched migration stops part-way.

    Carries the tally accumulated before the failure so callers can report
    what was already written.
    """

    def __init__(self, message: str, result: Any, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.result = result
        self.cause = cause
