"""Exception hierarchy for ledger sync and normalization."""

from __future__ import annotations

from typing import Any


class LedgerSyncError(Exception):
    """Base class for all ledgersync errors."""


class ConfigurationError(LedgerSyncError):
    """A connection or import is missing something it needs to run."""


class ParseError(LedgerSyncError):
    """A raw record could not be normalized.

    Fatal for file imports (the whole file is rejected), skipped and reported
    for API-sourced windows.
    """

    def __init__(self, message: str, row: int | None = None) -> None:
        self.row = row
        if row is not None:
            message = f"Cannot parse row {row}: {message}"
        super().__init__(message)


class UnsupportedFileError(ParseError):
    """No parser is registered for the CSV header."""


class DataIntegrityError(LedgerSyncError):
    """A parsed record violates the ledger contract (e.g. empty id)."""


class ExternalServiceError(LedgerSyncError):
    """An upstream API returned an error payload."""


class FetchError(ExternalServiceError):
    """Transient upstream failure (timeout, transport error, 5xx)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class RateLimitError(ExternalServiceError):
    """Upstream rate limit hit (HTTP 429/418). Never retried automatically."""

    def __init__(
        self,
        message: str,
        status_code: int = 429,
        used_weight: str | None = None,
        retry_after: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.used_weight = used_weight
        self.retry_after = retry_after
        details = []
        if used_weight is not None:
            details.append(f"weight used: {used_weight}")
        if retry_after is not None:
            details.append(f"retry after: {retry_after}s")
        if details:
            message = f"{message} ({', '.join(details)})"
        super().__init__(message)


class SyncCancelledError(LedgerSyncError):
    """The sync was cancelled; carries whatever was fetched before that."""

    def __init__(self, message: str = "Sync cancelled", partial: Any = None) -> None:
        self.partial = partial
        super().__init__(message)
