"""Per-sync-run output types."""

from typing import Any

from pydantic import BaseModel

from ledgersync.domain.models.ledger import AuditLog, Transaction


class WindowFailure(BaseModel):
    """A window or index whose fetch was skipped because of a transient error."""

    label: str
    error: str
    start: int | None = None
    end: int | None = None
    index: int | None = None


class SyncResult(BaseModel):
    """Everything one sync run produced, keyed for idempotent persistence."""

    log_map: dict[str, AuditLog] = {}
    tx_map: dict[str, Transaction] = {}
    asset_map: dict[str, bool] = {}
    wallet_map: dict[str, bool] = {}
    operation_map: dict[str, bool] = {}
    rows: int = 0
    new_cursor: int
    cancelled: bool = False
    failures: list[WindowFailure] = []


class FileImportResult(BaseModel):
    """Output of an all-or-nothing CSV import."""

    logs: list[AuditLog]
    transactions: list[Transaction]
    metadata: dict[str, Any]
