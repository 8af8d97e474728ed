"""Canonical ledger entities: audit logs and transactions."""

from decimal import Decimal
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict

from ledgersync.domain.enums import AuditLogOperation, TransactionType


class ImportIndex(NamedTuple):
    """Sortable position of a leg: source record index, then leg number.

    Legs produced from one raw record share ``source_index`` and carry
    strictly increasing ``leg`` values in economic order (outflow, inflow, fee).
    """

    source_index: int
    leg: int = 0

    def next_leg(self) -> "ImportIndex":
        return ImportIndex(self.source_index, self.leg + 1)

    def __str__(self) -> str:
        return f"{self.source_index}.{self.leg}"


class AuditLog(BaseModel):
    """An atomic, signed balance change for one asset in one wallet."""

    model_config = ConfigDict(frozen=True)

    id: str
    import_index: ImportIndex
    asset_id: str  # namespaced, e.g. "binance:BTC"
    wallet: str
    change: str  # signed decimal string, never a float
    operation: AuditLogOperation
    timestamp: int  # ms since epoch
    platform: str
    tx_id: str | None = None
    connection_id: str | None = None
    file_import_id: str | None = None
    counterparty: str | None = None  # on-chain "from" address, lowercased

    @property
    def amount(self) -> Decimal:
        return Decimal(self.change)

    @property
    def provenance_id(self) -> str:
        return self.connection_id or self.file_import_id or ""


class Transaction(BaseModel):
    """A composite economic event summarizing one or more audit logs.

    Amounts are decimal strings; ``None`` means "not applicable", zero legs
    are dropped rather than stored as "0".
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type: TransactionType
    timestamp: int
    import_index: ImportIndex
    platform: str
    wallet: str
    incoming: str | None = None
    incoming_asset: str | None = None
    outgoing: str | None = None
    outgoing_asset: str | None = None
    fee: str | None = None
    fee_asset: str | None = None
    price: str | None = None
    metadata: dict[str, Any] = {}
    connection_id: str | None = None
    file_import_id: str | None = None


class ParserResult(BaseModel):
    """Output of one parser call for one raw record."""

    logs: list[AuditLog] = []
    transactions: list[Transaction] = []
