from typing import Any, Optional

from sqlalchemy import JSON, BigInteger, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ledgersync.db.session import Base, TimestampMixin


class AuditLogRecord(TimestampMixin, Base):
    """Persisted audit log. Keyed by its deterministic id so re-syncs overwrite."""

    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    source_index: Mapped[int] = mapped_column(Integer)
    leg: Mapped[int] = mapped_column(Integer, default=0)
    asset_id: Mapped[str] = mapped_column(String(255), index=True)
    wallet: Mapped[str] = mapped_column(String(255), index=True)
    change: Mapped[str] = mapped_column(String(100))
    operation: Mapped[str] = mapped_column(String(50))
    timestamp: Mapped[int] = mapped_column(BigInteger, index=True)
    platform: Mapped[str] = mapped_column(String(50))
    tx_id: Mapped[Optional[str]] = mapped_column(String(255), default=None, index=True)
    connection_id: Mapped[Optional[str]] = mapped_column(String(64), default=None, index=True)
    file_import_id: Mapped[Optional[str]] = mapped_column(String(64), default=None, index=True)
    counterparty: Mapped[Optional[str]] = mapped_column(String(100), default=None)
    source: Mapped[str] = mapped_column(String(20))


class LedgerTransactionRecord(TimestampMixin, Base):
    """Persisted transaction, keyed by the id its audit logs carry as ``tx_id``."""

    __tablename__ = "ledger_transactions"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    type: Mapped[str] = mapped_column(String(20))
    timestamp: Mapped[int] = mapped_column(BigInteger, index=True)
    source_index: Mapped[int] = mapped_column(Integer)
    platform: Mapped[str] = mapped_column(String(50))
    wallet: Mapped[str] = mapped_column(String(255))
    incoming: Mapped[Optional[str]] = mapped_column(String(100), default=None)
    incoming_asset: Mapped[Optional[str]] = mapped_column(String(255), default=None)
    outgoing: Mapped[Optional[str]] = mapped_column(String(100), default=None)
    outgoing_asset: Mapped[Optional[str]] = mapped_column(String(255), default=None)
    fee: Mapped[Optional[str]] = mapped_column(String(100), default=None)
    fee_asset: Mapped[Optional[str]] = mapped_column(String(255), default=None)
    price: Mapped[Optional[str]] = mapped_column(String(100), default=None)
    meta: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    connection_id: Mapped[Optional[str]] = mapped_column(String(64), default=None, index=True)
    file_import_id: Mapped[Optional[str]] = mapped_column(String(64), default=None, index=True)
    source: Mapped[str] = mapped_column(String(20))
