from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, BigInteger, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from ledgersync.db.session import Base, TimestampMixin, UUIDPrimaryKey
from ledgersync.domain.enums import SyncStatus


class Connection(UUIDPrimaryKey, TimestampMixin, Base):
    """An exchange API connection synced incrementally into the ledger."""

    __tablename__ = "connections"

    platform: Mapped[str] = mapped_column(String(50))
    label: Mapped[Optional[str]] = mapped_column(String(255), default=None)
    api_key_encrypted: Mapped[Optional[str]] = mapped_column(String(500), default=None)
    api_secret_encrypted: Mapped[Optional[str]] = mapped_column(String(500), default=None)
    options: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    # ms timestamp the next sync starts from; the only incremental-sync state
    cursor: Mapped[Optional[int]] = mapped_column(BigInteger, default=None)
    sync_status: Mapped[str] = mapped_column(String(20), default=SyncStatus.IDLE.value)
    last_error: Mapped[Optional[str]] = mapped_column(String(1000), default=None)
    last_synced_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), default=None)
