from typing import Any, Optional

from sqlalchemy import JSON, BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from ledgersync.db.session import Base, TimestampMixin, UUIDPrimaryKey
from ledgersync.domain.enums import SyncStatus


class FileImport(UUIDPrimaryKey, TimestampMixin, Base):
    """An uploaded CSV export and the summary of what it produced."""

    __tablename__ = "file_imports"

    name: Mapped[str] = mapped_column(String(255))
    size: Mapped[int] = mapped_column(BigInteger, default=0)
    status: Mapped[str] = mapped_column(String(20), default=SyncStatus.IDLE.value)
    parser_id: Mapped[Optional[str]] = mapped_column(String(100), default=None)
    meta: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    error: Mapped[Optional[str]] = mapped_column(String(1000), default=None)
