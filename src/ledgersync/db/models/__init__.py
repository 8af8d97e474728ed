from ledgersync.db.models.connection import Connection
from ledgersync.db.models.file_import import FileImport
from ledgersync.db.models.ledger import AuditLogRecord, LedgerTransactionRecord

__all__ = [
    "AuditLogRecord",
    "Connection",
    "FileImport",
    "LedgerTransactionRecord",
]
