from ledgersync.db.repos.connection_repo import ConnectionRepo
from ledgersync.db.repos.file_import_repo import FileImportRepo
from ledgersync.db.repos.ledger_repo import LedgerRepo

__all__ = [
    "ConnectionRepo",
    "FileImportRepo",
    "LedgerRepo",
]
