from ledgersync.domain.enums.data_source import DataSource
from ledgersync.domain.enums.operation import REWARD_OPERATIONS, AuditLogOperation
from ledgersync.domain.enums.status import SyncStatus
from ledgersync.domain.enums.transaction_type import TransactionType

__all__ = [
    "AuditLogOperation",
    "DataSource",
    "REWARD_OPERATIONS",
    "SyncStatus",
    "TransactionType",
]
