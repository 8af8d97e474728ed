from enum import Enum


class SyncStatus(str, Enum):
    """Connection / file import sync state."""

    IDLE = "IDLE"
    SYNCING = "SYNCING"
    SYNCED = "SYNCED"
    CANCELLED = "CANCELLED"
    ERROR = "ERROR"
