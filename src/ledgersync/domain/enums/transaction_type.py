from enum import Enum


class TransactionType(str, Enum):
    """Classification of composite economic events."""

    BUY = "Buy"
    SELL = "Sell"
    SWAP = "Swap"
    DEPOSIT = "Deposit"
    WITHDRAW = "Withdraw"
    UNKNOWN = "Unknown"
    REWARD = "Reward"
    UNWRAP = "Unwrap"
    WRAP = "Wrap"
    APPROVE = "Approve"
    OTHER = "Other"
