from enum import Enum


class AuditLogOperation(str, Enum):
    """Taxonomy tag of an atomic balance change."""

    BUY = "Buy"
    SELL = "Sell"
    FEE = "Fee"
    DEPOSIT = "Deposit"
    WITHDRAW = "Withdraw"
    TRANSFER = "Transfer"
    REWARD = "Reward"
    CONVERSION = "Conversion"
    COMMISSION = "Commission"
    COMMISSION_REBATE = "Commission Rebate"
    API_REBATE = "API Rebate"
    REFERRER_REBATES = "Referrer Rebates"
    FUNDING_FEE = "Funding Fee"
    REALIZED_PNL = "Realized Profit and Loss"
    INSURANCE_FUND = "Insurance Fund"
    MARGIN_LOAN = "Margin Loan"
    MARGIN_REPAYMENT = "Margin Repayment"
    LIQUIDATION_REPAYMENT = "Liquidation Repayment"
    SMART_CONTRACT = "Smart Contract"
    AUTO_EXCHANGE = "Auto Exchange"
    MINT = "Mint"
    WRAP = "Wrap"
    UNKNOWN = "Unknown"

    @classmethod
    def from_label(cls, label: str) -> "AuditLogOperation":
        """Resolve a source label, falling back to UNKNOWN."""
        try:
            return cls(label)
        except ValueError:
            return cls.UNKNOWN


REWARD_OPERATIONS = frozenset({
    AuditLogOperation.REWARD,
    AuditLogOperation.COMMISSION_REBATE,
    AuditLogOperation.API_REBATE,
    AuditLogOperation.REFERRER_REBATES,
})
