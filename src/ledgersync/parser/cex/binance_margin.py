"""Binance margin parsers — Trade, Loan, Repayment, Transfer.

Cross and isolated records share one shape; the wallet is read off the
record (``isIsolated`` / ``isolatedSymbol``), never off the context.
"""

from decimal import Decimal
from typing import Any

from ledgersync.domain.assets import exchange_asset_id
from ledgersync.domain.enums import AuditLogOperation
from ledgersync.domain.models.ledger import AuditLog, ImportIndex, ParserResult
from ledgersync.parser.base import Parser
from ledgersync.parser.cex.binance import PLATFORM, SPOT_WALLET, BinanceTradeParser
from ledgersync.parser.utils.amounts import format_decimal, negate, to_decimal
from ledgersync.parser.utils.ids import make_id
from ledgersync.parser.utils.timestamps import to_timestamp_ms

CROSS_MARGIN_WALLET = "Binance Cross Margin"
ISOLATED_MARGIN_WALLET = "Binance Isolated Margin"

ACCOUNT_WALLETS = {
    "SPOT": SPOT_WALLET,
    "CROSS_MARGIN": CROSS_MARGIN_WALLET,
    "ISOLATED_MARGIN": ISOLATED_MARGIN_WALLET,
}


def margin_wallet(isolated: object) -> str:
    return ISOLATED_MARGIN_WALLET if isolated else CROSS_MARGIN_WALLET


def account_wallet(account: str) -> str:
    """Wallet label of a Binance account type such as ``CROSS_MARGIN``."""
    return ACCOUNT_WALLETS.get(account) or f"Binance {account.replace('_', ' ').title()}"


def _failed(raw: dict) -> bool:
    return str(raw.get("status", "")).upper() == "FAILED"


class BinanceMarginTradeParser(BinanceTradeParser):
    """Parse a ``/sapi/v1/margin/myTrades`` record.

    Margin fills carry no ``quoteQty``; the quote side is ``qty * price``.
    """

    PARSER_ID = "binance-margin-trade"

    def wallet(self, raw: dict, context: dict[str, Any]) -> str:
        return margin_wallet(raw.get("isIsolated"))

    def quote_qty(self, raw: dict, qty: Decimal) -> Decimal:
        return qty * to_decimal(raw["price"])

    def tx_id(self, raw: dict, import_id: str) -> str:
        return make_id(import_id, "margin", raw["symbol"], raw["id"]) + "_TX"


class _BorrowRepayParser(Parser):
    PLATFORM = PLATFORM
    OPERATION: AuditLogOperation
    SUFFIX: str

    def change(self, raw: dict) -> str:
        raise NotImplementedError

    def parse(self, raw: dict, index: int, import_id: str, context: dict[str, Any]) -> ParserResult:
        if _failed(raw):
            return ParserResult()

        timestamp = to_timestamp_ms(raw["timestamp"])
        asset_id = exchange_asset_id(PLATFORM, raw["asset"])
        tx_id = make_id(import_id, self.SUFFIX, raw["txId"]) + "_TX"

        log = AuditLog(
            id=f"{tx_id}_{self.SUFFIX}",
            import_index=ImportIndex(index),
            asset_id=asset_id,
            wallet=margin_wallet(raw.get("isolatedSymbol")),
            change=self.change(raw),
            operation=self.OPERATION,
            timestamp=timestamp,
            platform=PLATFORM,
            tx_id=tx_id,
            connection_id=import_id,
        )
        return ParserResult(logs=[log])


class BinanceMarginLoanParser(_BorrowRepayParser):
    """Parse a ``BORROW`` record: the principal enters the margin wallet."""

    PARSER_ID = "binance-margin-loan"
    OPERATION = AuditLogOperation.MARGIN_LOAN
    SUFFIX = "LOAN"

    def change(self, raw: dict) -> str:
        return format_decimal(to_decimal(raw["principal"]))


class BinanceMarginRepaymentParser(_BorrowRepayParser):
    """Parse a ``REPAY`` record: ``amount`` is principal plus interest."""

    PARSER_ID = "binance-margin-repayment"
    OPERATION = AuditLogOperation.MARGIN_REPAYMENT
    SUFFIX = "REPAYMENT"

    def change(self, raw: dict) -> str:
        return negate(to_decimal(raw["amount"]))


class BinanceMarginTransferParser(Parser):
    """Parse a ``/sapi/v1/margin/transfer`` record into out and in legs."""

    PARSER_ID = "binance-margin-transfer"
    PLATFORM = PLATFORM

    def parse(self, raw: dict, index: int, import_id: str, context: dict[str, Any]) -> ParserResult:
        amount = to_decimal(raw["amount"])
        if amount == 0 or _failed(raw):
            return ParserResult()

        timestamp = to_timestamp_ms(raw["timestamp"])
        asset_id = exchange_asset_id(PLATFORM, raw["asset"])
        tx_id = make_id(import_id, "Transfer", raw["txId"]) + "_TX"
        index_key = ImportIndex(index)

        def leg(suffix: str, account: str, change: str, key: ImportIndex) -> AuditLog:
            return AuditLog(
                id=f"{tx_id}_{suffix}",
                import_index=key,
                asset_id=asset_id,
                wallet=account_wallet(account),
                change=change,
                operation=AuditLogOperation.TRANSFER,
                timestamp=timestamp,
                platform=PLATFORM,
                tx_id=tx_id,
                connection_id=import_id,
            )

        logs = [
            leg("TRANSFER_FROM", raw["transFrom"], negate(amount), index_key),
            leg("TRANSFER_TO", raw["transTo"], format_decimal(amount), index_key.next_leg()),
        ]
        return ParserResult(logs=logs)
