"""Binance REST parsers — Deposit, Withdrawal, Trade, Reward."""

from decimal import Decimal
from typing import Any

from ledgersync.domain.assets import exchange_asset_id
from ledgersync.domain.enums import AuditLogOperation, TransactionType
from ledgersync.domain.models.ledger import AuditLog, ImportIndex, ParserResult, Transaction
from ledgersync.parser.base import Parser
from ledgersync.parser.utils.amounts import format_decimal, negate, to_decimal
from ledgersync.parser.utils.ids import make_id
from ledgersync.parser.utils.timestamps import parse_utc_datetime, to_timestamp_ms

PLATFORM = "binance"
SPOT_WALLET = "Binance Spot"


def _wallet(context: dict[str, Any]) -> str:
    return context.get("wallet") or SPOT_WALLET


class BinanceDepositParser(Parser):
    """Parse a ``/sapi/v1/capital/deposit/hisrec`` record."""

    PARSER_ID = "binance-deposit"
    PLATFORM = PLATFORM

    def parse(self, raw: dict, index: int, import_id: str, context: dict[str, Any]) -> ParserResult:
        amount = to_decimal(raw["amount"])
        if amount == 0:
            return ParserResult()

        timestamp = to_timestamp_ms(raw["insertTime"])
        asset_id = exchange_asset_id(PLATFORM, raw["coin"])
        wallet = _wallet(context)
        change = format_decimal(amount)
        tx_id = make_id(import_id, asset_id, "Deposit", raw.get("id") or raw.get("txId"), timestamp) + "_TX"

        log = AuditLog(
            id=f"{tx_id}_TRANSFER",
            import_index=ImportIndex(index),
            asset_id=asset_id,
            wallet=wallet,
            change=change,
            operation=AuditLogOperation.DEPOSIT,
            timestamp=timestamp,
            platform=PLATFORM,
            tx_id=tx_id,
            connection_id=import_id,
        )
        tx = Transaction(
            id=tx_id,
            type=TransactionType.DEPOSIT,
            timestamp=timestamp,
            import_index=ImportIndex(index),
            platform=PLATFORM,
            wallet=wallet,
            incoming=change,
            incoming_asset=asset_id,
            metadata={"txHash": raw.get("txId"), "network": raw.get("network")},
            connection_id=import_id,
        )
        return ParserResult(logs=[log], transactions=[tx])


class BinanceWithdrawalParser(Parser):
    """Parse a ``/sapi/v1/capital/withdraw/history`` record.

    The balance leaves the account including the network fee, so the
    outgoing amount is ``amount + transactionFee``.
    """

    PARSER_ID = "binance-withdrawal"
    PLATFORM = PLATFORM

    def parse(self, raw: dict, index: int, import_id: str, context: dict[str, Any]) -> ParserResult:
        amount = to_decimal(raw["amount"])
        if amount == 0:
            return ParserResult()

        timestamp = parse_utc_datetime(raw["applyTime"])
        asset_id = exchange_asset_id(PLATFORM, raw["coin"])
        wallet = _wallet(context)
        outgoing = amount + to_decimal(raw.get("transactionFee") or "0")
        tx_id = make_id(import_id, asset_id, "Withdraw", raw.get("id") or raw.get("txId"), timestamp) + "_TX"

        log = AuditLog(
            id=f"{tx_id}_TRANSFER",
            import_index=ImportIndex(index),
            asset_id=asset_id,
            wallet=wallet,
            change=negate(outgoing),
            operation=AuditLogOperation.WITHDRAW,
            timestamp=timestamp,
            platform=PLATFORM,
            tx_id=tx_id,
            connection_id=import_id,
        )
        tx = Transaction(
            id=tx_id,
            type=TransactionType.WITHDRAW,
            timestamp=timestamp,
            import_index=ImportIndex(index),
            platform=PLATFORM,
            wallet=wallet,
            outgoing=format_decimal(outgoing),
            outgoing_asset=asset_id,
            metadata={"txHash": raw.get("txId"), "network": raw.get("network")},
            connection_id=import_id,
        )
        return ParserResult(logs=[log], transactions=[tx])


class BinanceTradeParser(Parser):
    """Parse a ``/api/v3/myTrades`` record into sell, buy and fee legs.

    Emits logs only; the Swap is synthesized by transaction extraction.
    The connector enriches each record with ``baseAsset``/``quoteAsset``.
    """

    PARSER_ID = "binance-trade"
    PLATFORM = PLATFORM

    def wallet(self, raw: dict, context: dict[str, Any]) -> str:
        return _wallet(context)

    def quote_qty(self, raw: dict, qty: Decimal) -> Decimal:
        return to_decimal(raw["quoteQty"])

    def tx_id(self, raw: dict, import_id: str) -> str:
        return make_id(import_id, raw["symbol"], raw["id"]) + "_TX"

    def parse(self, raw: dict, index: int, import_id: str, context: dict[str, Any]) -> ParserResult:
        timestamp = to_timestamp_ms(raw["time"])
        wallet = self.wallet(raw, context)
        base_asset = exchange_asset_id(PLATFORM, raw["baseAsset"])
        quote_asset = exchange_asset_id(PLATFORM, raw["quoteAsset"])
        qty = to_decimal(raw["qty"])
        quote_qty = self.quote_qty(raw, qty)

        if raw["isBuyer"]:
            sold, sold_asset, bought, bought_asset = quote_qty, quote_asset, qty, base_asset
        else:
            sold, sold_asset, bought, bought_asset = qty, base_asset, quote_qty, quote_asset

        tx_id = self.tx_id(raw, import_id)
        index_key = ImportIndex(index)

        def leg(suffix: str, asset_id: str, change: str, operation: AuditLogOperation, key: ImportIndex) -> AuditLog:
            return AuditLog(
                id=f"{tx_id}_{suffix}",
                import_index=key,
                asset_id=asset_id,
                wallet=wallet,
                change=change,
                operation=operation,
                timestamp=timestamp,
                platform=PLATFORM,
                tx_id=tx_id,
                connection_id=import_id,
            )

        logs = [
            leg("SELL", sold_asset, negate(sold), AuditLogOperation.SELL, index_key),
            leg("BUY", bought_asset, format_decimal(bought), AuditLogOperation.BUY, index_key.next_leg()),
        ]

        commission = to_decimal(raw.get("commission") or "0")
        if commission != 0 and raw.get("commissionAsset"):
            fee_asset = exchange_asset_id(PLATFORM, raw["commissionAsset"])
            logs.append(leg("FEE", fee_asset, negate(commission), AuditLogOperation.FEE, logs[-1].import_index.next_leg()))

        return ParserResult(logs=logs)


class BinanceRewardParser(Parser):
    """Parse a Simple Earn rewards record (``amount`` or ``rewards`` field)."""

    PARSER_ID = "binance-reward"
    PLATFORM = PLATFORM

    def parse(self, raw: dict, index: int, import_id: str, context: dict[str, Any]) -> ParserResult:
        value = raw.get("amount") or raw.get("rewards")
        if value is None:
            raise ValueError("reward record has neither 'amount' nor 'rewards'")

        amount = to_decimal(value)
        timestamp = to_timestamp_ms(raw["time"])
        asset_id = exchange_asset_id(PLATFORM, raw["asset"])
        wallet = _wallet(context)
        position = raw.get("positionId") or raw.get("projectId") or raw.get("type")
        tx_id = make_id(import_id, asset_id, "Reward", position, timestamp) + "_TX"
        change = format_decimal(amount)

        log = AuditLog(
            id=f"{tx_id}_REWARD",
            import_index=ImportIndex(index),
            asset_id=asset_id,
            wallet=wallet,
            change=change,
            operation=AuditLogOperation.REWARD,
            timestamp=timestamp,
            platform=PLATFORM,
            tx_id=tx_id,
            connection_id=import_id,
        )
        if amount == 0:
            return ParserResult(logs=[log])

        tx = Transaction(
            id=tx_id,
            type=TransactionType.REWARD,
            timestamp=timestamp,
            import_index=ImportIndex(index),
            platform=PLATFORM,
            wallet=wallet,
            incoming=change,
            incoming_asset=asset_id,
            connection_id=import_id,
        )
        return ParserResult(logs=[log], transactions=[tx])
