"""Binance CSV export parsers — Spot trade history and Account statement."""

import re
from decimal import Decimal
from typing import Any

from ledgersync.domain.assets import exchange_asset_id
from ledgersync.domain.enums import AuditLogOperation, TransactionType
from ledgersync.domain.models.ledger import AuditLog, ImportIndex, ParserResult, Transaction
from ledgersync.exceptions import ParseError
from ledgersync.parser.base import CsvParser
from ledgersync.parser.utils.amounts import format_decimal, negate, to_decimal
from ledgersync.parser.utils.ids import hash_string, make_id
from ledgersync.parser.utils.timestamps import parse_utc_datetime

PLATFORM = "binance"
SPOT_WALLET = "Binance Spot"

_AMOUNT_WITH_SYMBOL = re.compile(r"^([0-9.,]+)\s*([A-Za-z0-9]+)$")

# Applied in order to the raw "Operation" column.
OPERATION_RENAMES = (
    ("Transaction ", ""),
    ("Sold", "Sell"),
    ("Revenue", "Buy"),
    ("Spend", "Sell"),
    ("Fiat ", ""),
    ("Asset Conversion Transfer", "Conversion"),
    ("Binance Convert", "Conversion"),
    ("Crypto Box", "Reward"),
    ("Distribution", "Reward"),
    ("Insurance Fund Compensation", "Insurance Fund"),
    ("Withdrawal", "Withdraw"),
)

# Rows of one trade share UTC_Time and Account and are grouped into one transaction.
TRADE_OPERATIONS = frozenset({
    AuditLogOperation.BUY,
    AuditLogOperation.SELL,
    AuditLogOperation.FEE,
    AuditLogOperation.CONVERSION,
})


def split_amount(value: str) -> tuple[Decimal, str]:
    """Split ``"1.5BTC"`` into ``(Decimal("1.5"), "BTC")``."""
    match = _AMOUNT_WITH_SYMBOL.match(value.strip())
    if match is None:
        raise ParseError(f"Invalid amount with symbol: {value!r}")
    amount, symbol = match.groups()
    return to_decimal(amount), symbol


def row_id(import_id: str, index: int, row: list[str]) -> str:
    """Id of a CSV row: the same row at the same position always hashes the same."""
    line = ",".join(row)
    return f"{import_id}_{hash_string(f'{index}_{line}')}"


def normalize_operation(label: str) -> AuditLogOperation:
    for old, new in OPERATION_RENAMES:
        label = label.replace(old, new)
    if "Small Assets Exchange" in label:
        label = AuditLogOperation.CONVERSION.value
    elif "Transfer Between" in label:
        label = AuditLogOperation.TRANSFER.value
    return AuditLogOperation.from_label(label.strip())


class BinanceSpotHistoryParser(CsvParser):
    """Binance "Spot Trade History" export, one fill per row."""

    PARSER_ID = "binance-spot-history"
    PLATFORM = PLATFORM
    HEADERS = ('"Date(UTC)","Pair","Side","Price","Executed","Amount","Fee"',)
    COLUMNS = 7

    def parse(self, raw: list[str], index: int, import_id: str, context: dict[str, Any]) -> ParserResult:
        utc_time, pair, side, price, executed_col, amount_col, fee_col = self.columns(raw)

        timestamp = parse_utc_datetime(utc_time)
        executed, base_symbol = split_amount(executed_col)
        amount, quote_symbol = split_amount(amount_col)
        fee, fee_symbol = split_amount(fee_col)

        base_asset = exchange_asset_id(PLATFORM, base_symbol)
        quote_asset = exchange_asset_id(PLATFORM, quote_symbol)
        fee_asset = exchange_asset_id(PLATFORM, fee_symbol)

        side = side.upper()
        if side == "BUY":
            incoming, incoming_asset, outgoing, outgoing_asset = executed, base_asset, amount, quote_asset
        elif side == "SELL":
            incoming, incoming_asset, outgoing, outgoing_asset = amount, quote_asset, executed, base_asset
        else:
            raise ParseError(f"Unknown side: {side!r}")

        tx_id = row_id(import_id, index, raw)
        wallet = SPOT_WALLET

        def leg(number: int, asset_id: str, change: str, operation: AuditLogOperation) -> AuditLog:
            return AuditLog(
                id=f"{tx_id}_{number}",
                import_index=ImportIndex(index, number),
                asset_id=asset_id,
                wallet=wallet,
                change=change,
                operation=operation,
                timestamp=timestamp,
                platform=PLATFORM,
                tx_id=tx_id,
                file_import_id=import_id,
            )

        logs = [
            leg(0, outgoing_asset, negate(outgoing), AuditLogOperation.SELL),
            leg(1, incoming_asset, format_decimal(incoming), AuditLogOperation.BUY),
            leg(2, fee_asset, negate(fee), AuditLogOperation.FEE),
        ]
        tx = Transaction(
            id=tx_id,
            type=TransactionType.SWAP,
            timestamp=timestamp,
            import_index=ImportIndex(index),
            platform=PLATFORM,
            wallet=wallet,
            incoming=format_decimal(incoming) if incoming else None,
            incoming_asset=incoming_asset if incoming else None,
            outgoing=format_decimal(outgoing) if outgoing else None,
            outgoing_asset=outgoing_asset if outgoing else None,
            fee=format_decimal(fee) if fee else None,
            fee_asset=fee_asset if fee else None,
            price=price or None,
            metadata={"pair": {"symbol": pair, "baseAsset": base_symbol, "quoteAsset": quote_symbol}},
            file_import_id=import_id,
        )
        return ParserResult(logs=logs, transactions=[tx])


class BinanceAccountStatementParser(CsvParser):
    """Binance "Transaction History" account statement, one balance change per row."""

    PARSER_ID = "binance-account-statement"
    PLATFORM = PLATFORM
    HEADERS = (
        '"User_ID","UTC_Time","Account","Operation","Coin","Change","Remark"',
        "User_ID,UTC_Time,Account,Operation,Coin,Change,Remark",
    )
    COLUMNS = 7

    def parse(self, raw: list[str], index: int, import_id: str, context: dict[str, Any]) -> ParserResult:
        _user_id, utc_time, account, operation_label, coin, change_col, remark = self.columns(raw)
        if remark == "Duplicate":
            return ParserResult()

        operation = normalize_operation(operation_label)
        change = to_decimal(change_col)
        timestamp = parse_utc_datetime(utc_time)
        asset_id = exchange_asset_id(PLATFORM, coin)
        wallet = f"Binance {account}"
        log_id = row_id(import_id, index, raw)

        if operation in TRADE_OPERATIONS:
            tx_id = make_id(import_id, utc_time, account) + "_TRADE"
        else:
            tx_id = f"{log_id}_TX"

        log = AuditLog(
            id=log_id,
            import_index=ImportIndex(index),
            asset_id=asset_id,
            wallet=wallet,
            change=format_decimal(change),
            operation=operation,
            timestamp=timestamp,
            platform=PLATFORM,
            tx_id=tx_id,
            file_import_id=import_id,
        )

        transactions: list[Transaction] = []
        if change != 0 and operation in (AuditLogOperation.DEPOSIT, AuditLogOperation.REWARD):
            transactions.append(Transaction(
                id=tx_id,
                type=TransactionType(operation.value),
                timestamp=timestamp,
                import_index=ImportIndex(index),
                platform=PLATFORM,
                wallet=wallet,
                incoming=format_decimal(change),
                incoming_asset=asset_id,
                metadata={"remark": remark} if remark else {},
                file_import_id=import_id,
            ))
        elif change != 0 and operation == AuditLogOperation.WITHDRAW:
            transactions.append(Transaction(
                id=tx_id,
                type=TransactionType.WITHDRAW,
                timestamp=timestamp,
                import_index=ImportIndex(index),
                platform=PLATFORM,
                wallet=wallet,
                outgoing=format_decimal(abs(change)),
                outgoing_asset=asset_id,
                metadata={"remark": remark} if remark else {},
                file_import_id=import_id,
            ))

        return ParserResult(logs=[log], transactions=transactions)
