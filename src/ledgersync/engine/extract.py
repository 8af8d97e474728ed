"""Transaction extraction — synthesize transactions from grouped audit logs."""

import logging
from collections.abc import Collection, Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from ledgersync.domain.enums import REWARD_OPERATIONS, AuditLogOperation, TransactionType
from ledgersync.domain.models.ledger import AuditLog, ImportIndex, Transaction
from ledgersync.parser.utils.amounts import format_decimal
from ledgersync.parser.utils.ids import make_id

logger = logging.getLogger(__name__)

# Most quote-like first: fiat, then stablecoins, then majors.
QUOTE_PRIORITY = [
    "USD", "EUR", "GBP", "TRY",
    "USDT", "USDC", "BUSD", "FDUSD", "TUSD", "DAI",
    "BTC", "ETH", "BNB",
]


@dataclass
class ExtractionResult:
    transactions: list[Transaction] = field(default_factory=list)
    logs: list[AuditLog] = field(default_factory=list)


def _symbol(asset_id: str | None) -> str:
    return (asset_id or "").rsplit(":", 1)[-1].upper()


def _quote_rank(asset_id: str | None) -> int:
    symbol = _symbol(asset_id)
    return QUOTE_PRIORITY.index(symbol) if symbol in QUOTE_PRIORITY else len(QUOTE_PRIORITY)


def derive_price(
    incoming: str | None,
    incoming_asset: str | None,
    outgoing: str | None,
    outgoing_asset: str | None,
) -> str | None:
    """Price of the base asset expressed in the quote asset.

    Only defined when both sides are present and non-zero. The quote side is
    the more quote-like asset; without a known quote, ``outgoing / incoming``.
    """
    if incoming is None or outgoing is None:
        return None
    incoming_amount, outgoing_amount = Decimal(incoming), Decimal(outgoing)
    if incoming_amount == 0 or outgoing_amount == 0:
        return None
    if _quote_rank(incoming_asset) < _quote_rank(outgoing_asset):
        return format_decimal(incoming_amount / outgoing_amount)
    return format_decimal(outgoing_amount / incoming_amount)


def record_tx_id(log: AuditLog) -> str:
    """Deterministic transaction id for a log whose parser did not assign one."""
    prefix = log.provenance_id or log.platform
    return make_id(prefix, log.platform, log.wallet, log.timestamp, log.import_index.source_index) + "_TX"


def extract_transactions(
    logs: Iterable[AuditLog],
    skip_tx_ids: Collection[str] = (),
) -> ExtractionResult:
    """Group logs by ``tx_id`` and derive one Transaction per recognizable group.

    Logs without a ``tx_id`` are grouped per raw record (provenance + source
    index) and, when a transaction is built for them, come back carrying the
    new id. Groups whose id is in ``skip_tx_ids`` already have a transaction.
    """
    logs = list(logs)
    groups: dict[str, list[AuditLog]] = {}
    for log in logs:
        groups.setdefault(log.tx_id or record_tx_id(log), []).append(log)

    result = ExtractionResult()
    assigned: set[str] = set()

    for tx_id, legs in groups.items():
        if tx_id in skip_tx_ids:
            continue
        tx = build_transaction(tx_id, legs)
        if tx is None:
            continue
        result.transactions.append(tx)
        assigned.add(tx_id)

    for log in logs:
        if log.tx_id is None and record_tx_id(log) in assigned:
            log = log.model_copy(update={"tx_id": record_tx_id(log)})
        result.logs.append(log)

    return result


def _sum_by_asset(legs: list[AuditLog]) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = {}
    for leg in legs:
        totals[leg.asset_id] = totals.get(leg.asset_id, Decimal(0)) + leg.amount
    return totals


def _single_side_type(operation: AuditLogOperation, incoming: bool) -> TransactionType:
    if operation in REWARD_OPERATIONS:
        return TransactionType.REWARD
    if operation == AuditLogOperation.DEPOSIT:
        return TransactionType.DEPOSIT
    if operation == AuditLogOperation.WITHDRAW:
        return TransactionType.WITHDRAW
    return TransactionType.DEPOSIT if incoming else TransactionType.WITHDRAW


def build_transaction(tx_id: str, legs: list[AuditLog]) -> Transaction | None:
    legs = sorted(legs, key=lambda leg: leg.import_index)
    first = legs[0]

    # zero legs stay in the ledger but never count as incoming/outgoing
    fee_legs = [leg for leg in legs if leg.operation == AuditLogOperation.FEE and leg.amount != 0]
    value_legs = [leg for leg in legs if leg.operation != AuditLogOperation.FEE and leg.amount != 0]

    outgoing = _sum_by_asset([leg for leg in value_legs if leg.amount < 0])
    incoming = _sum_by_asset([leg for leg in value_legs if leg.amount > 0])

    if len(outgoing) > 1 or len(incoming) > 1:
        logger.debug("Not extracting %s: %d outgoing / %d incoming assets", tx_id, len(outgoing), len(incoming))
        return None

    incoming_asset, incoming_amount = next(iter(incoming.items()), (None, None))
    outgoing_asset, outgoing_amount = next(iter(outgoing.items()), (None, None))

    if incoming_asset and outgoing_asset:
        if incoming_asset == outgoing_asset:
            return None
        tx_type = TransactionType.SWAP
    elif incoming_asset or outgoing_asset:
        tx_type = _single_side_type(value_legs[0].operation, incoming=incoming_asset is not None)
    else:
        return None

    fee = fee_asset = None
    if fee_legs:
        fee_asset = fee_legs[0].asset_id
        fee = format_decimal(abs(sum((leg.amount for leg in fee_legs if leg.asset_id == fee_asset), Decimal(0))))

    incoming_str = format_decimal(incoming_amount) if incoming_amount is not None else None
    outgoing_str = format_decimal(abs(outgoing_amount)) if outgoing_amount is not None else None
    price = (
        derive_price(incoming_str, incoming_asset, outgoing_str, outgoing_asset)
        if tx_type == TransactionType.SWAP
        else None
    )

    return Transaction(
        id=tx_id,
        type=tx_type,
        timestamp=first.timestamp,
        import_index=ImportIndex(first.import_index.source_index),
        platform=first.platform,
        wallet=first.wallet,
        incoming=incoming_str,
        incoming_asset=incoming_asset,
        outgoing=outgoing_str,
        outgoing_asset=outgoing_asset,
        fee=fee,
        fee_asset=fee_asset,
        price=price,
        connection_id=first.connection_id,
        file_import_id=first.file_import_id,
    )
