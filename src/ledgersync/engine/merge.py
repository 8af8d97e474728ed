"""Merge/dedup engine — reconcile audit logs from overlapping fetches into one ledger."""

import logging
from collections.abc import Iterable
from decimal import Decimal, InvalidOperation

from ledgersync.domain.assets import WRAPPED_NATIVE
from ledgersync.domain.enums import AuditLogOperation, TransactionType
from ledgersync.domain.models.ledger import AuditLog, ImportIndex, Transaction
from ledgersync.exceptions import DataIntegrityError
from ledgersync.parser.utils.amounts import format_decimal, negate

logger = logging.getLogger(__name__)


def ledger_order(log: AuditLog) -> tuple[int, ImportIndex, str]:
    """Canonical ledger order used by every downstream consumer."""
    return log.timestamp, log.import_index, log.id


def merge_audit_logs(logs: Iterable[AuditLog]) -> list[AuditLog]:
    """Deduplicate by id, apply wrapped-native corrections, sort canonically.

    Idempotent and independent of input order: ``merge(a + a) == merge(a)``
    and any permutation of the input yields the same list.
    """
    by_id: dict[str, AuditLog] = {}
    skipped = 0

    for log in logs:
        try:
            _check_integrity(log)
        except DataIntegrityError as exc:
            skipped += 1
            logger.warning("Skipping audit log: %s", exc)
            continue

        current = by_id.get(log.id)
        if current is None or _preference(log) > _preference(current):
            by_id[log.id] = log

    if skipped:
        logger.warning("Skipped %d malformed audit logs during merge", skipped)

    merged = list(by_id.values())
    merged.extend(synthesize_unwrap_legs(merged))
    merged.sort(key=ledger_order)
    return merged


def _check_integrity(log: AuditLog) -> None:
    if not isinstance(log.id, str) or not log.id.strip():
        raise DataIntegrityError(f"empty id at {log.platform} index {log.import_index}")
    try:
        Decimal(log.change)
    except (InvalidOperation, TypeError) as exc:
        raise DataIntegrityError(f"{log.id} has a non-decimal change {log.change!r}") from exc


def _preference(log: AuditLog) -> tuple[int, str]:
    # Later windows win; equal timestamps resolve on the serialized record so
    # the outcome never depends on arrival order.
    return log.timestamp, log.model_dump_json()


def _unwrap_leg_id(log: AuditLog) -> str:
    return f"{log.tx_id}_WETH_{log.import_index.source_index}"


def synthesize_unwrap_legs(logs: list[AuditLog]) -> list[AuditLog]:
    """Add the WETH withdraw leg an internal-tx unwrap never shows.

    An internal transaction that pays native ETH out of the canonical WETH
    contract is an unwrap: the matching WETH burn does not appear in the
    token-transfer export, so it is synthesized here.
    """
    existing = {log.id for log in logs}
    legs: list[AuditLog] = []

    for log in logs:
        wrapped = WRAPPED_NATIVE.get(log.platform)
        if (
            wrapped is None
            or log.tx_id is None
            or log.operation != AuditLogOperation.DEPOSIT
            or log.counterparty != wrapped.contract
            or log.asset_id != wrapped.native_asset_id
        ):
            continue

        leg_id = _unwrap_leg_id(log)
        if leg_id in existing:
            continue

        existing.add(leg_id)
        legs.append(AuditLog(
            id=leg_id,
            import_index=log.import_index.next_leg(),
            asset_id=wrapped.wrapped_asset_id,
            wallet=log.wallet,
            change=negate(log.amount),
            operation=AuditLogOperation.WITHDRAW,
            timestamp=log.timestamp,
            platform=log.platform,
            tx_id=log.tx_id,
            connection_id=log.connection_id,
            file_import_id=log.file_import_id,
        ))

    return legs


def reclassify_unwraps(transactions: Iterable[Transaction], logs: Iterable[AuditLog]) -> list[Transaction]:
    """Turn transactions that carry a synthesized WETH leg into ``Unwrap``."""
    unwrap_legs: dict[str, AuditLog] = {}
    for log in logs:
        wrapped = WRAPPED_NATIVE.get(log.platform)
        if (
            wrapped is not None
            and log.tx_id is not None
            and log.operation == AuditLogOperation.WITHDRAW
            and log.asset_id == wrapped.wrapped_asset_id
            and log.id == _unwrap_leg_id(log)
        ):
            unwrap_legs[log.tx_id] = log

    result: list[Transaction] = []
    for tx in transactions:
        leg = unwrap_legs.get(tx.id)
        if leg is not None and tx.type != TransactionType.UNWRAP:
            tx = tx.model_copy(update={
                "type": TransactionType.UNWRAP,
                "outgoing": format_decimal(abs(leg.amount)),
                "outgoing_asset": leg.asset_id,
            })
        result.append(tx)
    return result
