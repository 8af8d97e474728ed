"""Sync result aggregator — fold parser output into one SyncResult."""

import logging
from collections.abc import Iterable, Sequence
from typing import Any

from ledgersync.domain.enums import TransactionType
from ledgersync.domain.models.ledger import AuditLog, ParserResult, Transaction
from ledgersync.domain.models.sync import SyncResult, WindowFailure
from ledgersync.engine.context import SyncContext
from ledgersync.engine.extract import derive_price, extract_transactions
from ledgersync.engine.merge import merge_audit_logs, reclassify_unwraps
from ledgersync.exceptions import ParseError
from ledgersync.parser.base import Parser

logger = logging.getLogger(__name__)


def with_derived_price(tx: Transaction) -> Transaction:
    """Replace a source-reported swap price with the one implied by its legs."""
    if tx.type != TransactionType.SWAP:
        return tx
    price = derive_price(tx.incoming, tx.incoming_asset, tx.outgoing, tx.outgoing_asset)
    if price is None or price == tx.price:
        return tx
    return tx.model_copy(update={"price": price})


class SyncResultAggregator:
    """Collect parser output for one sync phase set, then merge and extract once."""

    def __init__(self) -> None:
        self._logs: list[AuditLog] = []
        self._transactions: dict[str, Transaction] = {}
        self.rows = 0

    @property
    def last_timestamp(self) -> int:
        return max((log.timestamp for log in self._logs), default=0)

    def add(self, parsed: ParserResult) -> None:
        self._logs.extend(parsed.logs)
        for tx in parsed.transactions:
            self._transactions[tx.id] = tx

    async def parse_all(
        self,
        ctx: SyncContext,
        parser: Parser,
        records: Sequence[Any],
        provenance_id: str,
        parser_context: dict[str, Any] | None = None,
        *,
        fatal: bool = False,
    ) -> None:
        """Parse every record. ``fatal`` aborts on the first bad row (file imports)."""
        self.rows += len(records)
        for index, record in enumerate(records):
            if ctx.debug and index and (index + 1) % 1000 == 0:
                await ctx.debug_report(f"Parsing row {index + 1}")
            try:
                parsed = parser(record, index, provenance_id, parser_context)
            except ParseError as exc:
                if fatal:
                    raise ParseError(str(exc), row=index + 1) from exc
                logger.warning("%s: error parsing row %d: %s", parser.PARSER_ID, index + 1, exc)
                await ctx.report(f"Error parsing row {index + 1}: {exc}")
                continue
            self.add(parsed)

    def build(
        self,
        *,
        until: int,
        cursor: int | None = None,
        cancelled: bool = False,
        failures: Iterable[WindowFailure] = (),
    ) -> SyncResult:
        """Merge, extract and summarize. ``new_cursor`` defaults to ``until + 1``."""
        merged = merge_audit_logs(self._logs)
        extraction = extract_transactions(merged, skip_tx_ids=self._transactions.keys())

        transactions = [with_derived_price(tx) for tx in self._transactions.values()]
        transactions.extend(extraction.transactions)
        transactions = reclassify_unwraps(transactions, extraction.logs)

        result = SyncResult(
            new_cursor=until + 1 if cursor is None else cursor,
            rows=self.rows,
            cancelled=cancelled,
            failures=list(failures),
        )
        for log in extraction.logs:
            result.log_map[log.id] = log
            result.asset_map[log.asset_id] = True
            result.wallet_map[log.wallet] = True
            result.operation_map[log.operation.value] = True
        for tx in transactions:
            result.tx_map[tx.id] = tx

        logger.info(
            "Aggregated %d rows into %d audit logs and %d transactions",
            result.rows, len(result.log_map), len(result.tx_map),
        )
        return result
