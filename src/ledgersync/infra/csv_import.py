"""CsvImporter — all-or-nothing parsing of an uploaded CSV export."""

import csv
import io
import logging
from typing import Any

from ledgersync.domain.models.sync import FileImportResult
from ledgersync.engine.aggregate import SyncResultAggregator
from ledgersync.engine.context import SyncContext
from ledgersync.exceptions import UnsupportedFileError
from ledgersync.parser.registry import ParserRegistry

logger = logging.getLogger(__name__)


def split_rows(text: str) -> list[list[str]]:
    """CSV text into rows of columns, blank lines dropped."""
    reader = csv.reader(io.StringIO(text.strip()))
    return [row for row in reader if any(column.strip() for column in row)]


class CsvImporter:
    """Resolve the parser from the header once, then parse every row.

    Any bad row aborts the whole import with ``ParseError`` naming the
    1-based row number, so a file never produces a partial ledger.
    """

    def __init__(self, registry: ParserRegistry) -> None:
        self._registry = registry

    async def parse(
        self,
        text: str,
        file_import_id: str,
        ctx: SyncContext,
        parser_context: dict[str, Any] | None = None,
    ) -> FileImportResult:
        await ctx.report("Extracting rows...")
        rows = split_rows(text)
        if not rows:
            raise UnsupportedFileError("File import unsupported, the file is empty")

        header, records = rows[0], rows[1:]
        parser = self._registry.for_header(header)

        await ctx.report(f"Parsing {len(records)} rows")
        aggregator = SyncResultAggregator()
        await aggregator.parse_all(ctx, parser, records, file_import_id, parser_context, fatal=True)

        await ctx.report("Extracting transactions", 50)
        result = aggregator.build(until=aggregator.last_timestamp)

        metadata = {
            "parser_id": parser.PARSER_ID,
            "platform": parser.PLATFORM or (parser_context or {}).get("platform", ""),
            "rows": result.rows,
            "logs": len(result.log_map),
            "transactions": len(result.tx_map),
            "asset_ids": list(result.asset_map),
            "wallets": list(result.wallet_map),
            "operations": list(result.operation_map),
        }
        logger.info(
            "Imported %s with %s: %d rows, %d logs, %d transactions",
            file_import_id, parser.PARSER_ID, result.rows, len(result.log_map), len(result.tx_map),
        )
        await ctx.report(f"Parsed {result.rows} rows", 100)
        return FileImportResult(
            logs=list(result.log_map.values()),
            transactions=list(result.tx_map.values()),
            metadata=metadata,
        )
