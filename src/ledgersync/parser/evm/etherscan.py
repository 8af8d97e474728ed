"""Etherscan "Internal Transactions" CSV export parser."""

from typing import Any

from ledgersync.domain.assets import format_address, native_asset_id
from ledgersync.domain.enums import AuditLogOperation, TransactionType
from ledgersync.domain.models.ledger import AuditLog, ImportIndex, ParserResult, Transaction
from ledgersync.parser.base import CsvParser
from ledgersync.parser.utils.amounts import format_decimal, negate, to_decimal
from ledgersync.parser.utils.timestamps import parse_utc_datetime

_COLUMNS = (
    "Txhash", "Blockno", "UnixTimestamp", "DateTime (UTC)", "ParentTxFrom", "ParentTxTo",
    "ParentTxETH_Value", "From", "TxTo", "ContractAddress", "Value_IN(ETH)", "Value_OUT(ETH)",
    "CurrentValue", "Historical $Price/Eth", "Status", "ErrCode", "Type",
)


def _header(first_column: str) -> str:
    return ",".join(f'"{column}"' for column in (first_column, *_COLUMNS[1:]))


class EtherscanInternalParser(CsvParser):
    """Native-asset movements from contract calls, one internal transfer per row.

    Explorer exports are chain-agnostic, so the chain comes from the import
    context (``platform``). The ``From`` address is kept as ``counterparty``;
    internal transfers paid out by the chain's WETH contract are unwraps and
    get their WETH leg during merge.
    """

    PARSER_ID = "etherscan-internal"
    HEADERS = (_header("Txhash"), _header("Transaction Hash"))
    REQUIREMENTS = ("platform",)

    def parse(self, raw: list[str], index: int, import_id: str, context: dict[str, Any]) -> ParserResult:
        columns = self.columns(raw)
        platform = context["platform"]

        tx_hash = columns[0]
        timestamp = parse_utc_datetime(columns[3])
        parent_tx_from = format_address(columns[4])
        sender = format_address(columns[7])
        tx_to = format_address(columns[8])
        value_in = to_decimal(columns[10])
        value_out = to_decimal(columns[11])

        tx_id = f"{import_id}_{tx_hash}_INTERNAL_{index}"
        asset_id = native_asset_id(platform)
        wallet = parent_tx_from if value_in == 0 else tx_to

        if value_in != 0 and value_out == 0:
            operation = AuditLogOperation.DEPOSIT
        elif value_in == 0 and value_out == 0:
            operation = AuditLogOperation.SMART_CONTRACT
        else:
            operation = AuditLogOperation.WITHDRAW

        tx = Transaction(
            id=tx_id,
            type=TransactionType.UNKNOWN,
            timestamp=timestamp,
            import_index=ImportIndex(index),
            platform=platform,
            wallet=wallet,
            metadata={"txHash": tx_hash},
            file_import_id=import_id,
        )
        if operation == AuditLogOperation.SMART_CONTRACT:
            return ParserResult(transactions=[tx])

        if operation == AuditLogOperation.DEPOSIT:
            change = format_decimal(value_in)
            tx = tx.model_copy(update={
                "type": TransactionType.DEPOSIT, "incoming": change, "incoming_asset": asset_id,
            })
        else:
            change = negate(value_out)
            tx = tx.model_copy(update={
                "type": TransactionType.WITHDRAW, "outgoing": format_decimal(value_out), "outgoing_asset": asset_id,
            })

        log = AuditLog(
            id=f"{tx_id}_VALUE",
            import_index=ImportIndex(index),
            asset_id=asset_id,
            wallet=wallet,
            change=change,
            operation=operation,
            timestamp=timestamp,
            platform=platform,
            tx_id=tx_id,
            file_import_id=import_id,
            counterparty=sender or None,
        )
        return ParserResult(logs=[log], transactions=[tx])
