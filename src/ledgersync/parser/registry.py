"""ParserRegistry — CSV header / API record kind → parser lookup."""

import re

from ledgersync.exceptions import UnsupportedFileError
from ledgersync.parser.base import CsvParser, Parser

_ETHERSCAN_VALUE_COLUMN = re.compile(r"CurrentValue @ \$\d+(\.\d+)?/Eth")


def sanitize_header(header: str) -> str:
    """Normalize a CSV header line so that equivalent exports match one signature."""
    header = header.replace("\ufeff", "").replace("ï»¿", "")
    header = _ETHERSCAN_VALUE_COLUMN.sub("CurrentValue", header)
    return header.strip().strip('"')


def header_signature(columns: list[str]) -> str:
    """Canonical signature of a parsed header row (quotes/spacing removed)."""
    return ",".join(sanitize_header(column) for column in columns)


class ParserRegistry:
    """Closed set of parsers resolved once per import.

    CSV parsers are keyed by header signature, API parsers by record kind
    (e.g. ``("binance", "deposit")``).
    """

    def __init__(self) -> None:
        self._by_header: dict[str, CsvParser] = {}
        self._by_kind: dict[tuple[str, str], Parser] = {}

    def register_csv(self, parser: CsvParser) -> None:
        for header in parser.HEADERS:
            self._by_header[header_signature(header.replace('"', "").split(","))] = parser

    def register_record(self, platform: str, kind: str, parser: Parser) -> None:
        self._by_kind[(platform, kind)] = parser

    def for_header(self, columns: list[str]) -> CsvParser:
        signature = header_signature(columns)
        parser = self._by_header.get(signature)
        if parser is None:
            raise UnsupportedFileError(f"File import unsupported, unknown header: {signature}")
        return parser

    def for_record(self, platform: str, kind: str) -> Parser:
        return self._by_kind[(platform, kind)]


def build_default_registry() -> ParserRegistry:
    """Create a ParserRegistry with every shipped parser registered."""
    from ledgersync.parser.cex.binance import (
        BinanceDepositParser,
        BinanceRewardParser,
        BinanceTradeParser,
        BinanceWithdrawalParser,
    )
    from ledgersync.parser.cex.binance_csv import BinanceAccountStatementParser, BinanceSpotHistoryParser
    from ledgersync.parser.cex.binance_margin import (
        BinanceMarginLoanParser,
        BinanceMarginRepaymentParser,
        BinanceMarginTradeParser,
        BinanceMarginTransferParser,
    )
    from ledgersync.parser.evm.etherscan import EtherscanInternalParser

    registry = ParserRegistry()

    registry.register_record("binance", "deposit", BinanceDepositParser())
    registry.register_record("binance", "withdrawal", BinanceWithdrawalParser())
    registry.register_record("binance", "trade", BinanceTradeParser())
    registry.register_record("binance", "reward", BinanceRewardParser())
    registry.register_record("binance", "margin-trade", BinanceMarginTradeParser())
    registry.register_record("binance", "margin-loan", BinanceMarginLoanParser())
    registry.register_record("binance", "margin-repayment", BinanceMarginRepaymentParser())
    registry.register_record("binance", "margin-transfer", BinanceMarginTransferParser())

    registry.register_csv(BinanceAccountStatementParser())
    registry.register_csv(BinanceSpotHistoryParser())
    registry.register_csv(EtherscanInternalParser())

    return registry
