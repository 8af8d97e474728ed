"""Base parser interfaces."""

from abc import ABC, abstractmethod
from typing import Any, ClassVar

from ledgersync.domain.models.ledger import ParserResult
from ledgersync.exceptions import ConfigurationError, ParseError


class Parser(ABC):
    """Pure function from one raw source record to canonical ledger entities.

    Contract: deterministic ids, legs of one record share the source index
    with increasing leg numbers in economic order, and malformed input raises
    ``ParseError`` instead of returning a partial result.
    """

    PARSER_ID: ClassVar[str] = "base"
    PLATFORM: ClassVar[str] = ""
    REQUIREMENTS: ClassVar[tuple[str, ...]] = ()

    @abstractmethod
    def parse(self, raw: Any, index: int, import_id: str, context: dict[str, Any]) -> ParserResult:
        """Normalize ``raw`` (the ``index``-th record of its source)."""

    def __call__(
        self,
        raw: Any,
        index: int,
        import_id: str,
        context: dict[str, Any] | None = None,
    ) -> ParserResult:
        context = context or {}
        missing = [key for key in self.REQUIREMENTS if not context.get(key)]
        if missing:
            raise ConfigurationError(f"'{missing[0]}' is required for {self.PARSER_ID} imports")
        try:
            return self.parse(raw, index, import_id, context)
        except ParseError:
            raise
        except (KeyError, IndexError, TypeError, ValueError, ArithmeticError) as exc:
            raise ParseError(f"{self.PARSER_ID}: {exc!r}") from exc


class CsvParser(Parser):
    """Parser for one CSV export format, identified by its header line(s)."""

    HEADERS: ClassVar[tuple[str, ...]] = ()
    COLUMNS: ClassVar[int | None] = None

    def columns(self, row: list[str]) -> list[str]:
        if self.COLUMNS is not None and len(row) != self.COLUMNS:
            raise ParseError(f"Invalid number of columns: expected {self.COLUMNS}, received {len(row)}")
        return [column.strip() for column in row]
