"""Timestamp helpers. All ledger timestamps are UTC milliseconds."""

from datetime import UTC, datetime

from ledgersync.exceptions import ParseError

SECOND_MS = 1000
DAY_MS = 86_400_000

_DATETIME_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S.%f", "%Y-%m-%d")


def floor_timestamp(timestamp: int, resolution_ms: int = SECOND_MS) -> int:
    return timestamp - timestamp % resolution_ms


def to_timestamp_ms(value: object, resolution_ms: int = SECOND_MS) -> int:
    """Coerce an epoch-ms int/str into a floored timestamp."""
    try:
        timestamp = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ParseError(f"Invalid timestamp: {value!r}") from exc
    return floor_timestamp(timestamp, resolution_ms)


def parse_utc_datetime(value: str) -> int:
    """Parse a UTC date string as exported by exchanges/explorers into ms."""
    text = value.strip().replace("Z", "")
    for fmt in _DATETIME_FORMATS:
        try:
            dt = datetime.strptime(text, fmt).replace(tzinfo=UTC)
        except ValueError:
            continue
        return int(dt.timestamp()) * SECOND_MS
    try:
        dt = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ParseError(f"Invalid timestamp: {value!r}") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return int(dt.timestamp()) * SECOND_MS
