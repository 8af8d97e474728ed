"""Tests for id, amount and timestamp helpers shared by parsers."""

from decimal import Decimal

import pytest

from ledgersync.exceptions import ParseError
from ledgersync.parser.utils.amounts import format_decimal, negate, to_decimal
from ledgersync.parser.utils.ids import hash_string, make_id
from ledgersync.parser.utils.timestamps import floor_timestamp, parse_utc_datetime, to_timestamp_ms


class TestIds:
    def test_hash_is_stable(self):
        assert hash_string("abc") == hash_string("abc")
        assert len(hash_string("abc")) == 16

    def test_make_id_prefix(self):
        assert make_id("conn-1", "BTC", 1).startswith("conn-1_")

    def test_make_id_parts_matter(self):
        assert make_id("conn-1", "BTC", 1) != make_id("conn-1", "BTC", 2)


class TestAmounts:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [("1.50", Decimal("1.5")), ("1,000.25", Decimal("1000.25")), (3, Decimal(3)), (" 2 ", Decimal(2))],
    )
    def test_to_decimal(self, value, expected):
        assert to_decimal(value) == expected

    @pytest.mark.parametrize("value", [0.1, "abc", None, "NaN", "Infinity"])
    def test_to_decimal_rejects(self, value):
        with pytest.raises(ParseError):
            to_decimal(value)

    def test_format_decimal_plain_notation(self):
        assert format_decimal(Decimal("1.500")) == "1.5"
        assert format_decimal(Decimal("1E+3")) == "1000"
        assert format_decimal(Decimal("0.00000001")) == "0.00000001"
        assert format_decimal(Decimal("-0.0")) == "0"

    def test_negate(self):
        assert negate(Decimal("2.5")) == "-2.5"
        assert negate(Decimal("-2.5")) == "2.5"


class TestTimestamps:
    def test_floor(self):
        assert floor_timestamp(1_700_000_000_999) == 1_700_000_000_000

    def test_to_timestamp_ms_accepts_strings(self):
        assert to_timestamp_ms("1700000000123") == 1_700_000_000_000

    def test_to_timestamp_ms_invalid(self):
        with pytest.raises(ParseError, match="Invalid timestamp"):
            to_timestamp_ms("soon")

    @pytest.mark.parametrize(
        "value",
        ["2023-11-14 22:13:20", "2023-11-14T22:13:20", "2023-11-14T22:13:20Z", "2023-11-14 22:13:20.000"],
    )
    def test_parse_utc_datetime(self, value):
        assert parse_utc_datetime(value) == 1_700_000_000_000

    def test_parse_utc_datetime_with_offset(self):
        assert parse_utc_datetime("2023-11-15T00:13:20+02:00") == 1_700_000_000_000
