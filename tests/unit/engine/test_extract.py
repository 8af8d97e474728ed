"""Tests for transaction extraction and price derivation."""

from decimal import Decimal

import pytest

from ledgersync.domain.enums import AuditLogOperation, TransactionType
from ledgersync.domain.models.ledger import ImportIndex
from ledgersync.engine.extract import build_transaction, derive_price, extract_transactions, record_tx_id

SELL = AuditLogOperation.SELL
BUY = AuditLogOperation.BUY
FEE = AuditLogOperation.FEE


@pytest.fixture()
def trade_legs(make_log):
    return [
        make_log("t_SELL", change="-45000", asset_id="binance:USDT", operation=SELL, index=3, leg=0, tx_id="t"),
        make_log("t_BUY", change="1.5", asset_id="binance:BTC", operation=BUY, index=3, leg=1, tx_id="t"),
        make_log("t_FEE", change="-0.001", asset_id="binance:BTC", operation=FEE, index=3, leg=2, tx_id="t"),
    ]


class TestDerivePrice:
    def test_quote_asset_on_outgoing_side(self):
        assert derive_price("1.5", "binance:BTC", "45000", "binance:USDT") == "30000"

    def test_quote_asset_on_incoming_side(self):
        assert derive_price("45000", "binance:USDT", "1.5", "binance:BTC") == "30000"

    def test_unknown_assets_default_to_outgoing_over_incoming(self):
        assert derive_price("4", "binance:AAA", "2", "binance:BBB") == "0.5"

    def test_missing_side(self):
        assert derive_price(None, None, "1", "binance:USDT") is None

    def test_zero_side(self):
        assert derive_price("0", "binance:BTC", "1", "binance:USDT") is None


class TestBuildTransaction:
    def test_swap_with_fee(self, trade_legs):
        tx = build_transaction("t", trade_legs)

        assert tx.type == TransactionType.SWAP
        assert (tx.incoming, tx.incoming_asset) == ("1.5", "binance:BTC")
        assert (tx.outgoing, tx.outgoing_asset) == ("45000", "binance:USDT")
        assert (tx.fee, tx.fee_asset) == ("0.001", "binance:BTC")
        assert tx.price == "30000"
        assert tx.import_index == ImportIndex(3)
        assert tx.connection_id == "conn-1"

    def test_leg_order_does_not_matter(self, trade_legs):
        assert build_transaction("t", list(reversed(trade_legs))) == build_transaction("t", trade_legs)

    def test_zero_legs_excluded_from_amounts(self, trade_legs, make_log):
        legs = trade_legs + [make_log("t_DUST", change="0", asset_id="binance:ETH", operation=BUY, index=3, leg=3, tx_id="t")]

        tx = build_transaction("t", legs)

        assert tx.type == TransactionType.SWAP
        assert tx.incoming_asset == "binance:BTC"

    def test_zero_fee_leg_dropped(self, trade_legs, make_log):
        legs = trade_legs[:2] + [make_log("t_FEE", change="0", asset_id="binance:BNB", operation=FEE, index=3, leg=2, tx_id="t")]

        tx = build_transaction("t", legs)

        assert tx.fee is None
        assert tx.fee_asset is None

    @pytest.mark.parametrize(
        ("operation", "change", "expected"),
        [
            (AuditLogOperation.DEPOSIT, "2", TransactionType.DEPOSIT),
            (AuditLogOperation.WITHDRAW, "-2", TransactionType.WITHDRAW),
            (AuditLogOperation.REWARD, "0.1", TransactionType.REWARD),
            (AuditLogOperation.COMMISSION_REBATE, "0.1", TransactionType.REWARD),
            (AuditLogOperation.TRANSFER, "-5", TransactionType.WITHDRAW),
            (AuditLogOperation.TRANSFER, "5", TransactionType.DEPOSIT),
        ],
    )
    def test_single_leg(self, make_log, operation, change, expected):
        tx = build_transaction("x", [make_log("l", change=change, operation=operation, tx_id="x")])

        assert tx.type == expected
        assert tx.price is None

    def test_withdraw_amount_is_positive(self, make_log):
        tx = build_transaction("x", [make_log("l", change="-2.5", operation=AuditLogOperation.WITHDRAW, tx_id="x")])

        assert (tx.outgoing, tx.incoming) == ("2.5", None)

    def test_same_asset_both_directions_not_extracted(self, make_log):
        legs = [
            make_log("a", change="-1", operation=SELL, tx_id="x"),
            make_log("b", change="1", operation=BUY, leg=1, tx_id="x"),
        ]

        assert build_transaction("x", legs) is None

    def test_multiple_outgoing_assets_not_extracted(self, make_log):
        legs = [
            make_log("a", change="-1", asset_id="binance:DOGE", operation=AuditLogOperation.CONVERSION, tx_id="x"),
            make_log("b", change="-2", asset_id="binance:SHIB", operation=AuditLogOperation.CONVERSION, leg=1, tx_id="x"),
            make_log("c", change="0.01", asset_id="binance:BNB", operation=AuditLogOperation.CONVERSION, leg=2, tx_id="x"),
        ]

        assert build_transaction("x", legs) is None

    def test_only_zero_legs_not_extracted(self, make_log):
        assert build_transaction("x", [make_log("a", change="0", tx_id="x")]) is None

    def test_same_asset_legs_are_summed(self, make_log):
        legs = [
            make_log("a", change="-100", asset_id="binance:USDT", operation=SELL, tx_id="x"),
            make_log("b", change="-50", asset_id="binance:USDT", operation=SELL, leg=1, tx_id="x"),
            make_log("c", change="0.005", asset_id="binance:BTC", operation=BUY, leg=2, tx_id="x"),
        ]

        tx = build_transaction("x", legs)

        assert tx.outgoing == "150"
        assert tx.price == "30000"


class TestExtractTransactions:
    def test_groups_by_tx_id(self, trade_legs, make_log):
        deposit = make_log("d", change="3", asset_id="binance:ETH", index=4, tx_id="dep")

        result = extract_transactions(trade_legs + [deposit])

        assert sorted(tx.id for tx in result.transactions) == ["dep", "t"]
        assert result.logs == trade_legs + [deposit]

    def test_leg_sum_invariant(self, trade_legs, make_log):
        logs = trade_legs + [
            make_log("u_SELL", change="-2", asset_id="binance:ETH", operation=SELL, index=5, tx_id="u"),
            make_log("u_BUY", change="5000", asset_id="binance:USDT", operation=BUY, index=5, leg=1, tx_id="u"),
            make_log("r", change="0.25", asset_id="binance:BNB", operation=AuditLogOperation.REWARD, index=6, tx_id="r"),
        ]

        result = extract_transactions(logs)

        for tx in result.transactions:
            legs = [log for log in result.logs if log.tx_id == tx.id and log.operation != FEE and log.amount != 0]
            if tx.incoming is not None:
                total = sum(log.amount for log in legs if log.asset_id == tx.incoming_asset and log.amount > 0)
                assert total == Decimal(tx.incoming)
            if tx.outgoing is not None:
                total = sum(-log.amount for log in legs if log.asset_id == tx.outgoing_asset and log.amount < 0)
                assert total == Decimal(tx.outgoing)

    def test_logs_without_tx_id_grouped_per_record(self, make_log):
        sell = make_log("a", change="-10", asset_id="binance:USDT", operation=SELL, index=2)
        buy = make_log("b", change="1", asset_id="binance:DOT", operation=BUY, index=2, leg=1)
        other = make_log("c", change="4", asset_id="binance:ADA", index=3)

        result = extract_transactions([sell, buy, other])

        assert len(result.transactions) == 2
        swap = next(tx for tx in result.transactions if tx.type == TransactionType.SWAP)
        assert swap.id == record_tx_id(sell)
        assert [log.tx_id for log in result.logs[:2]] == [swap.id, swap.id]
        assert result.logs[2].tx_id == record_tx_id(other)

    def test_record_tx_id_is_deterministic(self, make_log):
        assert record_tx_id(make_log("a", index=2)) == record_tx_id(make_log("b", index=2, leg=1))
        assert record_tx_id(make_log("a", index=2)) != record_tx_id(make_log("a", index=3))

    def test_skip_tx_ids(self, trade_legs):
        result = extract_transactions(trade_legs, skip_tx_ids={"t"})

        assert result.transactions == []
        assert result.logs == trade_legs

    def test_unextractable_group_keeps_logs_without_tx_id(self, make_log):
        log = make_log("zero", change="0")

        result = extract_transactions([log])

        assert result.transactions == []
        assert result.logs == [log]
