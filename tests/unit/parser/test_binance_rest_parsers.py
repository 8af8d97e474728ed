"""Tests for Binance REST record parsers — Deposit, Withdrawal, Trade, Reward."""

import pytest

from ledgersync.domain.enums import AuditLogOperation, TransactionType
from ledgersync.domain.models.ledger import ImportIndex
from ledgersync.exceptions import ParseError
from ledgersync.parser.cex.binance import (
    BinanceDepositParser,
    BinanceRewardParser,
    BinanceTradeParser,
    BinanceWithdrawalParser,
)

CONN = "conn-1"


def _deposit(**overrides):
    return {
        "id": "769800519366885376", "amount": "0.5", "coin": "ETH", "network": "ETH",
        "insertTime": 1_700_000_000_123, "txId": "0xdeadbeef", "status": 1, **overrides,
    }


def _withdrawal(**overrides):
    return {
        "id": "b6ae22b3aa844210a7041aee7589627c", "amount": "8.91", "transactionFee": "0.004",
        "coin": "USDT", "network": "ETH", "applyTime": "2023-11-14 22:13:20", "txId": "0xfeed", **overrides,
    }


def _trade(**overrides):
    return {
        "id": 28457, "symbol": "BTCUSDT", "baseAsset": "BTC", "quoteAsset": "USDT",
        "qty": "1.5", "quoteQty": "45000", "commission": "0.001", "commissionAsset": "BTC",
        "time": 1_700_000_000_999, "isBuyer": True, **overrides,
    }


class TestBinanceDepositParser:
    def test_parse_deposit(self):
        result = BinanceDepositParser()(_deposit(), 3, CONN)

        [log] = result.logs
        [tx] = result.transactions
        assert log.change == "0.5"
        assert log.asset_id == "binance:ETH"
        assert log.operation == AuditLogOperation.DEPOSIT
        assert log.timestamp == 1_700_000_000_000
        assert log.import_index == ImportIndex(3)
        assert log.tx_id == tx.id
        assert log.wallet == "Binance Spot"
        assert tx.type == TransactionType.DEPOSIT
        assert (tx.incoming, tx.incoming_asset) == ("0.5", "binance:ETH")
        assert tx.metadata["txHash"] == "0xdeadbeef"

    def test_zero_amount_short_circuits(self):
        result = BinanceDepositParser()(_deposit(amount="0"), 0, CONN)

        assert result.logs == []
        assert result.transactions == []

    def test_same_record_same_ids(self):
        first = BinanceDepositParser()(_deposit(), 0, CONN)
        again = BinanceDepositParser()(_deposit(), 0, CONN)

        assert first == again

    def test_id_independent_of_position(self):
        first = BinanceDepositParser()(_deposit(), 0, CONN)
        moved = BinanceDepositParser()(_deposit(), 7, CONN)

        assert first.logs[0].id == moved.logs[0].id

    def test_wallet_from_context(self):
        result = BinanceDepositParser()(_deposit(), 0, CONN, {"wallet": "Binance Funding"})

        assert result.logs[0].wallet == "Binance Funding"

    def test_float_amount_rejected(self):
        with pytest.raises(ParseError):
            BinanceDepositParser()(_deposit(amount=0.5), 0, CONN)

    def test_missing_field_is_parse_error(self):
        record = _deposit()
        del record["coin"]

        with pytest.raises(ParseError, match="binance-deposit"):
            BinanceDepositParser()(record, 0, CONN)


class TestBinanceWithdrawalParser:
    def test_outgoing_includes_fee(self):
        result = BinanceWithdrawalParser()(_withdrawal(), 1, CONN)

        [log] = result.logs
        [tx] = result.transactions
        assert log.change == "-8.914"
        assert log.operation == AuditLogOperation.WITHDRAW
        assert log.timestamp == 1_700_000_000_000
        assert tx.type == TransactionType.WITHDRAW
        assert (tx.outgoing, tx.outgoing_asset) == ("8.914", "binance:USDT")
        assert tx.incoming is None

    def test_zero_amount_short_circuits(self):
        result = BinanceWithdrawalParser()(_withdrawal(amount="0"), 0, CONN)

        assert result.logs == []
        assert result.transactions == []

    def test_bad_apply_time(self):
        with pytest.raises(ParseError, match="Invalid timestamp"):
            BinanceWithdrawalParser()(_withdrawal(applyTime="yesterday"), 0, CONN)


class TestBinanceTradeParser:
    def test_buy_legs_in_economic_order(self):
        result = BinanceTradeParser()(_trade(), 5, CONN)

        sell, buy, fee = result.logs
        assert (sell.asset_id, sell.change, sell.operation) == ("binance:USDT", "-45000", AuditLogOperation.SELL)
        assert (buy.asset_id, buy.change, buy.operation) == ("binance:BTC", "1.5", AuditLogOperation.BUY)
        assert (fee.asset_id, fee.change, fee.operation) == ("binance:BTC", "-0.001", AuditLogOperation.FEE)
        assert [log.import_index for log in result.logs] == [ImportIndex(5, 0), ImportIndex(5, 1), ImportIndex(5, 2)]
        assert len({log.tx_id for log in result.logs}) == 1
        assert result.transactions == []

    def test_sell_side(self):
        sell, buy, _ = BinanceTradeParser()(_trade(isBuyer=False), 0, CONN).logs

        assert (sell.asset_id, sell.change) == ("binance:BTC", "-1.5")
        assert (buy.asset_id, buy.change) == ("binance:USDT", "45000")

    def test_zero_commission_has_no_fee_leg(self):
        result = BinanceTradeParser()(_trade(commission="0"), 0, CONN)

        assert [log.operation for log in result.logs] == [AuditLogOperation.SELL, AuditLogOperation.BUY]

    def test_legs_share_integer_index_and_strictly_increase(self):
        logs = BinanceTradeParser()(_trade(), 9, CONN).logs

        assert {log.import_index.source_index for log in logs} == {9}
        assert all(a.import_index < b.import_index for a, b in zip(logs, logs[1:]))

    def test_distinct_trades_distinct_ids(self):
        first = BinanceTradeParser()(_trade(), 0, CONN)
        second = BinanceTradeParser()(_trade(id=28458), 0, CONN)

        assert not {log.id for log in first.logs} & {log.id for log in second.logs}


class TestBinanceRewardParser:
    def test_flexible_reward(self):
        record = {"asset": "BNB", "rewards": "0.0012", "projectId": "BNB001", "type": "REALTIME", "time": 1_700_000_000_500}

        result = BinanceRewardParser()(record, 2, CONN)

        [log] = result.logs
        [tx] = result.transactions
        assert log.operation == AuditLogOperation.REWARD
        assert log.change == "0.0012"
        assert tx.type == TransactionType.REWARD
        assert tx.incoming == "0.0012"

    def test_locked_reward_uses_amount(self):
        record = {"asset": "DOT", "amount": "1.2", "positionId": 123, "time": 1_700_000_000_000}

        assert BinanceRewardParser()(record, 0, CONN).logs[0].change == "1.2"

    def test_missing_amount(self):
        with pytest.raises(ParseError):
            BinanceRewardParser()({"asset": "DOT", "time": 1_700_000_000_000}, 0, CONN)
