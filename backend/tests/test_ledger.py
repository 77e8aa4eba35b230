"""Tests for the trade ledger."""

import pytest

from xtrender.models import Direction, ExitReason
from xtrender.strategy import TradeLedger


class TestTradeLedger:
    """Tests for one-position-at-a-time bookkeeping."""

    def test_open_and_close(self):
        ledger = TradeLedger()
        assert ledger.open(100, 10.0)
        assert ledger.in_position

        trade = ledger.close(200, 12.0)

        assert trade is not None
        assert trade.entry_date == 100
        assert trade.exit_date == 200
        assert trade.return_pct == pytest.approx(20.0)
        assert trade.exit_reason == ExitReason.SIGNAL
        assert not ledger.in_position

    def test_second_entry_rejected(self):
        ledger = TradeLedger()
        ledger.open(100, 10.0)

        assert not ledger.open(150, 11.0)
        assert ledger.position.entry_date == 100

    def test_close_without_position(self):
        assert TradeLedger().close(100, 10.0) is None

    def test_short_trade_return(self):
        ledger = TradeLedger()
        ledger.open(100, 10.0, Direction.SHORT, stop_loss=11.0, take_profit=8.0)

        trade = ledger.close(200, 8.0, ExitReason.TP)

        assert trade.direction == Direction.SHORT
        assert trade.return_pct == pytest.approx(20.0)
        assert trade.stop_loss == 11.0
        assert trade.take_profit == 8.0

    def test_trades_in_execution_order(self):
        ledger = TradeLedger()
        ledger.open(100, 10.0)
        ledger.close(200, 11.0)
        ledger.open(300, 11.0)
        ledger.close(400, 10.0)

        assert [t.entry_date for t in ledger.trades] == [100, 300]
        assert ledger.last_trade.exit_date == 400


class TestFinalize:
    """Tests for closing out the run."""

    def test_open_position_becomes_open_trade(self):
        ledger = TradeLedger()
        ledger.open(100, 10.0)
        ledger.close(200, 11.0)
        ledger.open(300, 20.0)

        trades = ledger.finalize(current_price=25.0)

        assert len(trades) == 2
        last = trades[-1]
        assert last.is_open
        assert last.exit_date is None
        assert last.current_price == 25.0
        assert last.return_pct == pytest.approx(25.0)

    def test_flat_ledger(self):
        ledger = TradeLedger()
        ledger.open(100, 10.0)
        ledger.close(200, 9.0)

        trades = ledger.finalize(current_price=50.0)

        assert len(trades) == 1
        assert not trades[0].is_open

    def test_finalize_does_not_mutate(self):
        ledger = TradeLedger()
        ledger.open(100, 10.0)
        ledger.finalize(11.0)

        assert ledger.in_position
        assert ledger.trades == []
