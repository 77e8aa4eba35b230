"""Tests for batch statistics over multi-symbol strategy runs."""

import pytest

from portfolio.stats import (
    DEFAULT_POSITION_SIZE,
    BatchStatisticsCalculator,
    SymbolTrade,
    calculate_batch_metrics,
    collect_trades,
    compound_portfolio_return,
    position_simulation,
)
from xtrender.models import Direction, Trade
from xtrender.strategy import IndicatorResult


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def make_trade(
    symbol: str,
    entry: int,
    exit_: int | None,
    ret: float,
    direction: Direction = Direction.LONG,
) -> SymbolTrade:
    if exit_ is None:
        trade = Trade(
            entry_date=entry,
            entry_price=100.0,
            current_price=100.0 + ret,
            return_pct=ret,
            is_open=True,
            direction=direction,
        )
    else:
        trade = Trade(
            entry_date=entry,
            entry_price=100.0,
            exit_date=exit_,
            exit_price=100.0 + ret,
            return_pct=ret,
            direction=direction,
        )
    return SymbolTrade(symbol, trade)


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------
class TestBatchMetrics:
    """Tests for overall metrics."""

    def test_empty(self):
        result = BatchStatisticsCalculator().calculate([])
        assert result.metrics.total_trades == 0
        assert result.per_symbol == []
        assert result.positions.required_capital == 0.0

    def test_drawdown_and_win_convention(self):
        trades = [
            make_trade("A", 100, 200, 10.0),
            make_trade("B", 300, 400, -10.0),
            make_trade("A", 500, 600, 0.0),
        ]

        m = calculate_batch_metrics(trades)

        assert m.total_trades == 3
        # A flat trade counts as a win here
        assert m.wins == 2
        assert m.losses == 1
        assert m.risk_reward == pytest.approx(0.5)
        # 100 -> 110 -> 99 -> 99
        assert m.max_drawdown == pytest.approx(10.0)
        assert m.net_profit == pytest.approx(-1.0)
        assert m.total_return == pytest.approx(0.0)

    def test_no_losses_rr_is_zero(self):
        m = calculate_batch_metrics([make_trade("A", 100, 200, 5.0)])
        assert m.risk_reward == 0.0

    def test_open_trades_excluded(self):
        trades = [make_trade("A", 100, 200, 5.0), make_trade("A", 300, None, -50.0)]
        m = calculate_batch_metrics(trades)
        assert m.total_trades == 1


class TestFilters:
    """Tests for trade selection."""

    def test_long_only(self):
        trades = [
            make_trade("A", 100, 200, 5.0),
            make_trade("A", 300, 400, 8.0, Direction.SHORT),
        ]
        assert calculate_batch_metrics(trades, long_only=True).total_trades == 1

    def test_symbols_and_start(self):
        trades = [
            make_trade("A", 100, 200, 5.0),
            make_trade("B", 300, 400, 5.0),
            make_trade("A", 500, 600, 5.0),
        ]
        assert calculate_batch_metrics(trades, symbols={"A"}).total_trades == 2
        assert calculate_batch_metrics(trades, start=300).total_trades == 2

    def test_sorted_by_entry(self):
        trades = [make_trade("B", 300, 400, 1.0), make_trade("A", 100, 200, 1.0)]
        result = BatchStatisticsCalculator().calculate(trades)
        assert [t.symbol for t in result.trades] == ["A", "B"]


class TestPerSymbol:
    """Tests for the per-symbol breakdown."""

    def test_sorted_by_total_return(self):
        trades = [
            make_trade("A", 100, 200, 5.0),
            make_trade("B", 300, 400, 20.0),
            make_trade("A", 500, 600, -2.0),
        ]

        per_symbol = BatchStatisticsCalculator().calculate(trades).per_symbol

        assert [s.symbol for s in per_symbol] == ["B", "A"]
        assert per_symbol[1].total_trades == 2
        assert per_symbol[1].total_return == pytest.approx(3.0)


class TestCapital:
    """Tests for portfolio return and position simulation."""

    def test_portfolio_return(self):
        trades = [
            make_trade("A", 100, 300, 10.0),
            make_trade("B", 200, 400, -4.0),
            make_trade("C", 400, 500, 6.0),
        ]

        p = compound_portfolio_return(trades, position_size=1000.0)

        assert p.max_parallel == 2
        assert p.required_capital == 2000.0
        assert p.total_profit == pytest.approx(120.0)
        assert p.portfolio_return == pytest.approx(6.0)

    def test_open_trade_holds_slot(self):
        trades = [
            make_trade("A", 100, None, 10.0),
            make_trade("B", 200, 300, 5.0),
            make_trade("C", 400, 500, -5.0),
        ]

        sim = position_simulation(trades, position_size=100.0)

        assert sim.max_parallel == 2
        assert sim.open_count == 1
        assert sim.total_trades == 3
        assert sim.wins == 2
        assert sim.required_capital == 200.0
        assert sim.roi == pytest.approx(5.0)

    def test_invalid_position_size_uses_default(self):
        calc = BatchStatisticsCalculator(position_size=0)
        assert calc.position_size == DEFAULT_POSITION_SIZE


class TestCollectTrades:
    def test_flattens_results(self):
        trade = make_trade("A", 100, 200, 1.0).trade
        results = {"A": IndicatorResult(trades=[trade]), "B": IndicatorResult()}

        collected = collect_trades(results)

        assert collected == [SymbolTrade("A", trade)]
