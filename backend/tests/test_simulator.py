"""Tests for the capital simulation."""

import pytest

from portfolio.aggregation import DAY, YEAR
from portfolio.simulator import (
    equity_curve,
    max_concurrent,
    round_cents,
    round_half_up,
    simulate,
)
from xtrender.models import TradeRow

START = 1_600_000_000
NOW = START + 2 * YEAR


def make_row(
    ret: float,
    entry: int,
    exit_: int | None,
    symbol: str = "AAPL",
) -> TradeRow:
    return TradeRow(
        mode="defensive",
        symbol=symbol,
        entry_date=entry,
        entry_price=100.0,
        exit_date=exit_,
        exit_price=None if exit_ is None else 100.0 * (1 + ret / 100),
        current_price=100.0 * (1 + ret / 100) if exit_ is None else None,
        return_pct=ret,
        status="OPEN" if exit_ is None else "CLOSED",
    )


class TestRounding:
    """Tests for cent rounding."""

    def test_half_up(self):
        assert round_half_up(0.125) == 0.13
        assert round_half_up(-0.125) == -0.12
        assert round_half_up(2.5, 0) == 3.0
        assert round_cents(10.004) == 10.0


class TestMaxConcurrent:
    """Tests for the interval sweep."""

    def test_overlapping(self):
        assert max_concurrent([(0, 10), (5, 15), (7, 8)]) == 3

    def test_exit_before_entry_at_same_time(self):
        assert max_concurrent([(0, 10), (10, 20)]) == 1

    def test_open_interval_never_released(self):
        assert max_concurrent([(0, None), (10, 20), (30, 40)]) == 2

    def test_empty(self):
        assert max_concurrent([]) == 0


class TestSimulate:
    """Tests for simulate."""

    def test_invalid_input(self):
        row = make_row(10.0, START, START + DAY)
        assert simulate([row], 0, NOW) is None
        assert simulate([row], -5, NOW) is None
        assert simulate([], 100, NOW) is None

    def test_single_trade(self):
        row = make_row(20.0, START, START + 182 * DAY)

        sim = simulate([row], 100.0, NOW)

        assert sim.eigenkapital == 100.0
        assert sim.gewinn == 20.0
        assert sim.endkapital == 120.0
        assert sim.rendite == pytest.approx(20.0)
        assert sim.years == pytest.approx(182 / 365)
        assert sim.cagr == pytest.approx((1.2 ** (365 / 182) - 1) * 100)
        assert sim.wins == 1
        assert sim.trades[0].received == 120.0

    def test_non_overlapping_needs_one_amount(self):
        rows = [
            make_row(10.0, START, START + 10 * DAY),
            make_row(-5.0, START + 20 * DAY, START + 30 * DAY),
        ]

        sim = simulate(rows, 100.0, NOW)

        assert sim.max_concurrent == 1
        assert sim.eigenkapital == 100.0
        assert sim.gewinn == 5.0
        assert sim.risk_reward == pytest.approx(2.0)

    def test_overlapping_needs_two_amounts(self):
        rows = [
            make_row(10.0, START, START + 30 * DAY),
            make_row(10.0, START + 10 * DAY, START + 40 * DAY),
        ]

        sim = simulate(rows, 250.0, NOW)

        assert sim.max_concurrent == 2
        assert sim.eigenkapital == 500.0
        assert sim.gewinn == 50.0
        assert sim.endkapital == 550.0

    def test_back_to_back_trades_share_capital(self):
        rows = [
            make_row(10.0, START, START + 10 * DAY),
            make_row(10.0, START + 10 * DAY, START + 20 * DAY),
        ]
        assert simulate(rows, 100.0, NOW).eigenkapital == 100.0

    def test_short_span_cagr_falls_back(self):
        row = make_row(5.0, START, START + 10 * DAY)

        sim = simulate([row], 100.0, NOW)

        assert sim.cagr == sim.rendite

    def test_open_trade_runs_until_now(self):
        rows = [
            make_row(10.0, START, None),
            make_row(4.0, START + 100 * DAY, START + 110 * DAY),
        ]

        sim = simulate(rows, 100.0, NOW)

        assert sim.open_count == 1
        assert sim.max_concurrent == 2
        assert sim.years == pytest.approx(2.0)
        open_trade = next(t for t in sim.trades if t.exit_date is None)
        assert open_trade.exit_price == pytest.approx(110.0)
        assert open_trade.effective_exit(NOW) == NOW

    def test_zero_duration_trade(self):
        sim = simulate([make_row(3.0, START, START)], 100.0, NOW)

        assert sim.eigenkapital == 0.0
        assert sim.rendite == 0.0

    def test_trades_sorted_by_entry(self):
        rows = [
            make_row(1.0, START + 50 * DAY, START + 60 * DAY, symbol="B"),
            make_row(1.0, START, START + 5 * DAY, symbol="A"),
        ]
        sim = simulate(rows, 100.0, NOW)
        assert [t.symbol for t in sim.trades] == ["A", "B"]


class TestEquityCurve:
    """Tests for the equity curve."""

    def test_starts_at_eigenkapital_and_ends_at_endkapital(self):
        rows = [
            make_row(10.0, START, START + 30 * DAY),
            make_row(-4.0, START + 10 * DAY, START + 45 * DAY),
        ]

        sim = simulate(rows, 100.0, NOW)
        curve = sim.equity_curve

        assert curve[0].time == START
        assert curve[0].value == sim.eigenkapital
        assert curve[-1].time == START + 45 * DAY
        assert curve[-1].value == sim.endkapital

    def test_daily_steps(self):
        rows = [make_row(10.0, START, START + 10 * DAY)]
        sim = simulate(rows, 100.0, NOW)

        times = [p.time for p in sim.equity_curve]
        assert times == [START + i * DAY for i in range(11)]
        # Halfway through: half the profit, pro rata
        assert sim.equity_curve[5].value == pytest.approx(105.0)

    def test_long_span_is_coarsened(self):
        rows = [make_row(10.0, START, START + 3000 * DAY)]
        sim = simulate(rows, 100.0, NOW + 3 * YEAR)

        curve = sim.equity_curve
        assert curve[1].time - curve[0].time == 3 * DAY
        assert len(curve) <= 1001
        assert curve[-1].time == START + 3000 * DAY

    def test_empty(self):
        assert equity_curve([], 100.0, 100.0, NOW) == []
