"""Tests for the per-symbol pipeline entry points."""

import math

import pytest
from pydantic import ValidationError

from xtrender import build_trade_rows, calculate_metrics, classify_signal, compute_indicator
from xtrender.models import SignalLabel, Trade
from xtrender.strategy import list_strategies


def make_raw_bars(n: int) -> list[dict]:
    bars = []
    prev = 100.0
    for i in range(n):
        close = 100.0 + 8.0 * math.sin(2 * math.pi * i / 25) + i * 0.05
        bars.append({
            "time": 1_600_000_000 + i * 86400,
            "open": prev,
            "high": max(prev, close) + 0.4,
            "low": min(prev, close) - 0.4,
            "close": close,
            "volume": 500.0,
        })
        prev = close
    return bars


class TestComputeIndicator:
    """Tests for compute_indicator."""

    def test_default_strategy(self):
        result = compute_indicator(make_raw_bars(120))
        assert result.primary == "short"
        assert len(result.primary_series) == 120 - 35

    def test_params_camel_case(self):
        result = compute_indicator(make_raw_bars(120), "quant", {"shortL3": 10})
        # start index = max(20, 20) + 10
        assert len(result.primary_series) == 120 - 30

    def test_unknown_strategy(self):
        with pytest.raises(KeyError):
            compute_indicator(make_raw_bars(120), "unknown")

    def test_invalid_params(self):
        with pytest.raises(ValidationError):
            compute_indicator(make_raw_bars(120), "ditz", {"tslPercent": 150})

    def test_all_strategies_registered(self):
        assert list_strategies() == [
            "aggressive",
            "defensive",
            "ditz",
            "hann_trend",
            "quant",
            "smart_money_flow",
            "trader",
        ]


class TestClassifySignal:
    """Tests for the pipeline-level classification."""

    def test_no_data(self):
        result = compute_indicator(make_raw_bars(10), "defensive")
        signal = classify_signal("defensive", result.oscillators, result.trades)
        assert signal.signal == SignalLabel.NO_DATA
        assert signal.bars == 0

    def test_end_to_end(self):
        result = compute_indicator(make_raw_bars(200), "aggressive")
        signal = classify_signal("aggressive", result.oscillators, result.trades)
        assert signal.signal in {
            SignalLabel.BUY,
            SignalLabel.HOLD,
            SignalLabel.SELL,
            SignalLabel.WAIT,
        }


class TestBuildTradeRows:
    """Tests for trade row conversion."""

    def test_rows_carry_scores(self):
        trades = [
            Trade(entry_date=1, entry_price=10, exit_date=2, exit_price=11, return_pct=10.0),
            Trade(entry_date=3, entry_price=11, current_price=12, return_pct=9.09, is_open=True),
        ]

        rows = build_trade_rows("AAPL", "quant", trades, market_cap=2500.0, name="Apple")

        assert [r.status for r in rows] == ["CLOSED", "OPEN"]
        assert all(r.symbol == "AAPL" and r.mode == "quant" for r in rows)
        scores = calculate_metrics(trades)
        assert all(r.win_rate == scores.win_rate for r in rows)
        assert all(r.market_cap == 2500.0 for r in rows)
        assert rows[1].is_open
        assert rows[1].current_price == 12

    def test_empty(self):
        assert build_trade_rows("X", "defensive", []) == []
