"""Tests for the stock pool optimizer and preset search."""

import pytest

from portfolio.aggregation import DAY, YEAR
from portfolio.optimizer import (
    LockedFilters,
    StockSummary,
    build_stock_pool,
    optimize,
    suggest_presets,
)
from xtrender.models import TradeRow

START = 1_600_000_000
NOW = START + 2 * YEAR


def make_row(symbol: str, ret: float, entry: int, mode: str = "quant", **scores) -> TradeRow:
    return TradeRow(
        mode=mode,
        symbol=symbol,
        entry_date=entry,
        exit_date=entry + 5 * DAY,
        return_pct=ret,
        **scores,
    )


def make_stock(symbol: str, total_return: float, trades: int = 4, **kwargs) -> StockSummary:
    return StockSummary(
        symbol=symbol,
        total_trades=trades,
        total_return=total_return,
        first_trade=START,
        last_trade=START + YEAR,
        **kwargs,
    )


class TestStockPool:
    """Tests for build_stock_pool."""

    def test_groups_by_symbol(self):
        rows = [
            make_row("A", 10.0, START + 10 * DAY, win_rate=60, market_cap=5e9),
            make_row("A", -5.0, START, win_rate=99),
            make_row("B", 3.0, START + 20 * DAY),
            make_row("A", 50.0, START, mode="ditz"),
        ]

        pool = {s.symbol: s for s in build_stock_pool(rows, "quant", cutoff=0)}

        a = pool["A"]
        assert a.total_trades == 2
        assert a.total_return == pytest.approx(5.0)
        assert a.first_trade == START
        assert a.last_trade == START + 10 * DAY
        # Scores come from the first row seen
        assert a.win_rate == 60
        assert a.market_cap == 5e9
        assert pool["B"].total_trades == 1

    def test_cutoff(self):
        rows = [make_row("A", 1.0, START), make_row("B", 1.0, START + YEAR)]
        pool = build_stock_pool(rows, "quant", cutoff=START + DAY)
        assert [s.symbol for s in pool] == ["B"]


class TestLockedFilters:
    """Tests for locked thresholds."""

    def test_none_is_unconstrained(self):
        assert LockedFilters().accepts(make_stock("A", -50.0, trades=0))

    def test_zero_still_applies(self):
        locked = LockedFilters(total_return=0)
        assert not locked.accepts(make_stock("A", -5.0))
        assert locked.accepts(make_stock("B", 0.0))

    def test_market_cap_in_billions(self):
        locked = LockedFilters(market_cap=10)
        assert locked.accepts(make_stock("A", 1.0, market_cap=10e9))
        assert not locked.accepts(make_stock("B", 1.0, market_cap=2e9))


class TestOptimize:
    """Tests for optimize."""

    def test_filtered_stats_and_return_pa(self):
        rows = [
            make_row("A", 10.0, START),
            make_row("A", -5.0, START + DAY),
            make_row("B", 20.0, START + 2 * DAY),
            make_row("C", -30.0, START + 3 * DAY),
        ]
        pool = build_stock_pool(rows, "quant", cutoff=0)

        result = optimize(pool, rows, "quant", 0, LockedFilters(total_return=0), NOW)

        assert {s.symbol for s in result.filtered} == {"A", "B"}
        assert result.count == 2
        assert result.stats.trade_count == 3
        assert result.stats.total_return == pytest.approx(25.0)
        # 25% over 2 stocks and 2 years
        assert result.return_pa == pytest.approx(6.25)
        assert result.medians["trades"] == 1.5
        assert result.medians["total_return"] == 13.0

    def test_min_years(self):
        rows = [make_row("A", 10.0, NOW - 10 * DAY)]
        pool = build_stock_pool(rows, "quant", cutoff=0)

        result = optimize(pool, rows, "quant", 0, LockedFilters(), NOW)

        assert result.return_pa == pytest.approx(10.0 / 0.25)

    def test_nothing_qualifies(self):
        pool = [make_stock("A", -5.0)]
        result = optimize(pool, [], "quant", 0, LockedFilters(total_return=0), NOW)

        assert result.count == 0
        assert result.return_pa == 0.0
        assert result.medians["rr"] == 0.0


class TestSuggestPresets:
    """Tests for the preset grid search."""

    POOL = [
        make_stock("A", 80.0, trades=10, win_rate=70, risk_reward=2.5),
        make_stock("B", 60.0, trades=8, win_rate=65, risk_reward=2.0),
        make_stock("C", 40.0, trades=6, win_rate=55, risk_reward=1.5),
        make_stock("D", 10.0, trades=5, win_rate=50, risk_reward=1.2),
        make_stock("E", -10.0, trades=4, win_rate=40, risk_reward=0.8),
        make_stock("F", -30.0, trades=3, win_rate=30, risk_reward=0.5),
    ]

    def test_small_pool(self):
        assert suggest_presets(self.POOL[:1], NOW) == []

    def test_four_presets(self):
        presets = suggest_presets(self.POOL, NOW)

        assert [p.name for p in presets] == [
            "Max Rendite",
            "Top Picks",
            "Breit & Stabil",
            "Risiko-Optimiert",
        ]

    def test_max_rendite_beats_whole_pool(self):
        presets = {p.name: p for p in suggest_presets(self.POOL, NOW)}
        best = presets["Max Rendite"]

        whole = sum(s.total_return for s in self.POOL) / len(self.POOL) / 2.0
        assert best.count >= 3
        assert best.return_pa > whole
        # Top three by return: (80 + 60 + 40) / 3 / 2 years
        assert best.return_pa == pytest.approx(30.0)

    def test_preset_counts_respect_minimums(self):
        presets = {p.name: p for p in suggest_presets(self.POOL, NOW)}

        assert 5 <= presets["Top Picks"].count <= 15
        assert presets["Breit & Stabil"].count >= 5
        assert presets["Risiko-Optimiert"].count >= 3

    def test_locked_values_reapply(self):
        """Locking a preset never selects fewer stocks than it reports.

        A zero return threshold is left unlocked, so the locked selection
        may be wider than the grid point's.
        """
        for preset in suggest_presets(self.POOL, NOW):
            selected = [s for s in self.POOL if preset.locked.accepts(s)]
            assert len(selected) >= preset.count

    def test_max_rendite_locks_return_threshold(self):
        presets = {p.name: p for p in suggest_presets(self.POOL, NOW)}
        assert presets["Max Rendite"].locked.total_return == 40.0
