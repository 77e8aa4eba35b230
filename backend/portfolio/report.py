"""Report formatting for portfolio results.

Outputs per-mode statistics and capital simulations to the console
(formatted tables) and to JSON files.
"""

from __future__ import annotations

import math
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path

import orjson

from portfolio.aggregation import ModeData
from portfolio.optimizer import OptimizationResult, Preset
from portfolio.simulator import SimulationResult
from portfolio.stats import BatchResult


def _fmt_date(ts: int | None) -> str:
    if not ts:
        return "-"
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d")


def _fmt_ratio(value: float) -> str:
    return "inf" if math.isinf(value) else f"{value:.2f}"


def _json_float(value: float) -> float | None:
    """JSON has no infinity; unbounded ratios are written as null."""
    return None if math.isinf(value) or math.isnan(value) else value


class ReportFormatter:
    """Format portfolio results for display and export."""

    @staticmethod
    def print_console(
        modes: dict[str, ModeData],
        simulations: dict[str, SimulationResult | None],
        time_range: str = "",
    ) -> None:
        """Print formatted report to console."""
        print("\n" + "=" * 70)
        print("  PORTFOLIO RESULTS")
        print("=" * 70)
        if time_range:
            print(f"  Time range: {time_range}")

        print("\n" + "-" * 70)
        print("  BY MODE")
        print("-" * 70)
        print(
            f"  {'Mode':<12} {'Trades':>7} {'Wins':>6} {'Losses':>7} "
            f"{'Win%':>7} {'Avg%':>8} {'Sum%':>9} {'R/R':>6}"
        )
        for mode, data in modes.items():
            s = data.stats
            print(
                f"  {mode:<12} {s.trade_count:>7} {s.wins:>6} {s.losses:>7} "
                f"{s.win_rate:>6.1f}% {s.avg_return:>+7.2f}% {s.total_return:>+8.1f}% "
                f"{_fmt_ratio(s.risk_reward):>6}"
            )

        for mode, sim in simulations.items():
            print("\n" + "-" * 70)
            print(f"  SIMULATION: {mode}")
            print("-" * 70)
            if sim is None:
                print("  No trades to simulate.")
                continue
            print(f"  Trades:         {sim.trade_count} ({sim.open_count} open)")
            print(f"  Eigenkapital:   {sim.eigenkapital:,.2f} ({sim.max_concurrent} x {sim.amount:,.2f})")
            print(f"  Endkapital:     {sim.endkapital:,.2f}")
            print(f"  Gewinn:         {sim.gewinn:+,.2f}")
            print(f"  Rendite:        {sim.rendite:+.1f}%")
            print(f"  Rendite p.a.:   {sim.cagr:+.1f}% over {sim.years:.1f} years")
            print(f"  Win rate:       {sim.win_rate:.1f}% ({sim.wins} W / {sim.losses} L)")
            print(f"  Risk/Reward:    {_fmt_ratio(sim.risk_reward)}")
            if sim.equity_curve:
                first, last = sim.equity_curve[0], sim.equity_curve[-1]
                print(
                    f"  Equity:         {first.value:,.2f} ({_fmt_date(first.time)}) → "
                    f"{last.value:,.2f} ({_fmt_date(last.time)})"
                )

        print("\n" + "=" * 70)

    @staticmethod
    def print_batch(result: BatchResult) -> None:
        """Print batch statistics (multi-symbol strategy run)."""
        m = result.metrics
        p = result.positions
        print("\n" + "-" * 70)
        print("  BATCH")
        print("-" * 70)
        print(f"  Closed trades:  {m.total_trades} ({m.wins} W / {m.losses} L)")
        print(f"  Win rate:       {m.win_rate:.1f}%")
        print(f"  Risk/Reward:    {m.risk_reward:.2f}")
        print(f"  Total return:   {m.total_return:+.1f}%")
        print(f"  Max drawdown:   {m.max_drawdown:.1f}%")
        print(f"  Net profit:     {m.net_profit:+.1f}% (compounded)")
        print(f"  Capital:        {p.required_capital:,.2f} ({p.max_parallel} x {p.position_size:,.2f})")
        print(f"  ROI:            {p.roi:+.1f}%")
        if result.per_symbol:
            print(f"\n  {'Symbol':<12} {'Trades':>7} {'Win%':>7} {'R/R':>6} {'Sum%':>9}")
            for s in result.per_symbol:
                print(
                    f"  {s.symbol:<12} {s.total_trades:>7} {s.win_rate:>6.1f}% "
                    f"{s.risk_reward:>6.2f} {s.total_return:>+8.1f}%"
                )

    @staticmethod
    def print_optimization(
        mode: str,
        result: OptimizationResult,
        presets: list[Preset],
    ) -> None:
        """Print the locked-filter pool and the suggested presets."""
        s = result.stats
        print("\n" + "=" * 70)
        print(f"  STOCK POOL: {mode}")
        print("=" * 70)
        print(f"  Stocks:         {result.count}")
        print(f"  Trades:         {s.trade_count} ({s.wins} W / {s.losses} L)")
        print(f"  Win rate:       {s.win_rate:.1f}%")
        print(f"  Risk/Reward:    {_fmt_ratio(s.risk_reward)}")
        print(f"  Return p.a.:    {result.return_pa:+.1f}%")
        print("  Medians:        " + ", ".join(f"{k}={v:g}" for k, v in result.medians.items()))
        if result.filtered:
            print(f"\n  {'Symbol':<12} {'Trades':>7} {'Win%':>7} {'R/R':>6} {'Sum%':>9}")
            for st in sorted(result.filtered, key=lambda x: x.total_return, reverse=True):
                print(
                    f"  {st.symbol:<12} {st.total_trades:>7} {st.win_rate:>6.1f}% "
                    f"{st.risk_reward:>6.2f} {st.total_return:>+8.1f}%"
                )

        if presets:
            print("\n" + "-" * 70)
            print("  PRESETS")
            print("-" * 70)
            for p in presets:
                locked = ", ".join(
                    f"{k}>={v:g}" for k, v in asdict(p.locked).items() if v is not None
                ) or "none"
                print(f"  {p.name:<18} {p.count:>4} stocks {p.return_pa:>+8.1f}% p.a.  [{locked}]")
        print("\n" + "=" * 70)

    @staticmethod
    def to_dict(
        modes: dict[str, ModeData],
        simulations: dict[str, SimulationResult | None],
    ) -> dict:
        """Convert results to a JSON-serializable dict."""
        return {
            "modes": {
                mode: {
                    "trade_count": data.stats.trade_count,
                    "wins": data.stats.wins,
                    "losses": data.stats.losses,
                    "win_rate": round(data.stats.win_rate, 2),
                    "total_return": round(data.stats.total_return, 2),
                    "avg_return": round(data.stats.avg_return, 2),
                    "risk_reward": _json_float(data.stats.risk_reward),
                }
                for mode, data in modes.items()
            },
            "simulations": {
                mode: None if sim is None else {
                    "amount": sim.amount,
                    "eigenkapital": sim.eigenkapital,
                    "endkapital": sim.endkapital,
                    "gewinn": sim.gewinn,
                    "rendite": round(sim.rendite, 2),
                    "cagr": round(sim.cagr, 2),
                    "years": round(sim.years, 3),
                    "max_concurrent": sim.max_concurrent,
                    "trade_count": sim.trade_count,
                    "open_count": sim.open_count,
                    "wins": sim.wins,
                    "losses": sim.losses,
                    "win_rate": round(sim.win_rate, 2),
                    "avg_win": round(sim.avg_win, 2),
                    "avg_loss": round(sim.avg_loss, 2),
                    "risk_reward": _json_float(sim.risk_reward),
                    "trades": [asdict(t) for t in sim.trades],
                    "equity_curve": [asdict(p) for p in sim.equity_curve],
                }
                for mode, sim in simulations.items()
            },
        }

    @staticmethod
    def save_json(data: dict, filepath: str | Path) -> None:
        """Save a report dict to a JSON file."""
        Path(filepath).write_bytes(orjson.dumps(data, option=orjson.OPT_INDENT_2))
        print(f"\nResults saved to {filepath}")
