"""CLI entry point for the portfolio tools.

Usage:
    python -m portfolio signal --strategy quant data/AAPL.csv data/MSFT.csv
    python -m portfolio signal --strategy defensive --save-rows rows.json data/*.csv
    python -m portfolio simulate rows.json --amount 250 --range 2y
    python -m portfolio simulate rows.json --config run.yaml -o report.json
    python -m portfolio optimize rows.json --mode quant --range 3y --winrate 50
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import orjson

from portfolio.aggregation import TIME_RANGES, PerformanceFilters, aggregate, cutoff_for_range
from portfolio.config import RunConfig, get_settings, load_run_config
from portfolio.loader import load_bars, load_trade_rows, save_trade_rows
from portfolio.optimizer import LockedFilters, build_stock_pool, optimize, suggest_presets
from portfolio.report import ReportFormatter
from portfolio.simulator import simulate
from portfolio.stats import BatchStatisticsCalculator, SymbolTrade
from xtrender import build_trade_rows, calculate_metrics, classify_signal, compute_indicator
from xtrender.strategy import list_strategies

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="python -m portfolio",
        description="B-Xtrender signals and trade-based portfolio simulation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m portfolio signal --strategy quant data/AAPL.csv data/MSFT.csv
  python -m portfolio signal --strategy ditz --params '{"tslPercent": 15}' data/AAPL.csv
  python -m portfolio signal --strategy defensive --save-rows rows.json data/*.csv
  python -m portfolio simulate rows.json --amount 250 --range 2y --min-winrate 50
  python -m portfolio simulate rows.json --config run.yaml -o report.json
  python -m portfolio optimize rows.json --mode quant --range 3y --winrate 50
        """,
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # signal
    sig = sub.add_parser("signal", help="Run a strategy over bar files and classify the signal")
    sig.add_argument("bars", nargs="+", help="Bar files (CSV or JSON); symbol = file stem")
    sig.add_argument(
        "--strategy",
        default=get_settings().default_strategy,
        help=f"Strategy name ({', '.join(list_strategies())})",
    )
    sig.add_argument(
        "--params",
        type=str,
        default=None,
        help="Strategy parameters as a JSON object",
    )
    sig.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML run config; its strategy_params apply to --strategy",
    )
    sig.add_argument(
        "--save-rows",
        type=str,
        default=None,
        help="Write the trades as portfolio trade rows (JSON)",
    )
    sig.add_argument(
        "--long-only",
        action="store_true",
        help="Ignore short trades in the batch statistics",
    )

    # simulate
    simp = sub.add_parser("simulate", help="Aggregate trade rows and simulate capital")
    simp.add_argument("rows", help="Trade rows JSON file")
    simp.add_argument("--config", type=str, default=None, help="YAML run config")
    simp.add_argument("--amount", type=float, default=None, help="Position size per trade")
    simp.add_argument(
        "--range",
        dest="time_range",
        choices=[*TIME_RANGES, "all"],
        default=None,
        help="Lookback window for trade entries",
    )
    simp.add_argument(
        "--now",
        type=int,
        default=None,
        help="Reference epoch seconds (default: current time)",
    )
    simp.add_argument("--min-winrate", type=float, default=None)
    simp.add_argument("--max-winrate", type=float, default=None)
    simp.add_argument("--min-rr", type=float, default=None)
    simp.add_argument("--max-rr", type=float, default=None)
    simp.add_argument("--min-avg-return", type=float, default=None)
    simp.add_argument("--max-avg-return", type=float, default=None)
    simp.add_argument("--min-market-cap", type=float, default=None, help="Billions")
    simp.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output file path for JSON results",
    )

    # optimize
    opt = sub.add_parser("optimize", help="Filter one mode's stock pool and suggest presets")
    opt.add_argument("rows", help="Trade rows JSON file")
    opt.add_argument("--mode", default=get_settings().default_strategy, help="Mode to optimize")
    opt.add_argument(
        "--range",
        dest="time_range",
        choices=[*TIME_RANGES, "all"],
        default=get_settings().time_range,
        help="Lookback window for trade entries",
    )
    opt.add_argument("--now", type=int, default=None, help="Reference epoch seconds")
    opt.add_argument("--trades", type=float, default=None, help="Locked minimum trade count")
    opt.add_argument("--winrate", type=float, default=None, help="Locked minimum win rate")
    opt.add_argument("--rr", type=float, default=None, help="Locked minimum risk/reward")
    opt.add_argument("--total-return", type=float, default=None, help="Locked minimum summed return")
    opt.add_argument("--market-cap", type=float, default=None, help="Locked minimum market cap (billions)")
    return parser.parse_args(argv)


def cmd_signal(args: argparse.Namespace) -> None:
    """Compute the indicator and signal for each bar file."""
    params = {}
    if args.config:
        params.update(load_run_config(args.config).strategy_params.get(args.strategy, {}))
    if args.params:
        params.update(orjson.loads(args.params))
    all_rows = []
    batch: list[SymbolTrade] = []

    print(f"\n{'Symbol':<12} {'Signal':<8} {'Bars':>5} {'Trades':>7} {'Win%':>7} {'R/R':>6} {'Sum%':>9}")
    print("-" * 60)
    for path in args.bars:
        symbol = Path(path).stem.upper()
        bars = load_bars(path)
        result = compute_indicator(bars, args.strategy, params)
        signal = classify_signal(args.strategy, result.oscillators, result.trades)
        scores = calculate_metrics(result.trades)
        print(
            f"{symbol:<12} {signal.signal.value:<8} {signal.bars:>5} "
            f"{scores.total_trades:>7} {scores.win_rate:>6.1f}% "
            f"{scores.risk_reward:>6.2f} {scores.total_return:>+8.1f}%"
        )
        all_rows.extend(build_trade_rows(symbol, args.strategy, result.trades, scores))
        batch.extend(SymbolTrade(symbol, t) for t in result.trades)

    calc = BatchStatisticsCalculator(long_only=args.long_only)
    ReportFormatter.print_batch(calc.calculate(batch))

    if args.save_rows:
        save_trade_rows(all_rows, args.save_rows)


def _run_config(args: argparse.Namespace) -> RunConfig:
    base = load_run_config(args.config) if args.config else RunConfig()
    overrides = {}
    if args.amount is not None:
        overrides["amount"] = args.amount
    if args.time_range is not None:
        overrides["time_range"] = args.time_range

    cli_filters = {
        key: getattr(args, key)
        for key in PerformanceFilters.model_fields
        if getattr(args, key) is not None
    }
    if cli_filters:
        overrides["filters"] = base.filters.model_copy(update=cli_filters)
    if not overrides:
        return base
    return RunConfig.model_validate({**base.model_dump(), **overrides})


def cmd_simulate(args: argparse.Namespace) -> None:
    """Aggregate trade rows per mode and run the capital simulation."""
    config = _run_config(args)
    now = args.now if args.now is not None else int(time.time())
    cutoff = cutoff_for_range(config.time_range, now)
    symbols = set(config.symbols) if config.symbols else None

    rows = load_trade_rows(args.rows)
    modes = aggregate(rows, cutoff, config.filters, symbols, config.modes)
    simulations = {
        mode: simulate(data.trades, config.amount, now) for mode, data in modes.items()
    }

    ReportFormatter.print_console(modes, simulations, config.time_range)
    if args.output:
        ReportFormatter.save_json(ReportFormatter.to_dict(modes, simulations), args.output)


def cmd_optimize(args: argparse.Namespace) -> None:
    """Apply locked thresholds to one mode's stock pool and grid-search presets."""
    now = args.now if args.now is not None else int(time.time())
    cutoff = cutoff_for_range(args.time_range, now)
    rows = load_trade_rows(args.rows)

    pool = build_stock_pool(rows, args.mode, cutoff)
    locked = LockedFilters(
        trades=args.trades,
        winrate=args.winrate,
        rr=args.rr,
        total_return=args.total_return,
        market_cap=args.market_cap,
    )
    result = optimize(pool, rows, args.mode, cutoff, locked, now)
    ReportFormatter.print_optimization(args.mode, result, suggest_presets(pool, now))


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    # Configure logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        if args.command == "signal":
            cmd_signal(args)
        elif args.command == "optimize":
            cmd_optimize(args)
        else:
            cmd_simulate(args)
    except (KeyError, ValueError, OSError) as e:
        logger.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
