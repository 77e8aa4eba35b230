"""B-Xtrender strategy implementations.

Oscillators (Pine Script B-Xtrender by @Puppytherapy):
- short  = RSI(EMA(close, 5) - EMA(close, 20), 15) - 50
- long   = RSI(EMA(close, 20), 15) - 50
- signal = T3(short, 5)

Modes:
- defensive:  BUY when short turns positive or on the 4th consecutive
              light-red bar; SELL on the first dark-red bar
- aggressive: BUY on the 1st light-red bar or when short turns positive;
              SELL on the first dark-red bar
- quant:      BUY when both oscillators turn positive above the MA filter;
              SELL when either turns negative or the trailing stop fires
- ditz:       BUY while both are positive above the MA filter;
              SELL when both are negative or the trailing stop fires
- trader:     BUY when the signal line turns up; SELL when it turns down
              or the trailing stop fires

light-red = short < 0 and rising; dark-red = short < 0 and not rising.
Signals are evaluated on the bar close and fill at the next bar's open.
On each bar the exit is finalized before the entry is evaluated, so a
stop-out and a re-entry can share the same fill.

This module is pure business logic with no I/O dependencies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from xtrender.indicators import ema, rsi, sma, t3
from xtrender.models import (
    Bar,
    ExitReason,
    NextOpen,
    OscillatorSample,
    SignalFamily,
    clean_bars,
    histogram_color,
)
from xtrender.models.signal import (
    BRIGHT_GREEN,
    BRIGHT_RED,
    DARK_GREEN,
    DARK_RED,
    ORANGE,
)
from xtrender.strategy.bxtrender.models import (
    SIGNAL_LINE_PERIOD,
    BXtrenderConfig,
    QuantConfig,
)
from xtrender.strategy.protocol import BarInput, IndicatorResult
from xtrender.strategy.registry import register_strategy
from xtrender.strategy.state_machine import Execution

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Oscillator series
# ---------------------------------------------------------------------------
@dataclass
class XtrenderSeries:
    """B-Xtrender oscillators aligned with the valid bars."""

    times: list[int]
    opens: list[float]
    closes: list[float]
    short: list[float]
    long: list[float]
    signal: list[float]
    ma: list[float] | None = None


def compute_series(bars: list[Bar], config: BXtrenderConfig) -> XtrenderSeries:
    """Compute the short, long and signal-line oscillators."""
    closes = [b.close for b in bars]

    ema_fast = ema(closes, config.short_l1)
    ema_slow = ema(closes, config.short_l2)
    diff = [f - s for f, s in zip(ema_fast, ema_slow)]
    short = [v - 50 for v in rsi(diff, config.short_l3)]

    long = [v - 50 for v in rsi(ema(closes, config.long_l1), config.long_l2)]

    return XtrenderSeries(
        times=[b.time for b in bars],
        opens=[b.open for b in bars],
        closes=closes,
        short=short,
        long=long,
        signal=t3(short, SIGNAL_LINE_PERIOD),
    )


def _rising_color(value: float, prev: float) -> str:
    return BRIGHT_GREEN if value > prev else BRIGHT_RED


def _green_shade(value: float, prev: float) -> str:
    return BRIGHT_GREEN if value > prev else DARK_GREEN


def _red_shade(value: float, prev: float) -> str:
    return BRIGHT_RED if value > prev else DARK_RED


# ---------------------------------------------------------------------------
# Shared run state
# ---------------------------------------------------------------------------
@dataclass
class _Run:
    series: XtrenderSeries
    exe: Execution
    start: int
    ma_active: bool = False
    highest: float = 0.0
    short_samples: list[OscillatorSample] = field(default_factory=list)
    long_samples: list[OscillatorSample] = field(default_factory=list)
    signal_samples: list[OscillatorSample] = field(default_factory=list)

    @property
    def in_position(self) -> bool:
        return self.exe.ledger.in_position

    @property
    def entry_price(self) -> float:
        pos = self.exe.ledger.position
        return pos.entry_price if pos is not None else 0.0


class _XtrenderStrategy:
    """Common driver: validation, oscillators, per-bar loop and result."""

    config_class: type[BXtrenderConfig] = BXtrenderConfig
    config_defaults: dict = {}
    strategy_name: str = ""
    primary_oscillator = "short"
    signal_family = SignalFamily.TRADE_RECENCY

    def __init__(self, config: BXtrenderConfig | None = None):
        self.config = config or self.default_config()

    @classmethod
    def default_config(cls, **params) -> BXtrenderConfig:
        """Build this mode's config; ``params`` override the mode defaults."""
        return cls.config_class.model_validate({**cls.config_defaults, **params})

    @property
    def name(self) -> str:
        return self.strategy_name

    @property
    def required_bars(self) -> int:
        return self.config.min_bars

    def compute(
        self,
        bars: BarInput,
        next_open: NextOpen | None = None,
    ) -> IndicatorResult:
        valid = clean_bars(bars)
        if len(valid) < self.required_bars:
            logger.debug(
                "%s: %d valid bars, need %d", self.name, len(valid), self.required_bars
            )
            return IndicatorResult(primary=self.primary_oscillator)

        run = self._prepare(valid, next_open)
        s = run.series
        for i in range(run.start, len(s.closes)):
            self._step(run, i)
            self._emit_samples(run, i)
        self._finish(run)

        return IndicatorResult(
            oscillators={
                "short": run.short_samples,
                "long": run.long_samples,
                "signal": run.signal_samples,
            },
            trades=run.exe.finish(),
            markers=run.exe.markers,
            primary=self.primary_oscillator,
        )

    def _prepare(self, bars: list[Bar], next_open: NextOpen | None) -> _Run:
        series = compute_series(bars, self.config)
        exe = Execution(series.times, series.opens, series.closes, next_open)
        return _Run(series=series, exe=exe, start=self.config.start_index)

    def _step(self, run: _Run, i: int) -> None:
        raise NotImplementedError

    def _finish(self, run: _Run) -> None:
        """Hook run after the last bar, before the ledger is finalized."""

    def _colors(self, run: _Run, i: int) -> tuple[str, str]:
        s = run.series
        return (
            histogram_color(s.short[i], s.short[i - 1]),
            histogram_color(s.long[i], s.long[i - 1]),
        )

    def _emit_samples(self, run: _Run, i: int) -> None:
        s = run.series
        short_color, long_color = self._colors(run, i)
        t = s.times[i]
        run.short_samples.append(OscillatorSample(time=t, value=s.short[i], color=short_color))
        run.long_samples.append(OscillatorSample(time=t, value=s.long[i], color=long_color))
        run.signal_samples.append(
            OscillatorSample(
                time=t, value=s.signal[i], color=_rising_color(s.signal[i], s.signal[i - 1])
            )
        )


# ---------------------------------------------------------------------------
# Defensive / aggressive
# ---------------------------------------------------------------------------
def _is_light_red(short: list[float], i: int) -> bool:
    return short[i] < 0 and short[i] > short[i - 1]


def _is_dark_red(short: list[float], i: int) -> bool:
    return short[i] < 0 and short[i] <= short[i - 1]


def light_red_run(short: list[float], i: int, start: int) -> int:
    """Number of consecutive light-red bars ending at ``i`` (not before start)."""
    if not _is_light_red(short, i):
        return 0
    count = 1
    j = i - 1
    while j >= start and _is_light_red(short, j):
        count += 1
        j -= 1
    return count


class _HistogramStrategy(_XtrenderStrategy):
    """Entries and exits driven by the short-term histogram alone."""

    # Light-red bar ordinal that triggers an entry
    light_red_entry: int = 0

    def _entry_signal(self, run: _Run, i: int) -> bool:
        short = run.series.short
        turned_green = short[i] > 0 and not short[i - 1] > 0
        nth_light_red = light_red_run(short, i, run.start) == self.light_red_entry
        return turned_green or nth_light_red

    def _step(self, run: _Run, i: int) -> None:
        s = run.series
        if s.opens[i] <= 0:
            return
        if run.in_position and run.entry_price > 0 and _is_dark_red(s.short, i):
            run.exe.exit_next(i)
        if not run.in_position and self._entry_signal(run, i):
            run.exe.enter_next(i)


@register_strategy("defensive")
class DefensiveStrategy(_HistogramStrategy):
    """BUY on red->green or the 4th light-red bar; SELL on first dark red."""

    light_red_entry = 4


@register_strategy("aggressive")
class AggressiveStrategy(_HistogramStrategy):
    """BUY on the 1st light-red bar or red->green; SELL on first dark red."""

    light_red_entry = 1


# ---------------------------------------------------------------------------
# Quant family: quant / ditz / trader
# ---------------------------------------------------------------------------
class _QuantFamilyStrategy(_XtrenderStrategy):
    """Dual-oscillator modes with MA filter and trailing stop."""

    config_class = QuantConfig
    config: QuantConfig

    def _prepare(self, bars: list[Bar], next_open: NextOpen | None) -> _Run:
        cfg = self.config
        run = super()._prepare(bars, next_open)
        run.ma_active = cfg.ma_filter_active(len(bars))
        if cfg.ma_filter_on and not run.ma_active:
            logger.debug("%s: MA filter disabled, only %d bars", self.name, len(bars))
        if run.ma_active:
            average = sma if cfg.ma_type == "SMA" else ema
            run.series.ma = average(run.series.closes, cfg.ma_length)
        run.start = cfg.start_index_for(run.ma_active)
        return run

    # -- predicates ---------------------------------------------------------

    def _ma_ok(self, run: _Run, i: int) -> bool:
        if not run.ma_active:
            return True
        return run.series.closes[i] > run.series.ma[i]

    def _both_positive(self, run: _Run, i: int) -> bool:
        return run.series.short[i] > 0 and run.series.long[i] > 0

    def _entry_signal(self, run: _Run, i: int) -> bool:
        raise NotImplementedError

    def _exit_signal(self, run: _Run, i: int) -> bool:
        raise NotImplementedError

    def _entry_state(self, run: _Run, i: int) -> bool:
        """Whether bar ``i`` sits in this mode's entry condition."""
        return self._both_positive(run, i) and self._ma_ok(run, i)

    def _entry_edge(self, run: _Run, i: int) -> bool:
        """Whether the entry condition first appears on bar ``i``."""
        return self._entry_signal(run, i)

    # -- per-bar step -------------------------------------------------------

    def _trailing_stop_hit(self, run: _Run, price: float) -> bool:
        cfg = self.config
        if not (cfg.tsl_enabled and run.in_position and run.highest > 0):
            return False
        return price <= run.highest * (1 - cfg.tsl_percent / 100)

    def _step(self, run: _Run, i: int) -> None:
        s = run.series
        price = s.closes[i]
        if run.in_position and price > run.highest:
            run.highest = price

        tsl = self._trailing_stop_hit(run, price)

        # Exit first; an entry on the same bar sees the freed position
        if run.in_position:
            if run.entry_price > 0 and (tsl or self._exit_signal(run, i)):
                if tsl:
                    trade = run.exe.exit_next(i, ExitReason.TSL, "TSL", ORANGE)
                else:
                    trade = run.exe.exit_next(i, ExitReason.SIGNAL)
                if trade is not None:
                    run.highest = 0.0
        if not run.in_position and s.opens[i] > 0 and self._entry_signal(run, i):
            if run.exe.enter_next(i):
                run.highest = run.entry_price

    def _colors(self, run: _Run, i: int) -> tuple[str, str]:
        s = run.series
        sv, sp, lv, lp = s.short[i], s.short[i - 1], s.long[i], s.long[i - 1]
        if self._both_positive(run, i):
            return _green_shade(sv, sp), _green_shade(lv, lp)
        if sv < 0 and lv < 0:
            return _red_shade(sv, sp), _red_shade(lv, lp)
        return histogram_color(sv, sp), histogram_color(lv, lp)

    # -- trailing entry bootstrap -----------------------------------------

    def _finish(self, run: _Run) -> None:
        """Open the position a flat run should currently hold.

        When the last bar is in the entry condition but the loop ended flat,
        the entry edge is searched forward from the last exit bar and the
        trade is opened at the following bar's open (or at NextOpen if the
        edge is not found). Skipped when the last exit filled at NextOpen.
        """
        s = run.series
        exe = run.exe
        last = len(s.closes) - 1
        if run.in_position or not self._entry_state(run, last):
            return

        last_trade = exe.ledger.last_trade
        next_open = exe.next_open
        if last_trade is not None and next_open is not None:
            if last_trade.exit_date == next_open.time:
                return

        search_start = run.start
        if last_trade is not None and last_trade.exit_date is not None:
            for j in range(run.start, last + 1):
                if s.times[j] == last_trade.exit_date:
                    search_start = j
                    break

        for j in range(search_start, last):
            if self._entry_edge(run, j) and s.opens[j + 1] > 0:
                logger.debug("%s: bootstrap entry at %d", self.name, s.times[j + 1])
                exe.enter_at(s.times[j + 1], s.opens[j + 1])
                return

        if next_open is not None and next_open.open > 0:
            exe.enter_at(next_open.time, next_open.open)


@register_strategy("quant")
class QuantStrategy(_QuantFamilyStrategy):
    """BUY when both oscillators turn positive; SELL when either is negative."""

    def _entry_signal(self, run: _Run, i: int) -> bool:
        s = run.series
        return (
            self._both_positive(run, i)
            and self._ma_ok(run, i)
            and (s.short[i - 1] <= 0 or s.long[i - 1] <= 0)
        )

    def _exit_signal(self, run: _Run, i: int) -> bool:
        s = run.series
        return s.short[i] < 0 or s.long[i] < 0


@register_strategy("ditz")
class DitzStrategy(_QuantFamilyStrategy):
    """BUY while both oscillators are positive; SELL when both are negative."""

    primary_oscillator = "signal"

    def _entry_signal(self, run: _Run, i: int) -> bool:
        return self._entry_state(run, i)

    def _exit_signal(self, run: _Run, i: int) -> bool:
        s = run.series
        return s.short[i] < 0 and s.long[i] < 0

    def _entry_edge(self, run: _Run, i: int) -> bool:
        return self._entry_state(run, i) and not self._both_positive(run, i - 1)


@register_strategy("trader")
class TraderStrategy(_QuantFamilyStrategy):
    """BUY when the T3 signal line turns up; SELL when it turns down."""

    primary_oscillator = "signal"
    config_defaults = {"ma_filter_on": False}

    @staticmethod
    def _turns(signal: list[float], i: int) -> tuple[bool, bool]:
        """(rising now, rising on the previous bar)."""
        prev = signal[i - 1] if i >= 1 else signal[i]
        prev2 = signal[i - 2] if i >= 2 else prev
        return signal[i] > prev, prev > prev2

    def _entry_signal(self, run: _Run, i: int) -> bool:
        rising, rising_prev = self._turns(run.series.signal, i)
        return rising and not rising_prev

    def _exit_signal(self, run: _Run, i: int) -> bool:
        rising, rising_prev = self._turns(run.series.signal, i)
        return not rising and rising_prev

    def _entry_state(self, run: _Run, i: int) -> bool:
        return self._entry_signal(run, i)

    def _colors(self, run: _Run, i: int) -> tuple[str, str]:
        s = run.series
        shade = _green_shade if s.signal[i] > s.signal[i - 1] else _red_shade
        return shade(s.short[i], s.short[i - 1]), shade(s.long[i], s.long[i - 1])
