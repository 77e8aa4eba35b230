"""Smart Money Flow strategy implementation.

Indicators:
- flow   = EMA(money_flow_ratio(flow_window), flow_smooth) * 100
- basis  = EMA(EMA(close, trend_length), basis_smooth), same for open
- bands  = basis_close +/- ATR(atr_length) * mult,
           mult = tightness + (expansion - tightness) * clamp(|flow/100|^boost, 0, 1)

Signal logic:
- regime = +1 on a close above the upper band, -1 below the lower band,
  otherwise unchanged
- tracking: follow the swing high (bull) / swing low (bear)
- armed: close crosses back through basis_close, record the pullback extreme
- entry: close breaks the tracked swing; next bar open, dot_cooldown bars
  between entries
- SL = pullback extreme, TP = entry +/- risk_reward * risk
"""

from __future__ import annotations

import logging

from xtrender.indicators import atr, ema, money_flow_ratio
from xtrender.models import (
    Direction,
    NextOpen,
    OscillatorSample,
    SignalFamily,
    clean_bars,
)
from xtrender.models.signal import BRIGHT_GREEN, BRIGHT_RED
from xtrender.strategy.protocol import BarInput, IndicatorResult
from xtrender.strategy.registry import register_strategy
from xtrender.strategy.smart_money_flow.models import (
    SMART_MONEY_FLOW_STRATEGY_NAME,
    SmartMoneyFlowConfig,
)
from xtrender.strategy.state_machine import PullbackStateMachine, SetupTriggers

logger = logging.getLogger(__name__)


def band_multiplier(flow: float, config: SmartMoneyFlowConfig) -> float:
    """ATR multiplier for a given flow reading (flow is scaled by 100)."""
    strength = min(max(abs(flow / 100) ** config.flow_boost, 0.0), 1.0)
    return config.band_tightness + (config.band_expansion - config.band_tightness) * strength


def band_regime(closes: list[float], upper: list[float], lower: list[float]) -> list[int]:
    """Persistent regime flipped by closes outside the bands."""
    regime = []
    current = 0
    for c, up, lo in zip(closes, upper, lower):
        if c > up:
            current = 1
        elif c < lo:
            current = -1
        regime.append(current)
    return regime


@register_strategy(SMART_MONEY_FLOW_STRATEGY_NAME)
class SmartMoneyFlowStrategy:
    """Volume-flow adaptive bands with a 3-phase pullback entry."""

    config_class = SmartMoneyFlowConfig
    primary_oscillator = "flow"
    signal_family = SignalFamily.BAR_COUNT

    def __init__(self, config: SmartMoneyFlowConfig | None = None):
        self.config = config or SmartMoneyFlowConfig()

    @classmethod
    def default_config(cls, **params) -> SmartMoneyFlowConfig:
        return SmartMoneyFlowConfig.model_validate(params)

    @property
    def name(self) -> str:
        return SMART_MONEY_FLOW_STRATEGY_NAME

    @property
    def required_bars(self) -> int:
        return self.config.required_bars

    def compute(
        self,
        bars: BarInput,
        next_open: NextOpen | None = None,
    ) -> IndicatorResult:
        cfg = self.config
        valid = clean_bars(bars)
        if len(valid) < self.required_bars:
            logger.debug("%s: %d valid bars, need %d", self.name, len(valid), self.required_bars)
            return IndicatorResult(primary=self.primary_oscillator)

        highs = [b.high for b in valid]
        lows = [b.low for b in valid]
        closes = [b.close for b in valid]
        opens = [b.open for b in valid]
        volumes = [b.volume for b in valid]

        ratio = money_flow_ratio(highs, lows, closes, volumes, cfg.flow_window)
        flow = [v * 100 for v in ema(ratio, cfg.flow_smooth)]

        basis_close = ema(ema(closes, cfg.trend_length), cfg.basis_smooth)
        basis_open = ema(ema(opens, cfg.trend_length), cfg.basis_smooth)
        atr_values = atr(highs, lows, closes, cfg.atr_length)

        upper = []
        lower = []
        for b, a, f in zip(basis_close, atr_values, flow):
            width = a * band_multiplier(f, cfg)
            upper.append(b + width)
            lower.append(b - width)

        def retest(i: int, d: Direction) -> bool:
            if d == Direction.LONG:
                return closes[i] < basis_close[i]
            return closes[i] > basis_close[i]

        triggers = SetupTriggers(
            regime=band_regime(closes, upper, lower),
            pullback_start=retest,
        )
        machine = PullbackStateMachine(
            triggers,
            risk_reward=cfg.risk_reward,
            cooldown=cfg.dot_cooldown,
        )
        exe = machine.run(valid, cfg.warmup, next_open)

        start = cfg.warmup
        times = [b.time for b in valid]

        def series(values: list[float]) -> list[OscillatorSample]:
            return [
                OscillatorSample(time=times[i], value=values[i])
                for i in range(start, len(valid))
            ]

        flow_samples = [
            OscillatorSample(
                time=times[i],
                value=flow[i],
                color=BRIGHT_GREEN if flow[i] >= 0 else BRIGHT_RED,
            )
            for i in range(start, len(valid))
        ]

        return IndicatorResult(
            oscillators={"flow": flow_samples},
            trades=exe.finish(),
            markers=exe.markers,
            overlays={
                "basis_open": series(basis_open),
                "basis_close": series(basis_close),
                "upper_band": series(upper),
                "lower_band": series(lower),
            },
            primary=self.primary_oscillator,
        )
