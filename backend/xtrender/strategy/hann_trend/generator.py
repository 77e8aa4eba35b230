"""Hann Trend strategy implementation.

Indicators:
- DMH = Hann FIR(RMA(+DM - -DM, dmh_length), dmh_length)
- Parabolic SAR (sar_start / sar_increment / sar_max)

Signal logic (4 phases, mirrored for shorts):
1. DMH above 0 -> bullish regime, track the swing high
2. SAR flips above price -> pullback; swing frozen to the highest high of
   the last swing_lookback bars, pullback low tracked
3. SAR flips back below price -> wait for confirmation
4. close above the frozen swing -> LONG at the next bar open

SL = pullback low * (1 - sl_buffer/100), TP = entry + risk_reward * risk.
"""

from __future__ import annotations

import logging

from xtrender.indicators import (
    directional_movement,
    hann_fir,
    highest,
    lowest,
    parabolic_sar,
    rma,
)
from xtrender.models import (
    Direction,
    NextOpen,
    OscillatorSample,
    SignalFamily,
    clean_bars,
)
from xtrender.models.signal import BLUE, YELLOW
from xtrender.strategy.hann_trend.models import (
    HANN_TREND_STRATEGY_NAME,
    HannTrendConfig,
)
from xtrender.strategy.protocol import BarInput, IndicatorResult
from xtrender.strategy.registry import register_strategy
from xtrender.strategy.state_machine import PullbackStateMachine, SetupTriggers

logger = logging.getLogger(__name__)


def sign_regime(values: list[float]) -> list[int]:
    """Persistent regime from the sign of an oscillator (0 keeps the last)."""
    regime = []
    current = 0
    for v in values:
        if v > 0:
            current = 1
        elif v < 0:
            current = -1
        regime.append(current)
    return regime


@register_strategy(HANN_TREND_STRATEGY_NAME)
class HannTrendStrategy:
    """Hann-filtered directional movement with SAR pullback entries."""

    config_class = HannTrendConfig
    primary_oscillator = "dmh"
    signal_family = SignalFamily.BAR_COUNT

    def __init__(self, config: HannTrendConfig | None = None):
        self.config = config or HannTrendConfig()

    @classmethod
    def default_config(cls, **params) -> HannTrendConfig:
        return HannTrendConfig.model_validate(params)

    @property
    def name(self) -> str:
        return HANN_TREND_STRATEGY_NAME

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

        net_dm = directional_movement(highs, lows)
        dmh = hann_fir(rma(net_dm, cfg.dmh_length), cfg.dmh_length)
        sar, sar_dir = parabolic_sar(
            highs, lows, cfg.sar_start, cfg.sar_increment, cfg.sar_max
        )
        swing_highs = highest(highs, cfg.swing_lookback)
        swing_lows = lowest(lows, cfg.swing_lookback)

        def sar_flipped_against(i: int, d: Direction) -> bool:
            return sar_dir[i] == -d.value and sar_dir[i - 1] == d.value

        def sar_flipped_back(i: int, d: Direction) -> bool:
            return sar_dir[i] == d.value and sar_dir[i - 1] == -d.value

        def frozen_swing(i: int, d: Direction) -> float:
            return swing_highs[i] if d == Direction.LONG else swing_lows[i]

        def buffered_stop(extreme: float, d: Direction) -> float:
            return extreme * (1 - d.value * cfg.sl_buffer / 100)

        triggers = SetupTriggers(
            regime=sign_regime(dmh),
            pullback_start=sar_flipped_against,
            pullback_end=sar_flipped_back,
            freeze_swing=frozen_swing,
            stop_level=buffered_stop,
        )
        machine = PullbackStateMachine(triggers, risk_reward=cfg.risk_reward)
        exe = machine.run(valid, cfg.warmup, next_open)

        start = cfg.warmup
        dmh_samples = [
            OscillatorSample(
                time=valid[i].time,
                value=dmh[i],
                color=YELLOW if dmh[i] > 0 else BLUE,
            )
            for i in range(start, len(valid))
        ]
        sar_samples = [
            OscillatorSample(time=valid[i].time, value=sar[i])
            for i in range(start, len(valid))
        ]

        return IndicatorResult(
            oscillators={"dmh": dmh_samples},
            trades=exe.finish(),
            markers=exe.markers,
            overlays={"sar": sar_samples},
            primary=self.primary_oscillator,
        )
