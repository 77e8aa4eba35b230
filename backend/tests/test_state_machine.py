"""Tests for next-bar execution and the regime/pullback state machine."""

import pytest

from xtrender.models import Bar, ExitReason, NextOpen
from xtrender.strategy import Execution, PullbackStateMachine, SetupTriggers


def make_bar(i: int, o: float, h: float, l: float, c: float) -> Bar:
    return Bar(time=(i + 1) * 100, open=o, high=h, low=l, close=c)


# Regime set on bar 0, pullback on bar 1, breakout close on bar 2
SETUP = [
    make_bar(0, 10.0, 11.0, 9.0, 10.5),
    make_bar(1, 10.5, 10.6, 9.5, 10.0),
    make_bar(2, 10.0, 12.0, 9.8, 11.5),
]


def make_triggers(n: int, pullbacks=(1,), regime=None, **kwargs) -> SetupTriggers:
    return SetupTriggers(
        regime=regime or [1] * n,
        pullback_start=lambda i, d: i in pullbacks,
        **kwargs,
    )


def run_machine(bars, next_open=None, **kwargs):
    triggers = kwargs.pop("triggers", None) or make_triggers(len(bars))
    machine = PullbackStateMachine(triggers, **kwargs)
    exe = machine.run(bars, 0, next_open)
    return exe, exe.finish()


class TestExecution:
    """Tests for fills at the next bar's open."""

    def test_next_fill_uses_following_open(self):
        exe = Execution([100, 200], [10.0, 11.0], [10.5, 11.5])
        assert exe.next_fill(0) == (200, 11.0)

    def test_last_bar_without_next_open(self):
        exe = Execution([100, 200], [10.0, 11.0], [10.5, 11.5])
        assert exe.next_fill(1) is None

    def test_last_bar_fills_at_next_open(self):
        exe = Execution([100, 200], [10.0, 11.0], [10.5, 11.5], NextOpen(time=300, open=12.0))
        assert exe.next_fill(1) == (300, 12.0)

    def test_zero_open_is_not_fillable(self):
        exe = Execution([100, 200], [10.0, 0.0], [10.5, 11.5])
        assert exe.next_fill(0) is None

    def test_markers_for_entry_and_exit(self):
        exe = Execution([100, 200, 300], [10.0, 11.0, 12.0], [10.5, 11.5, 12.5])
        exe.enter_next(0)
        exe.exit_next(1)

        assert [m.text for m in exe.markers] == ["BUY $11.00", "SELL $12.00 +9.1%"]

    def test_current_price_prefers_next_open_close(self):
        exe = Execution([100], [10.0], [10.5], NextOpen(time=200, open=11.0, close=11.2))
        assert exe.current_price() == 11.2

        exe = Execution([100], [10.0], [10.5])
        assert exe.current_price() == 10.5


class TestPullbackEntry:
    """Tests for the breakout entry."""

    def test_breakout_fills_next_open_with_sl_tp(self):
        bars = SETUP + [make_bar(3, 11.5, 12.0, 11.0, 11.8)]

        _, trades = run_machine(bars)

        assert len(trades) == 1
        trade = trades[0]
        assert trade.is_open
        assert trade.entry_date == 400
        assert trade.entry_price == 11.5
        # Stop at the pullback low, target at 2R
        assert trade.stop_loss == pytest.approx(9.5)
        assert trade.take_profit == pytest.approx(15.5)

    def test_breakout_on_last_bar_fills_at_next_open(self):
        _, trades = run_machine(SETUP, next_open=NextOpen(time=400, open=11.5, close=11.7))

        assert len(trades) == 1
        assert trades[0].entry_date == 400
        assert trades[0].current_price == 11.7

    def test_breakout_on_last_bar_without_next_open(self):
        _, trades = run_machine(SETUP)
        assert trades == []

    def test_risk_below_minimum_is_skipped(self):
        bars = [
            make_bar(0, 10.0, 11.0, 9.0, 10.5),
            make_bar(1, 11.5, 11.55, 11.49, 11.5),
            make_bar(2, 11.6, 12.0, 11.55, 11.7),
            make_bar(3, 11.5, 12.0, 11.5, 11.8),
        ]

        _, trades = run_machine(bars)

        assert trades == []

    def test_confirm_phase_required(self):
        """With a pullback_end trigger the breakout waits for confirmation."""
        bars = SETUP + [make_bar(3, 11.5, 12.0, 11.0, 11.8)]
        triggers = make_triggers(len(bars), pullback_end=lambda i, d: False)

        _, trades = run_machine(bars, triggers=triggers)

        assert trades == []

    def test_stop_level_applied(self):
        bars = SETUP + [make_bar(3, 11.5, 12.0, 11.0, 11.8)]
        triggers = make_triggers(len(bars), stop_level=lambda extreme, d: extreme - 0.5)

        _, trades = run_machine(bars, triggers=triggers)

        assert trades[0].stop_loss == pytest.approx(9.0)
        assert trades[0].take_profit == pytest.approx(16.5)


class TestPullbackExit:
    """Tests for SL/TP/regime exits."""

    def test_take_profit(self):
        bars = SETUP + [
            make_bar(3, 11.5, 12.0, 11.0, 11.8),
            make_bar(4, 11.8, 16.0, 11.5, 15.0),
        ]

        _, trades = run_machine(bars)

        assert len(trades) == 1
        assert trades[0].exit_reason == ExitReason.TP
        assert trades[0].exit_price == pytest.approx(15.5)
        assert trades[0].exit_date == 500

    def test_stop_loss(self):
        bars = SETUP + [
            make_bar(3, 11.5, 12.0, 11.0, 11.8),
            make_bar(4, 11.8, 12.0, 9.0, 9.2),
        ]

        _, trades = run_machine(bars)

        assert trades[0].exit_reason == ExitReason.SL
        assert trades[0].exit_price == pytest.approx(9.5)

    def test_stop_loss_wins_when_both_hit(self):
        bars = SETUP + [
            make_bar(3, 11.5, 12.0, 11.0, 11.8),
            make_bar(4, 11.8, 16.0, 9.0, 12.0),
        ]

        _, trades = run_machine(bars)

        assert trades[0].exit_reason == ExitReason.SL

    def test_regime_flip_exits_at_close(self):
        bars = SETUP + [
            make_bar(3, 11.5, 12.0, 11.0, 11.8),
            make_bar(4, 11.8, 12.2, 11.2, 11.9),
        ]
        triggers = make_triggers(len(bars), regime=[1, 1, 1, 1, -1])

        exe, trades = run_machine(bars, triggers=triggers)

        assert trades[0].exit_reason == ExitReason.SIGNAL
        assert trades[0].exit_price == 11.9
        assert exe.markers[-1].text.startswith("EXIT")


class TestSameBarOrdering:
    """A bar that stops out the open trade and breaks the swing."""

    # Trade from bar 3 at 11.5 (SL 9.5), pullback re-armed on bar 3, swing 12.0
    HEAD = SETUP + [make_bar(3, 11.5, 12.0, 11.0, 11.8)]

    def test_stop_loss_then_breakout_entry(self):
        bars = self.HEAD + [
            make_bar(4, 11.8, 12.5, 9.0, 12.2),  # SL hit, close above swing
            make_bar(5, 12.3, 12.6, 12.0, 12.4),
        ]
        triggers = make_triggers(len(bars), pullbacks=(1, 3))

        exe, trades = run_machine(bars, triggers=triggers)

        assert len(trades) == 2
        assert trades[0].exit_reason == ExitReason.SL
        assert trades[0].exit_date == 500
        assert trades[0].exit_price == pytest.approx(9.5)
        # Entry queued on bar 4, filled at bar 5's open
        assert trades[1].entry_date == 600
        assert trades[1].entry_price == 12.3
        assert trades[1].stop_loss == pytest.approx(9.0)
        assert trades[1].take_profit == pytest.approx(18.9)
        assert trades[1].is_open
        assert [m.text.split()[0] for m in exe.markers] == ["BUY", "SL", "BUY"]

    def test_breakout_ignored_while_position_stays_open(self):
        bars = self.HEAD + [
            make_bar(4, 11.8, 12.5, 11.2, 12.2),  # close above swing, no exit
            make_bar(5, 12.3, 12.6, 12.0, 12.4),
        ]
        triggers = make_triggers(len(bars), pullbacks=(1, 3))

        _, trades = run_machine(bars, triggers=triggers)

        assert len(trades) == 1
        assert trades[0].entry_date == 400
        assert trades[0].is_open


class TestCooldown:
    """Tests for the minimum spacing between setups."""

    BARS = SETUP + [
        make_bar(3, 11.5, 12.0, 11.0, 11.8),
        make_bar(4, 11.8, 16.0, 11.5, 15.0),  # TP
        make_bar(5, 15.0, 15.5, 14.0, 14.5),  # pullback
        make_bar(6, 14.5, 17.0, 14.2, 16.5),  # breakout above 16
        make_bar(7, 16.5, 17.0, 16.0, 16.8),
    ]

    def test_second_setup_without_cooldown(self):
        triggers = make_triggers(len(self.BARS), pullbacks=(1, 5))

        _, trades = run_machine(self.BARS, triggers=triggers)

        assert len(trades) == 2
        assert trades[1].entry_date == 800
        assert trades[1].stop_loss == pytest.approx(14.0)

    def test_second_setup_within_cooldown_ignored(self):
        triggers = make_triggers(len(self.BARS), pullbacks=(1, 5))

        _, trades = run_machine(self.BARS, triggers=triggers, cooldown=10)

        assert len(trades) == 1
