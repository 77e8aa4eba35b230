"""Tests for the strategy registry and protocol."""

import pytest

from xtrender.models import OscillatorSample, Trade
from xtrender.strategy import (
    IndicatorResult,
    Strategy,
    create_strategy,
    get_strategy_class,
    list_strategies,
    register_strategy,
)
from xtrender.strategy import registry


@pytest.fixture
def clean_registry(monkeypatch):
    monkeypatch.setattr(registry, "_REGISTRY", dict(registry._REGISTRY))


class TestRegistry:
    """Tests for strategy registration."""

    def test_register_sets_name(self, clean_registry):
        @register_strategy("dummy")
        class Dummy:
            def __init__(self, config=None):
                self.config = config

        assert Dummy.strategy_name == "dummy"
        assert get_strategy_class("dummy") is Dummy
        assert "dummy" in list_strategies()
        assert create_strategy("dummy", config=3).config == 3

    def test_duplicate_name(self, clean_registry):
        with pytest.raises(ValueError, match="already registered"):
            @register_strategy("quant")
            class Again:
                pass

    def test_unknown(self):
        with pytest.raises(KeyError, match="Available"):
            get_strategy_class("missing")

    @pytest.mark.parametrize("name", ["defensive", "quant", "smart_money_flow", "hann_trend"])
    def test_builtin_strategies_satisfy_protocol(self, name):
        assert isinstance(create_strategy(name), Strategy)


class TestIndicatorResult:
    """Tests for IndicatorResult helpers."""

    def test_empty(self):
        result = IndicatorResult(primary="short")
        assert result.is_empty
        assert result.primary_series == []
        assert result.open_trade is None

    def test_open_and_closed(self):
        closed = Trade(entry_date=1, entry_price=1, exit_date=2, exit_price=2, return_pct=100)
        opened = Trade(entry_date=3, entry_price=2, current_price=3, is_open=True)
        result = IndicatorResult(
            oscillators={"short": [OscillatorSample(time=1, value=1.0)]},
            trades=[closed, opened],
            primary="short",
        )

        assert not result.is_empty
        assert result.open_trade is opened
        assert result.closed_trades == [closed]
