"""
Tidewater Drop/Rise Strategy Tests

Signal thresholds, repeated firing, history buffer and config merging.
"""

import pytest

from core.models import PriceUpdate, StrategyConfig
from strategies.base import SignalType, Strategy
from strategies.drop_rise import HISTORY_CAPACITY, DropRiseStrategy
from strategies.registry import get_strategy
from tests.support import T0, make_updates


async def feed(strategy, updates):
    return [await strategy.on_update(u) for u in updates]


class TestDropRiseStrategy:
    """Test suite for DropRiseStrategy."""

    @pytest.fixture
    def strategy(self):
        """Strategy with default thresholds (5% drop, 10% rise)."""
        return DropRiseStrategy()

    def test_satisfies_strategy_protocol(self):
        assert isinstance(DropRiseStrategy(), Strategy)

    @pytest.mark.asyncio
    async def test_first_observation_never_signals(self, strategy):
        """Even an extreme first price only sets the reference."""
        signals = await feed(strategy, [
            PriceUpdate("ETHUSDT", 1.0, T0),
            PriceUpdate("BTCUSDT", 99999.0, T0),
        ])
        assert signals == [None, None]
        assert strategy.reference_price("ETHUSDT") == 1.0

    @pytest.mark.asyncio
    async def test_no_signal_inside_band(self, strategy):
        signals = await feed(strategy, make_updates("ETHUSDT", [100.0, 96.0, 104.0, 109.9, 95.1]))
        assert signals == [None] * 5

    @pytest.mark.asyncio
    async def test_buy_on_drop(self, strategy):
        signals = await feed(strategy, make_updates("ETHUSDT", [2000.0, 1800.0]))
        signal = signals[-1]
        assert signal.action == SignalType.BUY
        assert signal.symbol == "ETHUSDT"
        assert signal.percentage == pytest.approx(0.10)
        assert signal.reason == "Price dropped 10.00%"

    @pytest.mark.asyncio
    async def test_sell_on_rise(self, strategy):
        signals = await feed(strategy, make_updates("SOLUSDT", [100.0, 112.5]))
        signal = signals[-1]
        assert signal.action == SignalType.SELL
        assert signal.percentage == pytest.approx(0.20)
        assert signal.reason == "Price rose 12.50%"

    @pytest.mark.asyncio
    async def test_threshold_boundaries_are_inclusive(self, strategy):
        signals = await feed(strategy, make_updates("ETHUSDT", [100.0, 95.0, 110.0]))
        assert signals[1].action == SignalType.BUY
        assert signals[2].action == SignalType.SELL

    @pytest.mark.asyncio
    async def test_signal_repeats_while_threshold_holds(self, strategy):
        """The reference price never resets, so the signal fires again on every update."""
        signals = await feed(strategy, make_updates("ETHUSDT", [100.0, 90.0, 89.0, 94.0, 97.0]))
        actions = [s.action if s else None for s in signals]
        assert actions == [None, SignalType.BUY, SignalType.BUY, SignalType.BUY, None]
        assert strategy.reference_price("ETHUSDT") == 100.0

    @pytest.mark.asyncio
    async def test_symbols_tracked_independently(self, strategy):
        signals = await feed(strategy, [
            PriceUpdate("ETHUSDT", 100.0, T0),
            PriceUpdate("BTCUSDT", 50.0, T0),
            PriceUpdate("BTCUSDT", 90.0, T0),
            PriceUpdate("ETHUSDT", 101.0, T0),
        ])
        assert signals[2].action == SignalType.SELL
        assert signals[3] is None

    @pytest.mark.asyncio
    async def test_history_is_bounded(self, strategy):
        prices = [100.0 + i * 0.01 for i in range(HISTORY_CAPACITY + 20)]
        await feed(strategy, make_updates("ETHUSDT", prices))
        history = strategy.history("ETHUSDT")
        assert len(history) == HISTORY_CAPACITY
        assert history[0] == pytest.approx(prices[20])
        assert history[-1] == pytest.approx(prices[-1])

    @pytest.mark.asyncio
    async def test_on_end_clears_state(self, strategy):
        await feed(strategy, make_updates("ETHUSDT", [100.0, 80.0]))
        await strategy.on_end()
        assert strategy.history("ETHUSDT") == []
        assert strategy.reference_price("ETHUSDT") is None
        # next observation is treated as a first observation again
        assert await strategy.on_update(PriceUpdate("ETHUSDT", 50.0, T0)) is None

    @pytest.mark.asyncio
    async def test_initialize_merges_overrides(self):
        strategy = DropRiseStrategy()
        await strategy.initialize({"drop_threshold": 0.2})
        assert strategy.config.drop_threshold == 0.2
        assert strategy.config.rise_threshold == 0.10

        signals = await feed(strategy, make_updates("ETHUSDT", [100.0, 85.0, 79.0]))
        assert signals[1] is None
        assert signals[2].action == SignalType.BUY

    @pytest.mark.asyncio
    async def test_initialize_accepts_full_config(self):
        strategy = DropRiseStrategy()
        await strategy.initialize(StrategyConfig(buy_percentage=0.5))
        assert strategy.config.buy_percentage == 0.5

    @pytest.mark.asyncio
    async def test_initialize_rejects_unknown_fields(self):
        with pytest.raises(ValueError):
            await DropRiseStrategy().initialize({"drop_treshold": 0.2})

    @pytest.mark.asyncio
    async def test_non_positive_prices_are_ignored(self, strategy):
        """A zero or negative quote never becomes the reference or divides by it."""
        signals = await feed(strategy, make_updates("ETHUSDT", [0.0, -5.0, 2000.0, 0.0, 1800.0]))

        assert signals[:4] == [None] * 4
        assert signals[4].action == SignalType.BUY
        assert strategy.reference_price("ETHUSDT") == 2000.0
        assert strategy.history("ETHUSDT") == [2000.0, 1800.0]


def test_registry_builds_drop_rise():
    assert isinstance(get_strategy("drop_rise"), DropRiseStrategy)


def test_registry_rejects_unknown_name():
    with pytest.raises(ValueError, match="Unknown strategy"):
        get_strategy("momentum")
