"""
Tidewater TWAP Slicer Tests

Slice sizing, cash and holdings bounds, risk rejections and failure
handling.
"""

import math
from datetime import timedelta

import pytest

from core.models import Asset, OrderSide, Portfolio, RiskLimits, Trade
from execution.twap import ORDER_SLICES, TwapSlicer
from risk.manager import RiskManager
from strategies.base import SignalType, TradeSignal
from tests.support import T0


def signal(action, percentage, symbol="ETHUSDT"):
    return TradeSignal(symbol=symbol, action=action, percentage=percentage, reason="test")


async def simulated_fill(symbol, side, quantity, price, index):
    return Trade(symbol, side, quantity, price, T0 + timedelta(seconds=index * 60))


def allow_all(symbol, quantity, price):
    return True


class TestTwapSlicer:
    """Test suite for TwapSlicer."""

    @pytest.fixture
    def slicer(self):
        return TwapSlicer()

    def test_default_slice_count(self, slicer):
        assert slicer.slices == ORDER_SLICES == 5

    def test_rejects_zero_slices(self):
        with pytest.raises(ValueError):
            TwapSlicer(slices=0)

    @pytest.mark.asyncio
    async def test_buy_never_drives_cash_negative(self, slicer):
        portfolio = Portfolio(cash=1000.0, assets={"ETHUSDT": Asset("ETHUSDT", 210.0, 10.0)})
        risk = RiskManager(RiskLimits(max_position_size=100.0, max_daily_loss=0.05, max_trade_size=10000.0))

        trades = await slicer.execute(
            signal(SignalType.BUY, 1.0), portfolio, 210.0, simulated_fill, risk.allow_trade
        )

        slice_notional = (1000.0 + 10 * 210.0) / 5
        assert len(trades) == math.floor(1000.0 / slice_notional) == 1
        assert portfolio.cash >= 0
        assert portfolio.cash == pytest.approx(1000.0 - slice_notional)

    @pytest.mark.asyncio
    async def test_buy_spends_all_cash_in_five_slices(self, slicer):
        portfolio = Portfolio(cash=1000.0, assets={"ETHUSDT": Asset("ETHUSDT", 210.0, 0.0)})

        trades = await slicer.execute(
            signal(SignalType.BUY, 1.0), portfolio, 210.0, simulated_fill, allow_all
        )

        assert len(trades) == 5
        assert all(t.side == OrderSide.BUY for t in trades)
        assert all(t.quantity == pytest.approx(200.0 / 210.0) for t in trades)
        assert portfolio.cash == pytest.approx(0.0)
        assert portfolio.cash >= 0
        assert portfolio.assets["ETHUSDT"].holdings == pytest.approx(1000.0 / 210.0)

    @pytest.mark.asyncio
    async def test_sell_slices_holdings(self, slicer):
        portfolio = Portfolio(cash=0.0, assets={"ETHUSDT": Asset("ETHUSDT", 100.0, 50.0)})

        trades = await slicer.execute(
            signal(SignalType.SELL, 0.20), portfolio, 100.0, simulated_fill, allow_all
        )

        assert len(trades) == 5
        assert all(t.quantity == pytest.approx(2.0) for t in trades)
        assert all(t.side == OrderSide.SELL for t in trades)
        assert portfolio.assets["ETHUSDT"].holdings == pytest.approx(40.0)
        assert portfolio.cash == pytest.approx(1000.0)

    @pytest.mark.asyncio
    async def test_sell_never_oversells(self, slicer):
        portfolio = Portfolio(cash=0.0, assets={"ETHUSDT": Asset("ETHUSDT", 100.0, 10.0)})

        trades = await slicer.execute(
            signal(SignalType.SELL, 1.0), portfolio, 100.0, simulated_fill, allow_all
        )

        assert sum(t.quantity for t in trades) == pytest.approx(10.0)
        assert portfolio.assets["ETHUSDT"].holdings >= 0

    @pytest.mark.asyncio
    async def test_sell_without_holdings_is_noop(self, slicer):
        portfolio = Portfolio(cash=10.0, assets={"ETHUSDT": Asset("ETHUSDT", 100.0, 0.0)})
        trades = await slicer.execute(
            signal(SignalType.SELL, 0.5), portfolio, 100.0, simulated_fill, allow_all
        )
        assert trades == []
        assert portfolio.cash == 10.0

    @pytest.mark.asyncio
    async def test_missing_asset_drops_signal(self, slicer):
        portfolio = Portfolio(cash=1000.0)
        trades = await slicer.execute(
            signal(SignalType.BUY, 0.5, symbol="DOGEUSDT"), portfolio, 1.0, simulated_fill, allow_all
        )
        assert trades == []
        assert portfolio.cash == 1000.0

    @pytest.mark.asyncio
    async def test_risk_rejection_skips_slice_only(self, slicer):
        portfolio = Portfolio(cash=1000.0, assets={"ETHUSDT": Asset("ETHUSDT", 100.0, 0.0)})
        calls = []

        def reject_second(symbol, quantity, price):
            calls.append(quantity)
            return len(calls) != 2

        trades = await slicer.execute(
            signal(SignalType.BUY, 0.5), portfolio, 100.0, simulated_fill, reject_second
        )

        assert len(calls) == 5
        assert len(trades) == 4
        assert portfolio.cash == pytest.approx(1000.0 - 4 * 100.0)

    @pytest.mark.asyncio
    async def test_fill_failure_aborts_remaining_slices(self, slicer):
        portfolio = Portfolio(cash=1000.0, assets={"ETHUSDT": Asset("ETHUSDT", 100.0, 0.0)})
        fills = []

        async def flaky_fill(symbol, side, quantity, price, index):
            if index == 2:
                raise ConnectionError("exchange down")
            fills.append(index)
            return await simulated_fill(symbol, side, quantity, price, index)

        with pytest.raises(ConnectionError):
            await slicer.execute(signal(SignalType.BUY, 0.5), portfolio, 100.0, flaky_fill, allow_all)

        assert fills == [0, 1]
        assert portfolio.cash == pytest.approx(800.0)

    @pytest.mark.asyncio
    async def test_on_trade_sees_applied_fill(self, slicer):
        portfolio = Portfolio(cash=1000.0, assets={"ETHUSDT": Asset("ETHUSDT", 100.0, 0.0)})
        seen = []

        def on_trade(trade):
            seen.append((trade, portfolio.cash))

        await slicer.execute(
            signal(SignalType.BUY, 0.5), portfolio, 100.0, simulated_fill, allow_all, on_trade=on_trade
        )

        assert [cash for _, cash in seen] == pytest.approx([900.0, 800.0, 700.0, 600.0, 500.0])

    @pytest.mark.asyncio
    async def test_pause_between_executed_slices(self):
        pauses = []

        async def pause(seconds):
            pauses.append(seconds)

        slicer = TwapSlicer(interval=60.0, pause=pause)
        portfolio = Portfolio(cash=1000.0, assets={"ETHUSDT": Asset("ETHUSDT", 100.0, 0.0)})
        await slicer.execute(signal(SignalType.BUY, 0.5), portfolio, 100.0, simulated_fill, allow_all)

        assert pauses == [60.0] * 5

    @pytest.mark.asyncio
    async def test_configured_slice_count(self):
        slicer = TwapSlicer(slices=2)
        portfolio = Portfolio(cash=0.0, assets={"ETHUSDT": Asset("ETHUSDT", 100.0, 50.0)})
        trades = await slicer.execute(
            signal(SignalType.SELL, 0.20), portfolio, 100.0, simulated_fill, allow_all
        )
        assert [t.quantity for t in trades] == pytest.approx([5.0, 5.0])

    @pytest.mark.asyncio
    async def test_lock_is_free_while_fill_is_pending(self, slicer):
        portfolio = Portfolio(cash=1000.0, assets={"ETHUSDT": Asset("ETHUSDT", 100.0, 0.0)})
        seen = []

        async def observing_fill(symbol, side, quantity, price, index):
            seen.append((slicer.lock.locked(), portfolio.cash, portfolio.assets["ETHUSDT"].holdings))
            return await simulated_fill(symbol, side, quantity, price, index)

        await slicer.execute(signal(SignalType.BUY, 0.5), portfolio, 100.0, observing_fill, allow_all)

        # cash is reserved before the fill, holdings credited after it
        assert seen[0] == (False, 900.0, 0.0)
        assert seen[1] == (False, pytest.approx(800.0), pytest.approx(1.0))

    @pytest.mark.asyncio
    async def test_failed_sell_returns_reserved_holdings(self, slicer):
        portfolio = Portfolio(cash=0.0, assets={"ETHUSDT": Asset("ETHUSDT", 100.0, 50.0)})

        async def failing_fill(symbol, side, quantity, price, index):
            if index == 1:
                raise ConnectionError("exchange down")
            return await simulated_fill(symbol, side, quantity, price, index)

        with pytest.raises(ConnectionError):
            await slicer.execute(signal(SignalType.SELL, 0.20), portfolio, 100.0, failing_fill, allow_all)

        assert portfolio.assets["ETHUSDT"].holdings == pytest.approx(48.0)
        assert portfolio.cash == pytest.approx(200.0)
