"""
Tidewater TWAP Slicer

Splits a trade signal into equal child orders executed one after the
other against a portfolio.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional

from core.models import OrderSide, Portfolio, Trade
from strategies.base import SignalType, TradeSignal
from utils.logger import execution_logger as logger

# Child orders per signal unless the engine opts in to twap_slices
ORDER_SLICES = 5

# (symbol, side, quantity, price, slice_index) -> executed trade
FillHandler = Callable[[str, OrderSide, float, float, int], Awaitable[Trade]]
RiskCheck = Callable[[str, float, float], bool]
TradeCallback = Callable[[Trade], None]
Pause = Callable[[float], Awaitable[None]]


class TwapSlicer:
    """
    Executes a signal as ``slices`` equal child orders.

    BUY slices split ``portfolio value * percentage`` of notional and stop
    as soon as cash cannot cover a slice. SELL slices split
    ``holdings * percentage`` and never sell more than is held. Each
    slice is risk checked on its own; a rejected slice is skipped.

    The lock is never held while a fill is awaited. A slice's cash (BUY)
    or holdings (SELL) are reserved under the lock before the fill and
    returned if the fill fails or is cancelled.
    """

    def __init__(
        self,
        slices: int = ORDER_SLICES,
        interval: float = 60.0,
        pause: Optional[Pause] = None,
        lock: Optional[asyncio.Lock] = None,
    ):
        if slices < 1:
            raise ValueError("slices must be at least 1")
        self.slices = slices
        self.interval = interval
        self.pause = pause
        self.lock = lock or asyncio.Lock()

    async def execute(
        self,
        signal: TradeSignal,
        portfolio: Portfolio,
        price: float,
        fill: FillHandler,
        risk_check: RiskCheck,
        on_trade: Optional[TradeCallback] = None,
    ) -> List[Trade]:
        """
        Execute ``signal`` against ``portfolio`` at ``price``.

        Args:
            signal: Signal to execute
            portfolio: Portfolio mutated as slices fill
            price: Current market price
            fill: Places or simulates one child order
            risk_check: Per-slice risk predicate
            on_trade: Called after each fill has been applied

        Returns:
            List[Trade]: Executed child orders

        Raises:
            Exception: Whatever ``fill`` raises; remaining slices are abandoned
        """
        if signal.symbol not in portfolio.assets:
            return []
        if price <= 0:
            logger.warning(f"Ignoring {signal.symbol} signal at non-positive price {price}")
            return []

        if signal.action == SignalType.BUY:
            trades = await self._execute_buy(signal, portfolio, price, fill, risk_check, on_trade)
        else:
            trades = await self._execute_sell(signal, portfolio, price, fill, risk_check, on_trade)

        if trades:
            logger.execution(
                f"{signal.action.value} {signal.symbol}: {len(trades)}/{self.slices} slices filled",
                symbol=signal.symbol
            )
        return trades

    async def _execute_buy(self, signal, portfolio, price, fill, risk_check, on_trade) -> List[Trade]:
        asset = portfolio.assets[signal.symbol]
        slice_notional = portfolio.total_value() * signal.percentage / self.slices
        if slice_notional <= 0:
            return []
        trades: List[Trade] = []

        for i in range(self.slices):
            async with self.lock:
                if portfolio.cash < slice_notional:
                    break
                quantity = slice_notional / price
                if not risk_check(signal.symbol, quantity, price):
                    continue
                portfolio.cash -= slice_notional

            try:
                trade = await fill(signal.symbol, OrderSide.BUY, quantity, price, i)
            except BaseException:
                async with self.lock:
                    portfolio.cash += slice_notional
                raise

            async with self.lock:
                asset.holdings += quantity
                if on_trade:
                    on_trade(trade)
            trades.append(trade)
            await self._pause()

        return trades

    async def _execute_sell(self, signal, portfolio, price, fill, risk_check, on_trade) -> List[Trade]:
        asset = portfolio.assets[signal.symbol]
        if asset.holdings <= 0:
            return []
        slice_quantity = asset.holdings * signal.percentage / self.slices
        trades: List[Trade] = []

        for i in range(self.slices):
            async with self.lock:
                quantity = min(slice_quantity, asset.holdings)
                if quantity <= 0 or not risk_check(signal.symbol, quantity, price):
                    continue
                asset.holdings -= quantity

            try:
                trade = await fill(signal.symbol, OrderSide.SELL, quantity, price, i)
            except BaseException:
                async with self.lock:
                    asset.holdings += quantity
                raise

            async with self.lock:
                portfolio.cash += quantity * price
                if on_trade:
                    on_trade(trade)
            trades.append(trade)
            await self._pause()

        return trades

    async def _pause(self) -> None:
        if self.pause is not None:
            await self.pause(self.interval)
