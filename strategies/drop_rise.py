"""
Tidewater Drop/Rise Strategy

Buys when a symbol has fallen a configured fraction below the first
price seen for it, sells when it has risen a configured fraction above.
"""

from collections import deque
from typing import Deque, Dict, List, Optional

from core.models import PriceUpdate
from strategies.base import BaseStrategy, SignalType, TradeSignal
from utils.logger import strategy_logger as logger

HISTORY_CAPACITY = 100


class DropRiseStrategy(BaseStrategy):
    """
    Threshold strategy against a fixed per-symbol reference price.

    The reference price is never reset, so once a threshold is crossed
    every later update on the same side of it fires the signal again.
    """

    name = "drop_rise"

    def __init__(self, defaults=None):
        super().__init__(defaults)
        self._history: Dict[str, Deque[float]] = {}
        self._reference: Dict[str, float] = {}

    async def on_update(self, update: PriceUpdate) -> Optional[TradeSignal]:
        symbol, price = update.symbol, update.price

        if price <= 0:
            logger.warning(f"Ignoring non-positive price {price} for {symbol}")
            return None

        if symbol not in self._reference:
            self._reference[symbol] = price
            self._history[symbol] = deque([price], maxlen=HISTORY_CAPACITY)
            logger.data(f"Reference price for {symbol} set to {price}", data_type="reference")
            return None

        self._history[symbol].append(price)

        reference = self._reference[symbol]
        price_change = (price - reference) / reference

        if price_change <= -self.config.drop_threshold:
            return TradeSignal(
                symbol=symbol,
                action=SignalType.BUY,
                percentage=self.config.buy_percentage,
                reason=f"Price dropped {abs(price_change * 100):.2f}%",
            )

        if price_change >= self.config.rise_threshold:
            return TradeSignal(
                symbol=symbol,
                action=SignalType.SELL,
                percentage=self.config.sell_percentage,
                reason=f"Price rose {price_change * 100:.2f}%",
            )

        return None

    async def on_end(self) -> None:
        self._history.clear()
        self._reference.clear()

    def history(self, symbol: str) -> List[float]:
        return list(self._history.get(symbol, ()))

    def reference_price(self, symbol: str) -> Optional[float]:
        return self._reference.get(symbol)
