"""
Tidewater Paper Broker

In-memory exchange for paper trading and tests. Orders fill
immediately at the current (or limit) price.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from core.models import Asset, OrderSide, Portfolio, Trade
from execution.broker_base import ExchangeClient, ExchangeError, normalize_symbol


class PaperBroker(ExchangeClient):
    """Simulated exchange with settable prices and its own balances."""

    def __init__(
        self,
        prices: Optional[Dict[str, float]] = None,
        cash: float = 0.0,
        holdings: Optional[Dict[str, float]] = None,
    ):
        super().__init__("paper")
        self.prices: Dict[str, float] = dict(prices or {})
        self.cash = cash
        self.holdings: Dict[str, float] = dict(holdings or {})
        self.orders: List[Trade] = []
        self.price_requests = 0

    def set_price(self, symbol: str, price: float) -> None:
        self.prices[normalize_symbol(symbol)] = price

    def _quote(self, symbol: str) -> float:
        try:
            return self.prices[normalize_symbol(symbol)]
        except KeyError:
            raise ExchangeError(f"Unknown symbol: {symbol}") from None

    async def get_price(self, symbol: str) -> float:
        self.price_requests += 1
        return self._quote(symbol)

    async def get_account(self) -> Portfolio:
        assets = {
            symbol: Asset(symbol=symbol, price=self._quote(symbol), holdings=qty)
            for symbol, qty in self.holdings.items()
        }
        return Portfolio(cash=self.cash, assets=assets)

    async def place_order(
        self,
        symbol: str,
        side: OrderSide,
        quantity: float,
        price: Optional[float] = None
    ) -> Trade:
        if quantity <= 0:
            raise ExchangeError("Quantity must be positive")
        side = OrderSide(side)
        fill_price = price or self._quote(symbol)
        key = normalize_symbol(symbol)

        if side == OrderSide.BUY:
            self.cash -= quantity * fill_price
            self.holdings[key] = self.holdings.get(key, 0.0) + quantity
        else:
            if self.holdings.get(key, 0.0) < quantity:
                raise ExchangeError(f"Insufficient {symbol} balance")
            self.holdings[key] -= quantity
            self.cash += quantity * fill_price

        trade = Trade(
            symbol=symbol,
            side=side,
            quantity=quantity,
            price=fill_price,
            timestamp=datetime.now(timezone.utc),
        )
        self.orders.append(trade)
        return trade
