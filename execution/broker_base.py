"""
Tidewater Exchange Client Base

Interface every exchange client offers to the live engine: price
lookup, account snapshot and order placement.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from core.models import OrderSide, Portfolio, Trade

# Balances in these assets count as cash
CASH_ASSETS = ("USDT", "BUSD")
QUOTE_ASSET = "USDT"


class ExchangeError(Exception):
    """Raised when an exchange request fails or returns an error."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


def normalize_symbol(symbol: str) -> str:
    """``ETH/USDT`` -> ``ETHUSDT``."""
    return symbol.replace("/", "")


class ExchangeClient(ABC):
    """
    Abstract base class for exchange clients.

    Implementations raise ``ExchangeError`` on failure; the live engine
    logs and skips the affected cycle.
    """

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    async def get_price(self, symbol: str) -> float:
        """
        Get the latest price for a symbol.

        Args:
            symbol: Trading symbol

        Returns:
            float: Last traded price
        """
        pass

    async def get_prices(self, symbols: List[str]) -> Dict[str, float]:
        """
        Get latest prices for several symbols concurrently.

        Args:
            symbols: Trading symbols

        Returns:
            Dict[str, float]: Price per symbol
        """
        prices = await asyncio.gather(*(self.get_price(s) for s in symbols))
        return dict(zip(symbols, prices))

    @abstractmethod
    async def get_account(self) -> Portfolio:
        """
        Get the account as a portfolio snapshot.

        Returns:
            Portfolio: Cash and priced asset holdings
        """
        pass

    @abstractmethod
    async def place_order(
        self,
        symbol: str,
        side: OrderSide,
        quantity: float,
        price: Optional[float] = None
    ) -> Trade:
        """
        Place an order and return its fill.

        A limit order is placed when ``price`` is given, otherwise a
        market order.

        Args:
            symbol: Trading symbol
            side: BUY or SELL
            quantity: Order quantity
            price: Optional limit price

        Returns:
            Trade: Executed trade
        """
        pass

    async def close(self) -> None:
        """Release network resources."""
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
