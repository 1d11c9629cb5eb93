"""
Tidewater Binance Client

Binance spot REST client over aiohttp with HMAC-SHA256 request signing.
"""

import hashlib
import hmac
import time
from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime, timezone
from urllib.parse import urlencode

import aiohttp

from core.models import Asset, OrderSide, Portfolio, Trade
from execution.broker_base import (
    CASH_ASSETS, QUOTE_ASSET, ExchangeClient, ExchangeError, normalize_symbol
)
from utils.logger import execution_logger as logger

TESTNET_URL = "https://testnet.binance.vision/api/v3"
LIVE_URL = "https://api.binance.com/api/v3"


class BinanceClient(ExchangeClient):
    """
    Binance spot API client.

    The HTTP session is created lazily on first request and closed by
    ``close()`` or when used as an async context manager.
    """

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        testnet: bool = True,
        timeout: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        super().__init__("binance")
        self.api_key = api_key
        self.api_secret = api_secret
        self.base_url = TESTNET_URL if testnet else LIVE_URL
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"X-MBX-APIKEY": self.api_key},
                timeout=self._timeout,
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    def sign(self, params: Dict[str, Any]) -> str:
        """
        Sign a request's parameters.

        Args:
            params: Query parameters in request order

        Returns:
            str: Hex HMAC-SHA256 of the urlencoded query string
        """
        query = urlencode(params)
        return hmac.new(
            self.api_secret.encode("utf-8"), query.encode("utf-8"), hashlib.sha256
        ).hexdigest()

    def _signed(self, params: Dict[str, Any]) -> Dict[str, Any]:
        params = dict(params)
        params["timestamp"] = int(time.time() * 1000)
        params["signature"] = self.sign(params)
        return params

    async def _request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        session = self._get_session()
        try:
            async with session.request(method, url, params=params) as response:
                if response.status != 200:
                    body = await response.text()
                    raise ExchangeError(
                        f"Binance {method} {path} failed: {response.status} {body}",
                        status=response.status,
                    )
                return await response.json()
        except aiohttp.ClientError as e:
            raise ExchangeError(f"Binance {method} {path} request error: {e}") from e

    async def get_price(self, symbol: str) -> float:
        data = await self._request("GET", "/ticker/price", {"symbol": normalize_symbol(symbol)})
        return float(data["price"])

    async def get_account(self) -> Portfolio:
        data = await self._request("GET", "/account", self._signed({}))
        return await self.build_portfolio(data.get("balances", []))

    async def build_portfolio(self, balances: List[Dict[str, str]]) -> Portfolio:
        """
        Convert account balances to a portfolio.

        Stable-coin balances become cash; every other non-zero balance
        becomes a ``<ASSET>USDT`` asset priced at the current market.
        Assets whose price cannot be fetched are skipped.

        Args:
            balances: Binance ``balances`` entries with free/locked amounts

        Returns:
            Portfolio: Account snapshot
        """
        portfolio = Portfolio()
        for balance in balances:
            total = float(balance.get("free", 0)) + float(balance.get("locked", 0))
            name = balance["asset"]
            if name in CASH_ASSETS:
                portfolio.cash += total
            elif total > 0:
                symbol = f"{name}{QUOTE_ASSET}"
                try:
                    price = await self.get_price(symbol)
                except ExchangeError as e:
                    logger.error(f"Failed to get price for {symbol}: {e}")
                    continue
                portfolio.assets[symbol] = Asset(symbol=symbol, price=price, holdings=total)
        return portfolio

    async def place_order(
        self,
        symbol: str,
        side: OrderSide,
        quantity: float,
        price: Optional[float] = None
    ) -> Trade:
        params: Dict[str, Any] = {
            "symbol": normalize_symbol(symbol),
            "side": OrderSide(side).value,
            "type": "LIMIT" if price else "MARKET",
            "quantity": f"{quantity:.8f}",
        }
        if price:
            params["price"] = f"{price:.8f}"
            params["timeInForce"] = "GTC"

        data = await self._request("POST", "/order", self._signed(params))

        if price:
            fill_price = price
        else:
            executed = float(data.get("executedQty", 0))
            if executed <= 0:
                raise ExchangeError(f"Market order for {symbol} returned no fill")
            fill_price = float(data["cummulativeQuoteQty"]) / executed

        logger.execution(
            f"Order placed: {params['side']} {params['quantity']} {symbol} @ {fill_price}",
            symbol=symbol, order_id=data.get("orderId")
        )
        return Trade(
            symbol=symbol,
            side=OrderSide(side),
            quantity=quantity,
            price=fill_price,
            timestamp=datetime.now(timezone.utc),
        )

    async def get_order_book(self, symbol: str, limit: int = 5) -> Dict[str, List[Tuple[float, float]]]:
        """
        Get the top of the order book.

        Args:
            symbol: Trading symbol
            limit: Levels per side

        Returns:
            Dict[str, List[Tuple[float, float]]]: ``bids`` and ``asks`` as (price, quantity)
        """
        data = await self._request("GET", "/depth", {"symbol": normalize_symbol(symbol), "limit": limit})
        return {
            "bids": [(float(p), float(q)) for p, q in data.get("bids", [])],
            "asks": [(float(p), float(q)) for p, q in data.get("asks", [])],
        }
