"""
Tidewater Live Trading Engine

Polls prices per symbol on an engine-owned scheduler, drives the
strategy and executes its signals as real TWAP orders through an
exchange client.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from core.models import OrderSide, Portfolio, PriceUpdate, RiskLimits, StrategyConfig, Trade
from core.scheduler import PeriodicScheduler, Sleep
from execution.broker_base import ExchangeClient
from execution.twap import ORDER_SLICES, TwapSlicer
from risk.manager import RiskManager
from strategies.base import Strategy, TradeSignal
from utils.logger import core_logger as logger, log_trade


class EngineState(str, Enum):
    """Live engine states."""
    IDLE = "idle"
    INITIALIZED = "initialized"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass
class EngineStats:
    """Live engine statistics."""
    start_time: Optional[datetime] = None
    uptime: timedelta = timedelta()
    polls: int = 0
    signals_generated: int = 0
    signals_skipped: int = 0
    orders_placed: int = 0
    errors_encountered: int = 0


class LiveTradingEngine:
    """
    Live driver for a strategy against an exchange.

    One periodic poll per tracked symbol. A failing poll is logged and
    skipped without affecting other symbols. Portfolio mutations happen
    under a single lock, and a symbol whose slice sequence is still in
    flight ignores new signals until it completes.
    """

    def __init__(
        self,
        client: ExchangeClient,
        strategy: Strategy,
        risk_limits: RiskLimits,
        strategy_config: Optional[StrategyConfig] = None,
        poll_interval: float = 60.0,
        sleep: Sleep = asyncio.sleep,
        use_config_slices: bool = False,
    ):
        self.client = client
        self.strategy = strategy
        self.risk_manager = RiskManager(risk_limits)
        self.strategy_config = strategy_config or StrategyConfig()
        self.poll_interval = poll_interval
        self.state = EngineState.IDLE
        self.stats = EngineStats()

        self.portfolio = Portfolio()
        self.trades: List[Trade] = []
        self.symbols: List[str] = []

        self._lock = asyncio.Lock()
        self._executing: Set[str] = set()
        self._scheduler = PeriodicScheduler(sleep)
        self.slicer = TwapSlicer(
            slices=self.strategy_config.twap_slices if use_config_slices else ORDER_SLICES,
            interval=self.strategy_config.twap_interval,
            pause=sleep,
            lock=self._lock,
        )

    @property
    def scheduler(self) -> PeriodicScheduler:
        return self._scheduler

    async def initialize(self) -> None:
        """
        Load the account and initialize the strategy.
        """
        self.portfolio = await self.client.get_account()
        logger.info(
            f"Portfolio initialized: cash={self.portfolio.cash:.2f} "
            f"assets={list(self.portfolio.assets)}"
        )
        await self.strategy.initialize(self.strategy_config)
        self.state = EngineState.INITIALIZED

    async def start(self, symbols: List[str]) -> None:
        """
        Start polling ``symbols``.

        Args:
            symbols: Symbols to track
        """
        if self.state == EngineState.RUNNING:
            logger.warning("Engine is already running")
            return
        if self.state != EngineState.INITIALIZED:
            raise RuntimeError(f"Cannot start engine in state: {self.state.value}")

        self.state = EngineState.RUNNING
        self.stats.start_time = datetime.now(timezone.utc)
        self.symbols = list(symbols)
        logger.system(f"Starting engine for symbols: {', '.join(self.symbols)}")

        for symbol in self.symbols:
            self._scheduler.schedule(symbol, self._poll_callback(symbol), self.poll_interval)

    def _poll_callback(self, symbol: str):
        async def tick() -> None:
            await self.poll_symbol(symbol)
        return tick

    async def stop(self) -> None:
        """
        Stop polling and drain strategy state.

        No poll is scheduled once this returns. Slice sequences already
        in flight are not interrupted.
        """
        if self.state in (EngineState.STOPPING, EngineState.STOPPED):
            return

        self.state = EngineState.STOPPING
        await self._scheduler.cancel_all()
        for symbol in self.symbols:
            logger.info(f"Stopped tracking {symbol}")

        await self.strategy.on_end()
        if self.stats.start_time:
            self.stats.uptime = datetime.now(timezone.utc) - self.stats.start_time
        self.state = EngineState.STOPPED
        logger.system("Engine stopped")

    async def wait_idle(self) -> None:
        """Wait for polls and slice sequences still in flight after ``stop()``."""
        if self._scheduler.inflight:
            logger.info(f"Waiting for {self._scheduler.inflight} in-flight poll(s) to finish")
        await self._scheduler.drain()

    async def poll_symbol(self, symbol: str) -> None:
        """
        Run one poll cycle for ``symbol``.

        Errors are logged and the cycle skipped.
        """
        if self.state != EngineState.RUNNING:
            return
        self.stats.polls += 1
        try:
            price = await self.client.get_price(symbol)
            # stop() may have drained the strategy while the price was in flight
            if self.state != EngineState.RUNNING:
                return
            update = PriceUpdate(symbol=symbol, price=price, timestamp=datetime.now(timezone.utc))

            # single assignment, no await: atomic on the event loop
            asset = self.portfolio.assets.get(symbol)
            if asset is not None:
                asset.price = price

            signal = await self.strategy.on_update(update)
            if signal:
                self.stats.signals_generated += 1
                logger.info(f"Signal received: {signal.action.value} {signal.symbol} ({signal.reason})")
                await self.execute_signal(signal)
        except Exception as e:
            self.stats.errors_encountered += 1
            logger.error(f"Error tracking {symbol}: {e}")

    async def execute_signal(self, signal: TradeSignal) -> List[Trade]:
        """
        Execute ``signal`` as real TWAP orders.

        An order failure abandons the remaining slices of this signal.

        Returns:
            List[Trade]: Trades filled for this signal
        """
        if signal.symbol in self._executing:
            self.stats.signals_skipped += 1
            logger.warning(f"Skipping {signal.symbol} signal: previous slices still executing")
            return []

        self._executing.add(signal.symbol)
        try:
            price = await self.client.get_price(signal.symbol)
            return await self.slicer.execute(
                signal,
                self.portfolio,
                price,
                fill=self._place_order,
                risk_check=self._live_risk_check,
                on_trade=self._record_trade,
            )
        except Exception as e:
            self.stats.errors_encountered += 1
            logger.error(f"Error executing {signal.action.value} signal for {signal.symbol}: {e}")
            return []
        finally:
            self._executing.discard(signal.symbol)

    async def _place_order(self, symbol: str, side: OrderSide, quantity: float,
                           price: float, index: int) -> Trade:
        trade = await self.client.place_order(symbol, side, quantity)
        self.stats.orders_placed += 1
        return trade

    def _live_risk_check(self, symbol: str, quantity: float, price: float) -> bool:
        return self.risk_manager.allow_live_trade(symbol, quantity, price, self.portfolio.cash)

    def _record_trade(self, trade: Trade) -> None:
        self.trades.append(trade)
        log_trade(trade.symbol, trade.side.value, trade.quantity, trade.price,
                  strategy=getattr(self.strategy, "name", None))

    def get_portfolio(self) -> Portfolio:
        return self.portfolio.copy()

    def get_status(self) -> Dict[str, Any]:
        """
        Get engine status.

        Returns:
            Dict[str, Any]: Engine status information
        """
        if self.stats.start_time and self.state == EngineState.RUNNING:
            self.stats.uptime = datetime.now(timezone.utc) - self.stats.start_time

        return {
            "state": self.state.value,
            "uptime": str(self.stats.uptime),
            "symbols": list(self.symbols),
            "portfolio_value": self.portfolio.total_value(),
            "trades": len(self.trades),
            "stats": {
                "polls": self.stats.polls,
                "signals_generated": self.stats.signals_generated,
                "signals_skipped": self.stats.signals_skipped,
                "orders_placed": self.stats.orders_placed,
                "errors_encountered": self.stats.errors_encountered,
            },
        }
