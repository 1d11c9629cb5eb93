"""
Tidewater Backtest Engine

Replays a price sequence through a strategy, executes its signals as
TWAP slices against a simulated portfolio and reports performance.
"""

from datetime import timedelta
from enum import Enum
from typing import Iterable, List, Optional

from core.models import (
    BacktestResult, OrderSide, Portfolio, PriceUpdate, RiskLimits,
    StrategyConfig, Trade,
)
from core.performance import PerformanceAnalyzer, equity_point
from execution.twap import ORDER_SLICES, TwapSlicer
from risk.manager import RiskManager
from strategies.base import Strategy, TradeSignal
from utils.logger import core_logger as logger, log_performance


class BacktestState(str, Enum):
    """Backtest run states."""
    IDLE = "idle"
    INITIALIZING = "initializing"
    PROCESSING = "processing"
    FINALIZING = "finalizing"
    DONE = "done"


class BacktestEngine:
    """
    Sequential backtest driver.

    Updates are processed exactly in the order given; callers sort the
    feed first if chronological order matters. The caller's portfolio is
    copied and never mutated; every run starts from that copy.
    """

    def __init__(
        self,
        strategy: Strategy,
        initial_portfolio: Portfolio,
        risk_limits: RiskLimits,
        strategy_config: Optional[StrategyConfig] = None,
        use_config_slices: bool = False,
    ):
        self.strategy = strategy
        self.risk_manager = RiskManager(risk_limits)
        self.strategy_config = strategy_config or StrategyConfig()
        self.use_config_slices = use_config_slices
        self.state = BacktestState.IDLE
        self.processed = 0

        self._initial_portfolio = initial_portfolio.copy()
        self.portfolio = self._initial_portfolio.copy()
        self.trades: List[Trade] = []
        self.equity_curve: List[float] = []

        self.slicer = TwapSlicer(
            slices=self.strategy_config.twap_slices if use_config_slices else ORDER_SLICES,
            interval=self.strategy_config.twap_interval,
        )
        self.analyzer = PerformanceAnalyzer()

    async def run(self, price_data: Iterable[PriceUpdate]) -> BacktestResult:
        """
        Run a full backtest.

        Args:
            price_data: Price updates in processing order

        Returns:
            BacktestResult: Trades, final portfolio and performance
        """
        self.state = BacktestState.INITIALIZING
        self.portfolio = self._initial_portfolio.copy()
        self.trades = []
        self.equity_curve = []
        self.processed = 0
        initial_value = self.portfolio.total_value()

        await self.strategy.initialize(self.strategy_config)

        self.state = BacktestState.PROCESSING
        for update in price_data:
            await self.process_update(update)
            self.processed += 1

        self.state = BacktestState.FINALIZING
        await self.strategy.on_end()

        final_value = self.portfolio.total_value()
        report = self.analyzer.analyze(initial_value, final_value, self.trades, self.equity_curve)

        result = BacktestResult(
            trades=list(self.trades),
            final_portfolio=self.portfolio.copy(),
            total_return=report.total_return,
            sharpe_ratio=report.sharpe_ratio,
            max_drawdown=report.max_drawdown,
            initial_value=initial_value,
            final_value=final_value,
            equity_curve=list(self.equity_curve),
        )
        self.state = BacktestState.DONE

        logger.info(
            f"Backtest finished: {self.processed} updates, {len(self.trades)} trades"
        )
        log_performance("total_return_pct", report.total_return, period="backtest")
        log_performance("sharpe_ratio", report.sharpe_ratio, period="backtest")
        log_performance("max_drawdown_pct", report.max_drawdown, period="backtest")
        return result

    async def process_update(self, update: PriceUpdate) -> None:
        """Mark the price, drive the strategy and execute any signal."""
        asset = self.portfolio.assets.get(update.symbol)
        if asset is not None:
            asset.price = update.price

        signal = await self.strategy.on_update(update)
        if signal is None:
            return

        logger.debug(f"Signal: {signal.action.value} {signal.symbol} ({signal.reason})")
        await self.execute_signal(signal, update)

    async def execute_signal(self, signal: TradeSignal, update: PriceUpdate) -> List[Trade]:
        async def simulate_fill(symbol: str, side: OrderSide, quantity: float,
                                price: float, index: int) -> Trade:
            offset = timedelta(seconds=index * self.slicer.interval)
            return Trade(symbol, side, quantity, price, update.timestamp + offset)

        return await self.slicer.execute(
            signal,
            self.portfolio,
            update.price,
            fill=simulate_fill,
            risk_check=self.risk_manager.allow_trade,
            on_trade=self._record_trade,
        )

    def _record_trade(self, trade: Trade) -> None:
        self.trades.append(trade)
        self.equity_curve.append(equity_point(self.portfolio, trade))
