"""
Tidewater Performance Metrics

Return, Sharpe ratio and drawdown computed from a backtest's trade log
and the portfolio value recorded after each trade.
"""

from dataclasses import dataclass
from typing import List, Sequence

import numpy as np
import pandas as pd

from core.models import Portfolio, Trade

# Each trade is treated as one daily-equivalent period when annualizing
TRADING_PERIODS_PER_YEAR = 252


@dataclass(frozen=True)
class PerformanceReport:
    total_return: float
    sharpe_ratio: float
    max_drawdown: float


def total_return(initial_value: float, final_value: float) -> float:
    """Percentage change from ``initial_value`` to ``final_value``."""
    if initial_value == 0:
        return 0.0
    return (final_value - initial_value) / initial_value * 100


def equity_point(portfolio: Portfolio, trade: Trade) -> float:
    """Portfolio value right after ``trade``, marked at the trade price."""
    return portfolio.valuation(trade.symbol, trade.price)


def trade_returns(equity_curve: Sequence[float], initial_value: float) -> pd.Series:
    """Per-trade fractional returns of the value series."""
    values = pd.Series([initial_value, *equity_curve], dtype=float)
    returns = values.pct_change(fill_method=None).iloc[1:]
    return returns.replace([np.inf, -np.inf], np.nan).dropna()


def sharpe_ratio(equity_curve: Sequence[float], initial_value: float, trade_count: int) -> float:
    """
    Annualized Sharpe ratio of the per-trade return series.

    Args:
        equity_curve: Portfolio value after each trade
        initial_value: Portfolio value before the first trade
        trade_count: Number of trades in the log

    Returns:
        float: ``mean / std * sqrt(252)``, or 0 with fewer than two
        trades or zero volatility
    """
    if trade_count < 2:
        return 0.0
    returns = trade_returns(equity_curve, initial_value)
    if returns.empty:
        return 0.0
    std = returns.std(ddof=0)
    if std == 0 or np.isnan(std):
        return 0.0
    return float(returns.mean() / std * np.sqrt(TRADING_PERIODS_PER_YEAR))


def max_drawdown(values: Sequence[float]) -> float:
    """
    Largest peak-to-trough decline of ``values`` in percent.

    Returns 0 for an empty or non-decreasing series.
    """
    if len(values) == 0:
        return 0.0
    series = pd.Series(values, dtype=float)
    peak = series.cummax()
    drawdown = ((peak - series) / peak.where(peak > 0)) * 100
    result = drawdown.max(skipna=True)
    if pd.isna(result):
        return 0.0
    return float(max(result, 0.0))


class PerformanceAnalyzer:
    """Computes the performance section of a backtest result."""

    def analyze(
        self,
        initial_value: float,
        final_value: float,
        trades: List[Trade],
        equity_curve: Sequence[float],
    ) -> PerformanceReport:
        return PerformanceReport(
            total_return=total_return(initial_value, final_value),
            sharpe_ratio=sharpe_ratio(equity_curve, initial_value, len(trades)),
            max_drawdown=max_drawdown([initial_value, *equity_curve]),
        )
