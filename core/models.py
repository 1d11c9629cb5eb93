"""
Tidewater Domain Models

Portfolio, price and trade records shared by the strategy, slicer,
engines and performance analyzer.
"""

import copy
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union


class OrderSide(str, Enum):
    """Order sides."""
    BUY = "BUY"
    SELL = "SELL"


@dataclass
class Asset:
    symbol: str
    price: float
    holdings: float = 0.0

    @property
    def market_value(self) -> float:
        return self.holdings * self.price


@dataclass
class Portfolio:
    """Cash plus per-symbol holdings. Keys of ``assets`` are symbols."""
    cash: float = 0.0
    assets: Dict[str, Asset] = field(default_factory=dict)

    def total_value(self) -> float:
        """Cash plus holdings marked at each asset's last known price."""
        return self.cash + sum(a.market_value for a in self.assets.values())

    def valuation(self, symbol: str, price: float) -> float:
        """
        Portfolio value with ``symbol`` marked at ``price``.

        Other assets use their last known price.
        """
        total = self.cash
        for asset in self.assets.values():
            mark = price if asset.symbol == symbol else asset.price
            total += asset.holdings * mark
        return total

    def copy(self) -> "Portfolio":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cash": self.cash,
            "assets": {
                symbol: {"symbol": a.symbol, "price": a.price, "holdings": a.holdings}
                for symbol, a in self.assets.items()
            },
        }


@dataclass(frozen=True)
class PriceUpdate:
    symbol: str
    price: float
    timestamp: datetime


@dataclass(frozen=True)
class Trade:
    """A single executed child order."""
    symbol: str
    side: OrderSide
    quantity: float
    price: float
    timestamp: datetime

    @property
    def value(self) -> float:
        return self.quantity * self.price


@dataclass(frozen=True)
class RiskLimits:
    max_position_size: float
    max_daily_loss: float
    max_trade_size: float


@dataclass(frozen=True)
class StrategyConfig:
    """Strategy parameters. ``twap_interval`` is in seconds."""
    drop_threshold: float = 0.05
    rise_threshold: float = 0.10
    buy_percentage: float = 0.10
    sell_percentage: float = 0.20
    twap_slices: int = 5
    twap_interval: float = 60.0

    def merge(
        self,
        overrides: Optional[Union["StrategyConfig", Mapping[str, Any]]] = None
    ) -> "StrategyConfig":
        """
        Return a new config with ``overrides`` applied field by field.

        Args:
            overrides: Another config or a mapping of field names to values

        Returns:
            StrategyConfig: Merged configuration

        Raises:
            ValueError: If a mapping names an unknown field
        """
        if overrides is None:
            return self
        if isinstance(overrides, StrategyConfig):
            return overrides
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown strategy config fields: {sorted(unknown)}")
        return replace(self, **dict(overrides))


@dataclass(frozen=True)
class BacktestResult:
    trades: List[Trade]
    final_portfolio: Portfolio
    total_return: float
    sharpe_ratio: float
    max_drawdown: float
    initial_value: float = 0.0
    final_value: float = 0.0
    equity_curve: List[float] = field(default_factory=list)
