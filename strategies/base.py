"""
Tidewater Strategy Base Classes

Strategy capability set and shared plumbing for signal-generating
strategies. Engines depend only on the ``Strategy`` protocol.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Protocol, Union, runtime_checkable

from core.models import PriceUpdate, StrategyConfig
from utils.logger import strategy_logger as logger


class SignalType(str, Enum):
    """Trading signal types."""
    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True)
class TradeSignal:
    """
    Trade intent emitted by a strategy for a single update.

    ``percentage`` is a fraction of portfolio value for BUY and a
    fraction of current holdings for SELL.
    """
    symbol: str
    action: SignalType
    percentage: float
    reason: str


ConfigLike = Optional[Union[StrategyConfig, Mapping[str, Any]]]


@runtime_checkable
class Strategy(Protocol):
    """Capability set every strategy exposes to the engines."""

    async def initialize(self, config: ConfigLike = None) -> None:
        ...

    async def on_update(self, update: PriceUpdate) -> Optional[TradeSignal]:
        ...

    async def on_end(self) -> None:
        ...


class BaseStrategy(ABC):
    """
    Abstract base class for strategies.

    Handles merging the supplied configuration over the strategy defaults.
    Subclasses implement ``on_update`` and ``on_end``.
    """

    name = "base"

    def __init__(self, defaults: Optional[StrategyConfig] = None):
        self.config = defaults or StrategyConfig()

    async def initialize(self, config: ConfigLike = None) -> None:
        """
        Merge ``config`` over the current defaults.

        Args:
            config: Full config or a mapping of field overrides
        """
        self.config = self.config.merge(config)
        logger.info(
            f"Strategy '{self.name}' initialized",
            drop_threshold=self.config.drop_threshold,
            rise_threshold=self.config.rise_threshold,
        )

    @abstractmethod
    async def on_update(self, update: PriceUpdate) -> Optional[TradeSignal]:
        """
        Process one price observation.

        Args:
            update: Latest price for a symbol

        Returns:
            Optional[TradeSignal]: Signal to act on, or None
        """
        pass

    @abstractmethod
    async def on_end(self) -> None:
        """Clear all per-symbol state at the end of a run."""
        pass
