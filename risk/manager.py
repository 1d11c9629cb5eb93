"""
Tidewater Risk Manager

Enforces per-order size limits. Stateless across calls.
"""

from core.models import RiskLimits
from utils.logger import risk_logger as logger


class RiskManager:
    """Per-order risk checks against configured limits."""

    def __init__(self, limits: RiskLimits):
        self.limits = limits

    def allow_trade(self, symbol: str, quantity: float, price: float) -> bool:
        """
        Check a proposed order against size limits.

        Args:
            symbol: Trading symbol
            quantity: Order quantity
            price: Expected execution price

        Returns:
            bool: True if the order is within limits
        """
        value = quantity * price
        if value > self.limits.max_trade_size:
            logger.risk(
                f"{symbol} order value {value:.2f} exceeds max trade size",
                level="DEBUG", symbol=symbol, threshold=self.limits.max_trade_size
            )
            return False
        if quantity > self.limits.max_position_size:
            logger.risk(
                f"{symbol} order quantity {quantity:.6f} exceeds max position size",
                level="DEBUG", symbol=symbol, threshold=self.limits.max_position_size
            )
            return False
        return True

    def allow_live_trade(self, symbol: str, quantity: float, price: float, cash: float) -> bool:
        """
        Size limits plus a cash headroom check for live orders.

        The order value may not exceed ``cash * (1 + max_daily_loss)``.
        """
        if not self.allow_trade(symbol, quantity, price):
            return False
        headroom = cash * (1 + self.limits.max_daily_loss)
        if quantity * price > headroom:
            logger.risk(
                f"{symbol} order value {quantity * price:.2f} exceeds cash headroom {headroom:.2f}",
                level="DEBUG", symbol=symbol, threshold=headroom
            )
            return False
        return True
