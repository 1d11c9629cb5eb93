"""
Tidewater Logger

Centralized Loguru-based logging with structured output, context binding
and optional file rotation.
"""

import sys
import json
from pathlib import Path
from typing import Optional
from datetime import datetime, timezone

from loguru import logger

from config.settings import get_settings


def setup_logging(log_level: Optional[str] = None) -> None:
    """
    Configure Loguru logging with console output and optional file rotation.

    Args:
        log_level: Override default log level from settings
    """
    settings = get_settings()

    # Remove default handler
    logger.remove()

    level = log_level or settings.log_level.value

    if settings.log_json_format:
        def json_formatter(record):
            json_record = {
                "timestamp": record["time"].isoformat(),
                "level": record["level"].name,
                "logger": record["name"],
                "function": record["function"],
                "line": record["line"],
                "message": record["message"],
            }
            if record["extra"]:
                json_record.update(record["extra"])
            # Loguru treats the returned string as a format template
            record["extra"]["serialized"] = json.dumps(json_record, default=str)
            return "{extra[serialized]}\n"

        logger.add(
            sys.stderr,
            format=json_formatter,
            level=level,
            backtrace=True,
            diagnose=not settings.is_production()
        )
    else:
        console_format = (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )

        logger.add(
            sys.stderr,
            format=console_format,
            level=level,
            colorize=True,
            backtrace=True,
            diagnose=not settings.is_production()
        )

    if settings.log_to_file:
        log_path = Path(settings.log_file_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_format = (
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
            "{level: <8} | "
            "{name}:{function}:{line} | "
            "{message}"
        )

        logger.add(
            str(log_path),
            format=file_format,
            level=level,
            rotation=settings.log_rotation_size,
            retention=f"{settings.log_retention_days} days",
            compression=settings.log_compression,
            backtrace=True,
            diagnose=not settings.is_production(),
            enqueue=True
        )

    logger.debug(f"{settings.app_name} logging initialized - Level: {level}")


def get_logger(name: str = None):
    """
    Get a logger instance with optional name binding.

    Args:
        name: Logger name for identification and filtering

    Returns:
        Configured logger instance with context binding
    """
    if name:
        return logger.bind(component=name)
    return logger


class ContextLogger:
    """
    Context-aware logger for trading operations.

    Binds a component name to every record and offers helpers that
    attach trading-specific context fields.
    """

    def __init__(self, component: str):
        """
        Initialize context logger.

        Args:
            component: Component name (e.g., 'strategy', 'risk', 'execution')
        """
        self.component = component
        self.logger = logger.bind(component=component)

    def trade(self, message: str, symbol: str = None, **kwargs):
        """Log trading-related messages with trade context."""
        context = {"event_type": "trade", "symbol": symbol, **kwargs}
        self.logger.bind(**context).info(f"TRADE: {message}")

    def risk(self, message: str, level: str = "WARNING", **kwargs):
        """Log risk management messages with risk context."""
        context = {"event_type": "risk", "risk_level": level, **kwargs}
        level = level.upper()
        if level == "DEBUG":
            self.logger.bind(**context).debug(f"RISK: {message}")
        elif level == "ERROR":
            self.logger.bind(**context).error(f"RISK: {message}")
        else:
            self.logger.bind(**context).warning(f"RISK: {message}")

    def system(self, message: str, level: str = "INFO", **kwargs):
        """Log system-related messages with system context."""
        context = {"event_type": "system", "system_level": level, **kwargs}
        level = level.upper()
        if level == "ERROR":
            self.logger.bind(**context).error(f"SYSTEM: {message}")
        elif level == "WARNING":
            self.logger.bind(**context).warning(f"SYSTEM: {message}")
        else:
            self.logger.bind(**context).info(f"SYSTEM: {message}")

    def performance(self, message: str, **kwargs):
        """Log performance metrics with performance context."""
        context = {"event_type": "performance", **kwargs}
        self.logger.bind(**context).info(f"PERF: {message}")

    def execution(self, message: str, symbol: str = None, **kwargs):
        """Log order execution messages."""
        context = {"event_type": "execution", "symbol": symbol, **kwargs}
        self.logger.bind(**context).info(f"EXEC: {message}")

    def data(self, message: str, data_type: str = None, **kwargs):
        """Log data processing messages."""
        context = {"event_type": "data", "data_type": data_type, **kwargs}
        self.logger.bind(**context).debug(f"DATA: {message}")

    def debug(self, message: str, **kwargs):
        if kwargs:
            self.logger.bind(**kwargs).debug(message)
        else:
            self.logger.debug(message)

    def info(self, message: str, **kwargs):
        if kwargs:
            self.logger.bind(**kwargs).info(message)
        else:
            self.logger.info(message)

    def warning(self, message: str, **kwargs):
        if kwargs:
            self.logger.bind(**kwargs).warning(message)
        else:
            self.logger.warning(message)

    def error(self, message: str, **kwargs):
        if kwargs:
            self.logger.bind(**kwargs).error(message)
        else:
            self.logger.error(message)

    def exception(self, message: str, **kwargs):
        """Log exception with traceback."""
        if kwargs:
            self.logger.bind(**kwargs).exception(message)
        else:
            self.logger.exception(message)


def log_trade(
    symbol: str,
    side: str,
    quantity: float,
    price: float,
    strategy: str = None,
    **kwargs
) -> None:
    """
    Log trade execution with structured data.

    Args:
        symbol: Trading symbol
        side: BUY or SELL
        quantity: Units traded
        price: Execution price
        strategy: Strategy name
        **kwargs: Additional context
    """
    context = {
        "event_type": "trade_execution",
        "symbol": symbol,
        "side": side,
        "quantity": quantity,
        "price": price,
        "value": quantity * price,
        "strategy": strategy,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **kwargs
    }

    logger.bind(**context).info(
        f"TRADE EXECUTED: {side} {quantity:.6f} {symbol} @ ${price:.2f} "
        f"(Value: ${quantity * price:,.2f})"
    )


def log_performance(
    metric_type: str,
    value: float,
    period: str = None,
    **kwargs
) -> None:
    """
    Log performance metrics with structured data.

    Args:
        metric_type: Type of performance metric
        value: Metric value
        period: Time period for metric
        **kwargs: Additional context
    """
    context = {
        "event_type": "performance_metric",
        "metric_type": metric_type,
        "value": value,
        "period": period,
        **kwargs
    }

    period_text = f" [{period}]" if period else ""

    logger.bind(**context).info(
        f"PERFORMANCE: {metric_type} = {value:.4f}{period_text}"
    )


# Pre-configured component loggers
core_logger = ContextLogger("core")
strategy_logger = ContextLogger("strategy")
risk_logger = ContextLogger("risk")
execution_logger = ContextLogger("execution")
data_logger = ContextLogger("data")
