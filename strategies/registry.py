"""
Tidewater Strategy Registry

Builds strategies by name for the command line.
"""

from typing import Callable, Dict, List

from strategies.base import Strategy
from strategies.drop_rise import DropRiseStrategy

STRATEGIES: Dict[str, Callable[[], Strategy]] = {
    DropRiseStrategy.name: DropRiseStrategy,
}


def available_strategies() -> List[str]:
    return sorted(STRATEGIES)


def get_strategy(name: str) -> Strategy:
    """
    Instantiate a registered strategy.

    Args:
        name: Registered strategy name

    Returns:
        Strategy: New strategy instance

    Raises:
        ValueError: If no strategy is registered under ``name``
    """
    try:
        factory = STRATEGIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown strategy '{name}'. Available: {', '.join(available_strategies())}"
        ) from None
    return factory()
