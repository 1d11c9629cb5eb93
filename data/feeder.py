"""
Tidewater Data Feeder

Price sequences for backtests: a seeded synthetic random walk and a
CSV loader.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np
import pandas as pd

from core.models import PriceUpdate
from utils.logger import data_logger as logger

DEFAULT_START_PRICES: Dict[str, float] = {
    "ETHUSDT": 2000.0,
    "BTCUSDT": 45000.0,
    "SOLUSDT": 100.0,
}

CSV_COLUMNS = ("symbol", "price", "timestamp")


def generate_price_data(
    symbols: List[str],
    days: int = 30,
    start_prices: Optional[Dict[str, float]] = None,
    max_daily_move: float = 0.05,
    seed: Optional[int] = None,
    end: Optional[datetime] = None,
) -> List[PriceUpdate]:
    """
    Generate one update per symbol per day from a random walk.

    Each day's price moves uniformly within ``±max_daily_move`` of the
    previous one and is stamped at a random time of that day. The result
    is sorted by timestamp.

    Args:
        symbols: Symbols to generate
        days: Number of days
        start_prices: Starting price per symbol (defaults cover the usual pairs)
        max_daily_move: Largest fractional move per day
        seed: Random seed for reproducible runs
        end: End of the generated window (defaults to now)

    Returns:
        List[PriceUpdate]: Updates in chronological order
    """
    rng = np.random.default_rng(seed)
    start_prices = {**DEFAULT_START_PRICES, **(start_prices or {})}
    end = end or datetime.now(timezone.utc)

    missing = [s for s in symbols if s not in start_prices]
    if missing:
        raise ValueError(f"No start price for: {', '.join(missing)}")

    prices = {s: start_prices[s] for s in symbols}
    updates: List[PriceUpdate] = []

    for day in range(days):
        day_start = end - timedelta(days=days - day)
        for symbol in symbols:
            change = rng.uniform(-max_daily_move, max_daily_move)
            prices[symbol] *= 1 + change
            offset = timedelta(seconds=float(rng.uniform(0, 86400)))
            updates.append(PriceUpdate(symbol, float(prices[symbol]), day_start + offset))

    updates.sort(key=lambda u: u.timestamp)
    logger.data(f"Generated {len(updates)} updates for {len(symbols)} symbols", data_type="synthetic")
    return updates


def load_price_csv(path: Union[str, Path], sort: bool = True) -> List[PriceUpdate]:
    """
    Load price updates from a CSV file.

    The file needs ``symbol``, ``price`` and ``timestamp`` columns.
    Timestamps may be ISO strings or epoch milliseconds.

    Args:
        path: CSV file path
        sort: Sort updates by timestamp (stable, so ties keep file order)

    Returns:
        List[PriceUpdate]: Loaded updates

    Raises:
        ValueError: If required columns are missing
    """
    df = pd.read_csv(path)
    missing = [c for c in CSV_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"CSV {path} missing columns: {', '.join(missing)}")

    if pd.api.types.is_numeric_dtype(df["timestamp"]):
        df["timestamp"] = pd.to_datetime(df["timestamp"], unit="ms", utc=True)
    else:
        df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)

    df = df.dropna(subset=list(CSV_COLUMNS))
    if sort:
        df = df.sort_values("timestamp", kind="stable")

    updates = [
        PriceUpdate(str(row.symbol), float(row.price), row.timestamp.to_pydatetime())
        for row in df.itertuples(index=False)
    ]
    logger.data(f"Loaded {len(updates)} updates from {path}", data_type="csv")
    return updates
