"""
Tidewater Main Entry Point

Command line entry point with two modes:

  backtest  run the drop/rise strategy over synthetic or CSV price data
  live      trade against Binance (requires BINANCE_API_KEY and BINANCE_API_SECRET)
"""

import sys
import signal
import asyncio
import argparse
import traceback
from typing import List, Optional

from config.settings import get_settings
from core.backtest import BacktestEngine
from core.engine import LiveTradingEngine
from core.models import Asset, BacktestResult, Portfolio
from data.feeder import DEFAULT_START_PRICES, generate_price_data, load_price_csv
from execution.binance_client import BinanceClient
from strategies.registry import available_strategies, get_strategy
from utils.logger import setup_logging, get_logger

logger = get_logger("main")

USAGE = """Usage: python main.py [backtest|live] [options]
  backtest - Run backtesting simulation
  live     - Run live trading bot (requires BINANCE_API_KEY and BINANCE_API_SECRET)"""

# Starting holdings for the synthetic backtest portfolio
DEFAULT_HOLDINGS = {"ETHUSDT": 10.0, "BTCUSDT": 0.5, "SOLUSDT": 50.0}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tidewater drop/rise trading bot", usage=USAGE)
    parser.add_argument("mode", nargs="?", help="backtest or live")
    parser.add_argument("--symbols", help="Comma separated symbols (default from settings)")
    parser.add_argument("--strategy", default="drop_rise", choices=available_strategies())
    parser.add_argument("--days", type=int, help="Synthetic backtest length in days")
    parser.add_argument("--seed", type=int, help="Random seed for synthetic prices")
    parser.add_argument("--csv", help="Load backtest prices from a CSV file")
    parser.add_argument("--log-level", help="Override log level")
    return parser


def initial_backtest_portfolio(symbols: List[str], cash: float) -> Portfolio:
    assets = {
        symbol: Asset(symbol=symbol, price=DEFAULT_START_PRICES[symbol],
                      holdings=DEFAULT_HOLDINGS.get(symbol, 0.0))
        for symbol in symbols
        if symbol in DEFAULT_START_PRICES
    }
    return Portfolio(cash=cash, assets=assets)


def print_report(result: BacktestResult) -> None:
    print("\n=== BACKTEST RESULTS ===")
    print(f"Total Trades: {len(result.trades)}")
    print(f"Total Return: {result.total_return:.2f}%")
    print(f"Sharpe Ratio: {result.sharpe_ratio:.2f}")
    print(f"Max Drawdown: {result.max_drawdown:.2f}%")
    print("\nFinal Portfolio:")
    print(f"Cash: ${result.final_portfolio.cash:.2f}")
    for symbol, asset in result.final_portfolio.assets.items():
        print(f"{symbol}: {asset.holdings:.6f} @ ${asset.price:.2f}")

    print("\nLast 10 Trades:")
    for trade in result.trades[-10:]:
        print(f"{trade.side.value} {trade.quantity:.6f} {trade.symbol} @ ${trade.price:.2f}")


async def run_backtest(args: argparse.Namespace, symbols: List[str]) -> int:
    settings = get_settings()
    logger.info("Running backtest...")

    if args.csv:
        price_data = load_price_csv(args.csv)
        symbols = sorted({u.symbol for u in price_data})
        first_prices = {}
        for update in price_data:
            first_prices.setdefault(update.symbol, update.price)
        portfolio = Portfolio(
            cash=settings.initial_cash,
            assets={s: Asset(s, first_prices[s], DEFAULT_HOLDINGS.get(s, 0.0)) for s in symbols},
        )
    else:
        price_data = generate_price_data(
            symbols, days=args.days or settings.backtest_days, seed=args.seed
        )
        portfolio = initial_backtest_portfolio(symbols, settings.initial_cash)

    engine = BacktestEngine(
        get_strategy(args.strategy),
        portfolio,
        settings.risk_limits(),
        strategy_config=settings.strategy_config(),
        use_config_slices=settings.twap_slices_from_config,
    )
    result = await engine.run(price_data)
    print_report(result)
    return 0


async def run_live(
    args: argparse.Namespace,
    symbols: List[str],
    stop_event: Optional[asyncio.Event] = None,
) -> int:
    settings = get_settings()
    if not settings.has_credentials():
        logger.error("Please set BINANCE_API_KEY and BINANCE_API_SECRET environment variables")
        return 1

    logger.info("Starting live bot...")
    if stop_event is None:
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop_event.set)
            except NotImplementedError:
                # Windows event loops do not support signal handlers
                signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop_event.set))

    async with BinanceClient(
        settings.binance_api_key,
        settings.binance_api_secret,
        testnet=settings.binance_testnet,
        timeout=settings.binance_timeout,
    ) as client:
        engine = LiveTradingEngine(
            client,
            get_strategy(args.strategy),
            settings.risk_limits(),
            strategy_config=settings.strategy_config(),
            poll_interval=settings.poll_interval,
            use_config_slices=settings.twap_slices_from_config,
        )
        await engine.initialize()
        await engine.start(symbols)
        try:
            await stop_event.wait()
        finally:
            logger.info("Stopping bot...")
            await engine.stop()
            # in-flight slices need the client session
            await engine.wait_idle()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main application entry point.

    Returns:
        int: Process exit code
    """
    args = build_parser().parse_args(argv)
    if args.mode not in ("backtest", "live"):
        print(USAGE)
        return 0

    setup_logging(args.log_level)
    settings = get_settings()
    symbols = (
        [s.strip().upper() for s in args.symbols.split(",") if s.strip()]
        if args.symbols else list(settings.symbols)
    )

    runner = run_backtest if args.mode == "backtest" else run_live
    try:
        return asyncio.run(runner(args, symbols))
    except KeyboardInterrupt:
        logger.info("Application terminated by keyboard interrupt")
        return 0
    except Exception as e:
        logger.critical(f"Fatal error: {e}")
        logger.critical(traceback.format_exc())
        return 1


if __name__ == "__main__":
    sys.exit(main())
