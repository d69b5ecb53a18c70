#!/usr/bin/env python3
"""
Historical prediction replay.

Fetches recent bars through the same OHLC sources the live service uses,
walks them oldest to newest through the signal fuser and prediction ledger,
and prints accuracy and profit.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from app.clients import BinanceRestClient, CoinGeckoClient
from app.config import get_settings
from app.services import FallbackOHLCSource
from app.trading_config import load_trading_config
from core.errors import SourceUnavailableError
from core.ledger import PredictionLedger
from core.replay import replay_bars
from core.strategy import SignalFuser

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    strategy_config = load_trading_config().to_strategy_config()
    try:
        strategy_config.get_timeframe(args.timeframe)
    except KeyError as e:
        logger.error(e.args[0])
        return 2

    binance = BinanceRestClient(settings.binance_rest_url, settings.http_timeout)
    coingecko = CoinGeckoClient(
        coin_id=settings.coingecko_coin_id,
        vs_currency=settings.coingecko_vs_currency,
        days=max(settings.coingecko_days, args.limit // 24 + 1),
        base_url=settings.coingecko_url,
        timeout=settings.http_timeout,
    )
    source = FallbackOHLCSource(
        [binance, coingecko],
        fallback_status_codes=settings.ohlc_fallback_status_codes,
    )

    try:
        bars = await source.fetch_recent_bars(args.symbol, args.interval, args.limit)
    except SourceUnavailableError as e:
        logger.error(f"Could not fetch bars: {e}")
        return 1
    finally:
        await binance.close()
        await coingecko.close()

    logger.info(f"Loaded {len(bars)} bars from {source.last_source}")

    ledger = PredictionLedger(strategy_config)
    stats = replay_bars(
        bars,
        SignalFuser(strategy_config),
        ledger,
        timeframe=args.timeframe,
        window=args.window,
    )

    print()
    print("=" * 50)
    print(f"Replay: {args.symbol} {args.interval} x{len(bars)}, timeframe {args.timeframe}")
    print("=" * 50)
    print(f"Predictions:  {stats.total}")
    print(f"Settled:      {stats.settled} (open {stats.open})")
    print(f"Correct:      {stats.correct}")
    print(f"Wrong:        {stats.wrong}")
    print(f"Accuracy:     {stats.accuracy:.1%}")
    print(f"Total profit: {stats.total_profit:+.2f} U")
    return 0


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Replay historical bars through the predictor")
    parser.add_argument("--symbol", default=settings.symbol)
    parser.add_argument("--interval", default=settings.bar_interval)
    parser.add_argument("--limit", type=int, default=1000, help="Number of bars to fetch")
    parser.add_argument("--window", type=int, default=settings.bar_count)
    parser.add_argument("--timeframe", default=settings.default_timeframe)
    args = parser.parse_args()

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
