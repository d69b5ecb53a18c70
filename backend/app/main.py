"""Main application entry point."""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries (must be set before importing them)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)
logging.getLogger("picows").setLevel(logging.WARNING)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from app.api import build_cycle_response, manager, router, websocket_endpoint
from app.clients import BinanceRestClient, BinanceTradeWebSocket, CoinGeckoClient
from app.config import Settings, get_settings
from app.services import (
    CycleResult,
    FallbackOHLCSource,
    LivePriceCell,
    PolledPriceSource,
    PredictionDriver,
)
from app.trading_config import load_trading_config
from core.ledger import PredictionLedger
from core.models import Prediction
from core.strategy import SignalFuser

logger = logging.getLogger(__name__)

# Minimum seconds between live price broadcasts
PRICE_BROADCAST_INTERVAL = 1.0

# Global services
driver: PredictionDriver | None = None
trade_stream: BinanceTradeWebSocket | None = None
binance_client: BinanceRestClient | None = None
coingecko_client: CoinGeckoClient | None = None
_last_price_broadcast = 0.0


async def on_prediction(prediction: Prediction) -> None:
    """Broadcast a newly opened prediction."""
    await manager.send_prediction(prediction.to_view().model_dump(mode="json"))


async def on_settlement(prediction: Prediction) -> None:
    """Broadcast a settled prediction."""
    await manager.send_settlement(prediction.to_view().model_dump(mode="json"))


async def on_cycle(cycle: CycleResult) -> None:
    """Broadcast the decision of an analysis cycle."""
    if driver is None:
        return
    response = build_cycle_response(cycle, None, driver.timeframe)
    await manager.send_cycle(response.model_dump(mode="json", exclude={"ledger"}))


async def on_trade_price(price: float, observed_at: datetime) -> None:
    """Broadcast live price, throttled to PRICE_BROADCAST_INTERVAL."""
    global _last_price_broadcast
    now = asyncio.get_running_loop().time()
    if now - _last_price_broadcast < PRICE_BROADCAST_INTERVAL:
        return
    _last_price_broadcast = now
    await manager.send_price(price, observed_at)


def build_driver(
    settings: Settings,
    binance: BinanceRestClient,
    coingecko: CoinGeckoClient,
    price_source,
) -> PredictionDriver:
    """Assemble fuser, ledger and sources into a driver."""
    strategy_config = load_trading_config().to_strategy_config()

    ohlc_source = FallbackOHLCSource(
        [binance, coingecko],
        fallback_status_codes=settings.ohlc_fallback_status_codes,
    )

    return PredictionDriver(
        fuser=SignalFuser(strategy_config),
        ledger=PredictionLedger(strategy_config),
        ohlc_source=ohlc_source,
        price_source=price_source,
        symbol=settings.symbol,
        bar_interval=settings.bar_interval,
        bar_count=settings.bar_count,
        timeframe=settings.default_timeframe,
        analysis_interval=settings.analysis_interval,
        settlement_interval=settings.settlement_interval,
        merged=settings.merged_schedule,
        auto_trade=settings.auto_trade,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global driver, trade_stream, binance_client, coingecko_client

    settings = get_settings()
    logger.info(f"Starting BTC prediction simulator for {settings.symbol}...")

    try:
        binance_client = BinanceRestClient(
            base_url=settings.binance_rest_url,
            timeout=settings.http_timeout,
        )
        coingecko_client = CoinGeckoClient(
            coin_id=settings.coingecko_coin_id,
            vs_currency=settings.coingecko_vs_currency,
            days=settings.coingecko_days,
            base_url=settings.coingecko_url,
            timeout=settings.http_timeout,
        )

        if settings.price_mode == "stream":
            price_source = LivePriceCell(max_age=settings.price_max_age)
            trade_stream = BinanceTradeWebSocket(settings.symbol, settings.binance_ws_url)
            trade_stream.on_price(price_source.on_trade)
            trade_stream.on_price(on_trade_price)
            await trade_stream.start()
            logger.info("Live price: trade stream")
        else:
            price_source = PolledPriceSource(binance_client, settings.symbol)
            logger.info("Live price: ticker polling")

        driver = build_driver(settings, binance_client, coingecko_client, price_source)
        driver.on_prediction(on_prediction)
        driver.on_settlement(on_settlement)
        driver.on_cycle(on_cycle)
        await driver.start()
        logger.info(
            f"Prediction driver started: timeframe={driver.timeframe}, "
            f"auto_trade={driver.auto_trade}, merged={driver.merged}"
        )

        app.state.driver = driver

    except Exception as e:
        logger.error(f"Startup failed: {e}")
        await _shutdown_services()
        raise  # Re-raise to prevent app from starting in broken state

    yield

    logger.info("Shutting down...")
    app.state.driver = None
    await _shutdown_services()
    logger.info("Shutdown complete")


async def _shutdown_services() -> None:
    """Stop loops first, then close connections."""
    global driver, trade_stream, binance_client, coingecko_client

    if driver:
        await driver.stop()
        driver = None

    if trade_stream:
        try:
            await trade_stream.stop()
        except Exception as e:
            logger.warning(f"Error stopping trade stream: {e}")
        trade_stream = None

    for client in (binance_client, coingecko_client):
        if client:
            try:
                await client.close()
            except Exception as e:
                logger.warning(f"Error closing HTTP client: {e}")
    binance_client = None
    coingecko_client = None


# Create FastAPI app with orjson for faster JSON serialization
app = FastAPI(
    title="BTC Prediction Simulator",
    description="Indicator-driven simulated predictions with automatic settlement",
    version="0.1.0",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include REST routes
app.include_router(router, prefix="/api")

# WebSocket endpoint
app.websocket("/ws")(websocket_endpoint)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "BTC Prediction Simulator",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


def main():
    """Run the application."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
