"""Tests for the REST and WebSocket API."""

from datetime import datetime, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app import main as app_main
from app.api import build_cycle_response, router, websocket_endpoint
from app.services import PredictionDriver
from core.errors import SourceUnavailableError
from core.ledger import PredictionLedger
from core.models import Decision, PriceBar, StrategyConfig
from core.sources import PriceSample
from core.strategy import SignalFuser

T = datetime(2024, 1, 1, tzinfo=timezone.utc)


class StaticOHLCSource:
    name = "static"

    def __init__(self, bars):
        self.bars = bars

    async def fetch_recent_bars(self, symbol, bar_interval, count):
        return self.bars[-count:]


class StaticPriceSource:
    def __init__(self, price=91.0, error=None):
        self.price = price
        self.error = error

    async def fetch_price_sample(self):
        if self.error:
            raise self.error
        return PriceSample(price=self.price, observed_at=T)

    async def fetch_current_price(self):
        return (await self.fetch_price_sample()).price


def build_app(driver: PredictionDriver | None) -> FastAPI:
    app = FastAPI()
    app.include_router(router, prefix="/api")
    app.add_api_websocket_route("/ws", websocket_endpoint)
    if driver is not None:
        app.state.driver = driver
    return app


def make_driver(bars=None, price_source=None) -> PredictionDriver:
    config = StrategyConfig()
    return PredictionDriver(
        fuser=SignalFuser(config),
        ledger=PredictionLedger(config),
        ohlc_source=StaticOHLCSource(
            bars if bars is not None else [PriceBar.flat(float(p)) for p in range(110, 90, -1)]
        ),
        price_source=price_source or StaticPriceSource(),
        timeframe="10m",
        clock=lambda: T,
    )


@pytest.fixture
def driver():
    return make_driver()


@pytest.fixture
def client(driver):
    return TestClient(build_app(driver))


class TestRestApi:
    """Tests for the REST routes."""

    def test_status(self, client):
        response = client.get("/api/status")

        assert response.status_code == 200
        body = response.json()
        assert body["symbol"] == "BTCUSDT"
        assert body["timeframe"] == "10m"
        assert body["running"] is False
        assert body["total_predictions"] == 0

    def test_no_driver(self):
        client = TestClient(build_app(None))
        assert client.get("/api/status").status_code == 503

    def test_cycle_before_any_analysis(self, client):
        assert client.get("/api/cycle").status_code == 404

    def test_analyze_opens_prediction(self, client):
        response = client.post("/api/analyze")

        assert response.status_code == 200
        body = response.json()
        assert body["decision"] == Decision.BULLISH_ENTRY.value
        assert body["status"] == "ok"
        assert body["prediction"]["entry_price"] == 91.0
        assert body["prediction"]["outcome"] == "pending"
        assert len(body["ledger"]) == 1
        assert body["indicators"]["rsi"] == 0.0

        cycle = client.get("/api/cycle").json()
        assert cycle["prediction"]["id"] == body["prediction"]["id"]

    def test_analyze_unavailable(self):
        driver = make_driver(
            price_source=StaticPriceSource(
                error=SourceUnavailableError("live_price", "no live price")
            )
        )
        client = TestClient(build_app(driver))

        response = client.post("/api/analyze")

        assert response.status_code == 503
        assert len(driver.ledger) == 0

    def test_suggestion_does_not_open(self, client, driver):
        response = client.get("/api/suggestion")

        assert response.status_code == 200
        assert response.json()["suggestion"] == Decision.BULLISH_ENTRY.value
        assert len(driver.ledger) == 0

    def test_predictions_filter(self, client):
        client.post("/api/analyze")

        assert len(client.get("/api/predictions").json()) == 1
        assert len(client.get("/api/predictions", params={"outcome": "pending"}).json()) == 1
        assert client.get("/api/predictions", params={"outcome": "correct"}).json() == []

    def test_stats(self, client):
        client.post("/api/analyze")

        body = client.get("/api/stats").json()

        assert body["total"] == 1
        assert body["open"] == 1
        assert body["accuracy"] == 0.0

    def test_timeframes(self, client):
        body = client.get("/api/timeframes").json()

        labels = {t["label"]: t for t in body}
        assert set(labels) == {"10m", "30m", "1h", "1d"}
        assert labels["10m"]["selected"] is True
        assert labels["10m"]["horizon_seconds"] == 600
        assert labels["1d"]["profit_rate"] == 0.85

    def test_set_timeframe(self, client, driver):
        response = client.put("/api/timeframe", json={"timeframe": "1h"})

        assert response.status_code == 200
        assert response.json()["selected"] is True
        assert driver.timeframe == "1h"

    def test_set_unknown_timeframe(self, client, driver):
        response = client.put("/api/timeframe", json={"timeframe": "2w"})

        assert response.status_code == 400
        assert "unknown timeframe" in response.json()["detail"]
        assert driver.timeframe == "10m"


class TestWebSocket:
    """Tests for the WebSocket endpoint."""

    def test_ping_pong(self, client):
        with client.websocket_connect("/ws") as websocket:
            assert websocket.receive_json()["type"] == "connected"

            websocket.send_text('{"type": "ping"}')
            assert websocket.receive_json()["type"] == "pong"

    def test_invalid_json(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.receive_json()

            websocket.send_text("not json")
            message = websocket.receive_json()
            assert message["type"] == "error"


class TestCycleBroadcast:
    """Tests for the per-cycle WebSocket payload."""

    @pytest.mark.asyncio
    async def test_cycle_response_without_ledger(self, driver):
        cycle = await driver.evaluate()

        response = build_cycle_response(cycle, None, driver.timeframe)

        assert response.ledger == []
        assert response.decision == Decision.BULLISH_ENTRY.value

    @pytest.mark.asyncio
    async def test_broadcast_does_not_read_ledger(self, driver, monkeypatch):
        """The cycle broadcast never builds views of the whole ledger."""
        sent = []

        async def capture(data):
            sent.append(data)

        def fail_views():
            raise AssertionError("ledger views built for a cycle broadcast")

        monkeypatch.setattr(app_main, "driver", driver)
        monkeypatch.setattr(app_main.manager, "send_cycle", capture)
        monkeypatch.setattr(driver.ledger, "views", fail_views)

        await app_main.on_cycle(await driver.evaluate())

        assert sent[0]["decision"] == Decision.BULLISH_ENTRY.value
        assert "ledger" not in sent[0]
