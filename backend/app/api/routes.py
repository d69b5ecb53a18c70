"""REST API routes."""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from app.services import STATUS_UNAVAILABLE, CycleResult, PredictionDriver
from core.ledger import PredictionLedger
from core.models import IndicatorSnapshot, Outcome, PredictionView

logger = logging.getLogger(__name__)

router = APIRouter()


# Response models
class CycleResponse(BaseModel):
    """Analysis cycle result together with the current ledger."""

    decision: str
    status: str
    at: datetime
    timeframe: str
    price: Optional[float] = None
    indicators: Optional[IndicatorSnapshot] = None
    prediction: Optional[PredictionView] = None
    error: Optional[str] = None
    ledger: list[PredictionView] = []


class SuggestionResponse(BaseModel):
    """Decision computed without opening a prediction."""

    suggestion: str
    price: Optional[float] = None
    indicators: Optional[IndicatorSnapshot] = None


class SystemStatus(BaseModel):
    """System status response."""

    status: str
    symbol: str
    price: Optional[float] = None
    timeframe: str
    open_predictions: int
    total_predictions: int
    running: bool


class StatsResponse(BaseModel):
    """Accuracy and profit totals."""

    total: int
    open: int
    settled: int
    correct: int
    wrong: int
    accuracy: float
    total_profit: float


class TimeframeResponse(BaseModel):
    """A selectable timeframe preset."""

    label: str
    horizon_seconds: float
    profit_rate: float
    selected: bool


class TimeframeRequest(BaseModel):
    """Timeframe selection request."""

    timeframe: str


def build_cycle_response(
    cycle: CycleResult,
    ledger: PredictionLedger | None,
    timeframe: str,
) -> CycleResponse:
    """Build the cycle payload; pass ledger=None to leave the ledger out."""
    return CycleResponse(
        decision=cycle.decision.value,
        status=cycle.status,
        at=cycle.at,
        timeframe=timeframe,
        price=cycle.price,
        indicators=cycle.snapshot,
        prediction=cycle.prediction.to_view() if cycle.prediction else None,
        error=cycle.error,
        ledger=ledger.views() if ledger is not None else [],
    )


def get_driver(request: Request) -> PredictionDriver:
    """Get the running prediction driver from app state."""
    driver = getattr(request.app.state, "driver", None)
    if driver is None:
        raise HTTPException(status_code=503, detail="Prediction driver not running")
    return driver


@router.get("/status", response_model=SystemStatus)
async def get_status(driver: PredictionDriver = Depends(get_driver)):
    """Get system status."""
    return SystemStatus(
        status="running" if driver.is_running else "stopped",
        symbol=driver.symbol,
        price=driver.ledger.last_price,
        timeframe=driver.timeframe,
        open_predictions=driver.ledger.open_count,
        total_predictions=len(driver.ledger),
        running=driver.is_running,
    )


@router.get("/cycle", response_model=CycleResponse)
async def get_latest_cycle(driver: PredictionDriver = Depends(get_driver)):
    """Get the latest analysis cycle and the prediction ledger."""
    cycle = driver.latest_cycle
    if cycle is None:
        raise HTTPException(status_code=404, detail="No analysis cycle has run yet")
    return build_cycle_response(cycle, driver.ledger, driver.timeframe)


@router.get("/predictions", response_model=list[PredictionView])
async def get_predictions(
    outcome: Optional[Outcome] = Query(None, description="Filter by outcome"),
    driver: PredictionDriver = Depends(get_driver),
):
    """Get all predictions, oldest first."""
    views = driver.ledger.views()
    if outcome:
        views = [v for v in views if v.outcome == outcome]
    return views


@router.get("/stats", response_model=StatsResponse)
async def get_stats(driver: PredictionDriver = Depends(get_driver)):
    """Get accuracy and profit totals."""
    stats = driver.ledger.stats()
    return StatsResponse(
        total=stats.total,
        open=stats.open,
        settled=stats.settled,
        correct=stats.correct,
        wrong=stats.wrong,
        accuracy=stats.accuracy,
        total_profit=stats.total_profit,
    )


@router.get("/timeframes", response_model=list[TimeframeResponse])
async def get_timeframes(driver: PredictionDriver = Depends(get_driver)):
    """List timeframe presets."""
    return [
        TimeframeResponse(
            label=label,
            horizon_seconds=preset.horizon.total_seconds(),
            profit_rate=preset.profit_rate,
            selected=label == driver.timeframe,
        )
        for label, preset in driver.fuser.config.timeframes.items()
    ]


@router.put("/timeframe", response_model=TimeframeResponse)
async def set_timeframe(
    request: TimeframeRequest,
    driver: PredictionDriver = Depends(get_driver),
):
    """Select the timeframe used by subsequent predictions."""
    try:
        driver.set_timeframe(request.timeframe)
    except KeyError as e:
        raise HTTPException(status_code=400, detail=str(e.args[0]))

    preset = driver.fuser.config.get_timeframe(request.timeframe)
    logger.info(f"Timeframe set to {request.timeframe}")
    return TimeframeResponse(
        label=request.timeframe,
        horizon_seconds=preset.horizon.total_seconds(),
        profit_rate=preset.profit_rate,
        selected=True,
    )


@router.post("/analyze", response_model=CycleResponse)
async def analyze(driver: PredictionDriver = Depends(get_driver)):
    """Run one analysis cycle now and open a prediction if it signals an entry."""
    cycle = await driver.run_analysis_cycle()
    if cycle.status == STATUS_UNAVAILABLE:
        raise HTTPException(status_code=503, detail=cycle.error)
    return build_cycle_response(cycle, driver.ledger, driver.timeframe)


@router.get("/suggestion", response_model=SuggestionResponse)
async def get_suggestion(driver: PredictionDriver = Depends(get_driver)):
    """Compute the current decision without opening a prediction."""
    cycle = await driver.evaluate()
    if cycle.status == STATUS_UNAVAILABLE:
        raise HTTPException(status_code=503, detail=cycle.error)
    return SuggestionResponse(
        suggestion=cycle.decision.value,
        price=cycle.price,
        indicators=cycle.snapshot,
    )
