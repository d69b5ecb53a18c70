"""Periodic driver for the analysis and settlement cycles.

Analysis cycle: live price + recent bars -> indicators -> decision ->
ledger.create. Settlement cycle: live price -> ledger.tick. The two run
either merged in one loop or as independent loops; the ledger serializes
its own mutations, so both schedules give the same ledger semantics.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable

from app.services.price_feed import Clock, utc_now
from core.errors import InsufficientDataError, SourceUnavailableError
from core.ledger import PredictionLedger
from core.models import Decision, IndicatorSnapshot, Prediction, PriceWindow
from core.sources import OHLCSource, PredictionCallback, PriceSource
from core.strategy import SignalFuser

logger = logging.getLogger(__name__)


# Cycle status values
STATUS_OK = "ok"
STATUS_UNAVAILABLE = "unavailable"
STATUS_INSUFFICIENT = "insufficient_data"


@dataclass
class CycleResult:
    """Result of one analysis cycle.

    Attributes:
        decision: Fused decision, HOLD when the cycle could not run.
        status: STATUS_OK, STATUS_UNAVAILABLE or STATUS_INSUFFICIENT.
        at: When the cycle ran.
        price: Live price used as entry, if one was available.
        snapshot: Indicator values, if they were computed.
        prediction: Prediction opened by this cycle, if any.
        error: Error message for a skipped cycle.
    """

    decision: Decision
    status: str
    at: datetime
    price: float | None = None
    snapshot: IndicatorSnapshot | None = None
    prediction: Prediction | None = None
    error: str | None = None


CycleCallback = Callable[[CycleResult], Awaitable[None]]


class PredictionDriver:
    """
    Runs the analysis and settlement cycles on fixed intervals.

    Source failures skip the affected cycle (the decision reverts to HOLD)
    and never stop the loop. Stopping cancels the loops between cycles;
    ledger mutations are synchronous, so none is left half-applied.
    """

    def __init__(
        self,
        fuser: SignalFuser,
        ledger: PredictionLedger,
        ohlc_source: OHLCSource,
        price_source: PriceSource,
        symbol: str = "BTCUSDT",
        bar_interval: str = "1h",
        bar_count: int = 100,
        timeframe: str = "10m",
        analysis_interval: float = 1.0,
        settlement_interval: float = 1.0,
        merged: bool = True,
        auto_trade: bool = True,
        clock: Clock = utc_now,
    ):
        self.fuser = fuser
        self.ledger = ledger
        self.ohlc_source = ohlc_source
        self.price_source = price_source
        self.symbol = symbol
        self.bar_interval = bar_interval
        self.bar_count = bar_count
        self.analysis_interval = analysis_interval
        self.settlement_interval = settlement_interval
        self.merged = merged
        self.auto_trade = auto_trade
        self._clock = clock

        self._timeframe = ""
        self.set_timeframe(timeframe)

        self._latest_cycle: CycleResult | None = None
        self._tasks: list[asyncio.Task] = []

        self._prediction_callbacks: list[PredictionCallback] = []
        self._settlement_callbacks: list[PredictionCallback] = []
        self._cycle_callbacks: list[CycleCallback] = []

    # -- callbacks -----------------------------------------------------------

    def on_prediction(self, callback: PredictionCallback) -> None:
        """Register callback for newly opened predictions."""
        if callback not in self._prediction_callbacks:
            self._prediction_callbacks.append(callback)

    def on_settlement(self, callback: PredictionCallback) -> None:
        """Register callback for settled predictions."""
        if callback not in self._settlement_callbacks:
            self._settlement_callbacks.append(callback)

    def on_cycle(self, callback: CycleCallback) -> None:
        """Register callback for completed analysis cycles."""
        if callback not in self._cycle_callbacks:
            self._cycle_callbacks.append(callback)

    async def _notify(self, callbacks: list, payload) -> None:
        for callback in callbacks:
            try:
                await callback(payload)
            except Exception as e:
                logger.error(f"Driver callback error: {e}")

    # -- timeframe -----------------------------------------------------------

    @property
    def timeframe(self) -> str:
        return self._timeframe

    def set_timeframe(self, label: str) -> None:
        """Select the timeframe used for predictions opened from now on.

        Raises:
            KeyError: If the label is not configured
        """
        self.fuser.config.get_timeframe(label)
        self._timeframe = label

    # -- cycles --------------------------------------------------------------

    @property
    def latest_cycle(self) -> CycleResult | None:
        return self._latest_cycle

    async def evaluate(self) -> CycleResult:
        """Compute a decision from fresh data without opening a prediction."""
        now = self._clock()
        try:
            sample = await self.price_source.fetch_price_sample()
            bars = await self.ohlc_source.fetch_recent_bars(
                self.symbol, self.bar_interval, self.bar_count
            )
        except SourceUnavailableError as e:
            logger.warning(f"Skipping analysis cycle: {e}")
            return CycleResult(
                decision=Decision.HOLD,
                status=STATUS_UNAVAILABLE,
                at=now,
                error=str(e),
            )

        # Same-timestamp bars replace the forming one; out-of-order bars are dropped
        window = PriceWindow(max_size=self.bar_count)
        window.extend(bars)

        try:
            result = self.fuser.evaluate_window(window)
        except InsufficientDataError as e:
            logger.warning(f"Skipping analysis cycle: {e}")
            return CycleResult(
                decision=Decision.HOLD,
                status=STATUS_INSUFFICIENT,
                at=now,
                price=sample.price,
                error=str(e),
            )

        return CycleResult(
            decision=result.decision,
            status=STATUS_OK,
            at=now,
            price=sample.price,
            snapshot=result.snapshot,
        )

    async def run_analysis_cycle(self) -> CycleResult:
        """Run one analysis cycle and open a prediction on a directional decision."""
        cycle = await self.evaluate()

        if cycle.status == STATUS_OK and cycle.price is not None:
            cycle.prediction = self.ledger.create(
                cycle.decision, cycle.price, self._timeframe, self._clock()
            )

        self._latest_cycle = cycle
        if cycle.prediction is not None:
            await self._notify(self._prediction_callbacks, cycle.prediction)
        await self._notify(self._cycle_callbacks, cycle)
        return cycle

    async def run_settlement_cycle(self) -> list[Prediction]:
        """Settle due predictions against the live price.

        The price sample's observation time is used as `now`, so a
        prediction is only settled by a price observed at or after expiry.
        """
        try:
            sample = await self.price_source.fetch_price_sample()
        except SourceUnavailableError as e:
            logger.warning(f"Skipping settlement cycle: {e}")
            return []

        settled = self.ledger.tick(sample.price, sample.observed_at)
        for prediction in settled:
            await self._notify(self._settlement_callbacks, prediction)
        return settled

    # -- loops ---------------------------------------------------------------

    async def _run_periodic(self, name: str, interval: float, *steps) -> None:
        logger.info(f"{name} loop started (every {interval}s)")
        while True:
            for step in steps:
                try:
                    await step()
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception(f"{name} loop step failed")
            await asyncio.sleep(interval)

    @property
    def is_running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    async def start(self) -> None:
        """Start the periodic loops."""
        if self.is_running:
            return

        if self.merged and self.auto_trade:
            self._tasks = [
                asyncio.create_task(
                    self._run_periodic(
                        "Prediction",
                        self.analysis_interval,
                        self.run_analysis_cycle,
                        self.run_settlement_cycle,
                    )
                )
            ]
            return

        self._tasks = [
            asyncio.create_task(
                self._run_periodic(
                    "Settlement", self.settlement_interval, self.run_settlement_cycle
                )
            )
        ]
        if self.auto_trade:
            self._tasks.append(
                asyncio.create_task(
                    self._run_periodic(
                        "Analysis", self.analysis_interval, self.run_analysis_cycle
                    )
                )
            )

    async def stop(self) -> None:
        """Stop the periodic loops."""
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        logger.info("Prediction driver stopped")
