"""OHLC source chain: primary provider with ordered fallbacks."""

import logging
from typing import Iterable, Sequence

from core.errors import SourceUnavailableError
from core.models import PriceBar
from core.sources import OHLCSource

logger = logging.getLogger(__name__)


class FallbackOHLCSource:
    """
    Try a list of OHLC sources in order and return the first success.

    A failed source hands over to the next one only if its status code is
    in `fallback_status_codes`. An empty set means any failure hands over.
    Failures that do not qualify are raised immediately.
    """

    name = "fallback"

    def __init__(
        self,
        sources: Sequence[OHLCSource],
        fallback_status_codes: Iterable[int] = (),
    ):
        if not sources:
            raise ValueError("at least one OHLC source is required")
        self.sources = list(sources)
        self.fallback_status_codes = set(fallback_status_codes)
        self.last_source: str | None = None

    def _should_fall_back(self, error: SourceUnavailableError) -> bool:
        if not self.fallback_status_codes:
            return True
        return error.status_code in self.fallback_status_codes

    async def fetch_recent_bars(
        self,
        symbol: str,
        bar_interval: str,
        count: int,
    ) -> list[PriceBar]:
        """Fetch bars from the first source that succeeds.

        Raises:
            SourceUnavailableError: From the last source tried
        """
        for index, source in enumerate(self.sources):
            try:
                bars = await source.fetch_recent_bars(symbol, bar_interval, count)
            except SourceUnavailableError as e:
                is_last = index == len(self.sources) - 1
                if is_last or not self._should_fall_back(e):
                    raise
                logger.warning(
                    f"OHLC source {source.name} failed ({e}), "
                    f"falling back to {self.sources[index + 1].name}"
                )
                continue

            self.last_source = source.name
            return bars

        raise SourceUnavailableError(self.name, "no OHLC source available")
