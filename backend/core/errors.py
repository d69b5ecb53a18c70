"""Error types raised by the signal engine and its data sources."""


class SignalEngineError(Exception):
    """Base exception for all signal engine errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class InsufficientDataError(SignalEngineError):
    """Fewer samples than an indicator's minimum lookback."""

    def __init__(self, indicator: str, required: int, available: int):
        super().__init__(
            f"{indicator} needs at least {required} samples, got {available}",
            {"required": required, "available": available},
        )
        self.indicator = indicator
        self.required = required
        self.available = available


class SourceUnavailableError(SignalEngineError):
    """An OHLC or live-price source could not deliver data."""

    def __init__(self, source: str, message: str, status_code: int | None = None):
        details = {"source": source}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details)
        self.source = source
        self.status_code = status_code
