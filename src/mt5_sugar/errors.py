"""Error taxonomy for sizing, validation, placement and pair orchestration."""

from __future__ import annotations

from typing import Any


class SugarError(Exception):
    """Base error for the SDK."""


class InstrumentUnavailable(SugarError):
    """Symbol cannot be selected or synchronized on the terminal."""


class InvalidInstrumentSpec(SugarError):
    """Broker returned non-positive tick or step values."""


class InvalidArgument(SugarError, ValueError):
    """Caller passed a non-positive risk, stop distance, volume or ticket."""


class InvalidStopSide(SugarError, ValueError):
    """Stop-loss or take-profit sits on the wrong side of the market."""


class TransportTransient(SugarError):
    """Recoverable remote call failure."""


class OrderRejected(SugarError):
    def __init__(self, result: Any) -> None:
        self.result = result
        super().__init__(f"Order rejected ({result.return_code}): {result.message}")


class PairIntegrityFailure(SugarError):
    """An order or position could not be cancelled or closed during cleanup."""

    def __init__(self, message: str, report: Any = None) -> None:
        self.report = report
        super().__init__(message)
