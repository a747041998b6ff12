"""Risk-bounded order placement and one-cancels-other pairs for MetaTrader 5."""

from mt5_sugar.errors import (
    InstrumentUnavailable,
    InvalidArgument,
    InvalidInstrumentSpec,
    InvalidStopSide,
    OrderRejected,
    PairIntegrityFailure,
    SugarError,
    TransportTransient,
)
from mt5_sugar.execution import OrderPlacer, PaperTerminal, QuantityResolver, TerminalAdapter
from mt5_sugar.models import InstrumentSpec, OrderResult, OrderType, PriceQuote, Side
from mt5_sugar.risk import VolumeRounding, normalize_price, normalize_volume, validate_stops, volume_for_risk
from mt5_sugar.runtime import LegRequest, PairOrchestrator, PairReport, PairRunConfig, Resolution

__version__ = "0.1.0"

__all__ = [
    "InstrumentSpec",
    "InstrumentUnavailable",
    "InvalidArgument",
    "InvalidInstrumentSpec",
    "InvalidStopSide",
    "LegRequest",
    "OrderPlacer",
    "OrderRejected",
    "OrderResult",
    "OrderType",
    "PairIntegrityFailure",
    "PairOrchestrator",
    "PairReport",
    "PairRunConfig",
    "PaperTerminal",
    "PriceQuote",
    "QuantityResolver",
    "Resolution",
    "Side",
    "SugarError",
    "TerminalAdapter",
    "TransportTransient",
    "VolumeRounding",
    "normalize_price",
    "normalize_volume",
    "validate_stops",
    "volume_for_risk",
]
