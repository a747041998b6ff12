"""Terminal adapters, the instrument resolver and the placement facade."""

from mt5_sugar.execution.paper import PaperTerminal
from mt5_sugar.execution.placer import OrderPlacer
from mt5_sugar.execution.resolver import InstrumentCache, QuantityResolver
from mt5_sugar.execution.terminal import TerminalAdapter
from mt5_sugar.models import (
    ACCEPTED_RETCODES,
    RETCODE_DONE,
    RETCODE_DONE_PARTIAL,
    RETCODE_PLACED,
    InstrumentSpec,
    OrderIntent,
    OrderResult,
    OrderType,
    PendingOrderInfo,
    PositionInfo,
    PriceQuote,
    Side,
)

__all__ = [
    "ACCEPTED_RETCODES",
    "RETCODE_DONE",
    "RETCODE_DONE_PARTIAL",
    "RETCODE_PLACED",
    "InstrumentCache",
    "InstrumentSpec",
    "OrderIntent",
    "OrderPlacer",
    "OrderResult",
    "OrderType",
    "PaperTerminal",
    "PendingOrderInfo",
    "PositionInfo",
    "PriceQuote",
    "QuantityResolver",
    "Side",
    "TerminalAdapter",
]
