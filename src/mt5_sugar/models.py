"""Order, quote and instrument models shared by every layer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import Optional

from mt5_sugar.errors import OrderRejected

RETCODE_PLACED = 10008
RETCODE_DONE = 10009
RETCODE_DONE_PARTIAL = 10010
ACCEPTED_RETCODES = frozenset({RETCODE_PLACED, RETCODE_DONE, RETCODE_DONE_PARTIAL})


class Side(str, Enum):
    BUY = "buy"
    SELL = "sell"

    @property
    def opposite(self) -> "Side":
        return Side.SELL if self is Side.BUY else Side.BUY


class OrderType(IntEnum):
    """Terminal order type codes."""

    BUY = 0
    SELL = 1
    BUY_LIMIT = 2
    SELL_LIMIT = 3
    BUY_STOP = 4
    SELL_STOP = 5
    BUY_STOP_LIMIT = 6
    SELL_STOP_LIMIT = 7

    @property
    def side(self) -> Side:
        return Side.BUY if self.value % 2 == 0 else Side.SELL

    @property
    def is_market(self) -> bool:
        return self in (OrderType.BUY, OrderType.SELL)

    @property
    def is_pending(self) -> bool:
        return not self.is_market

    @classmethod
    def market(cls, side: Side) -> "OrderType":
        return cls.BUY if side is Side.BUY else cls.SELL


@dataclass(frozen=True)
class InstrumentSpec:
    symbol: str
    point: float
    tick_size: float
    tick_value: float
    volume_min: float
    volume_max: float
    volume_step: float
    stop_level_points: int = 0
    digits: int = 5


@dataclass(frozen=True)
class PriceQuote:
    symbol: str
    bid: float
    ask: float
    timestamp: datetime

    @property
    def spread(self) -> float:
        return self.ask - self.bid


@dataclass(frozen=True)
class OrderIntent:
    symbol: str
    side: Side
    order_type: OrderType
    volume: float
    entry_price: Optional[float] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    comment: str = ""
    max_slippage_points: int = 0


@dataclass(frozen=True)
class OrderResult:
    ticket: int
    return_code: int
    execution_price: float = 0.0
    executed_volume: float = 0.0
    message: str = ""

    @property
    def accepted(self) -> bool:
        return self.ticket > 0 and self.return_code in ACCEPTED_RETCODES

    def raise_for_status(self) -> "OrderResult":
        if not self.accepted:
            raise OrderRejected(self)
        return self


@dataclass(frozen=True)
class PositionInfo:
    ticket: int
    symbol: str
    side: Side
    volume: float
    price_open: float
    profit: float = 0.0


@dataclass(frozen=True)
class PendingOrderInfo:
    ticket: int
    symbol: str
    order_type: OrderType
    volume: float
    price: float
