"""Remote terminal adapter interface."""

from __future__ import annotations

from typing import Optional

from mt5_sugar.models import (
    InstrumentSpec,
    OrderIntent,
    OrderResult,
    PendingOrderInfo,
    PositionInfo,
    PriceQuote,
)


class TerminalAdapter:
    """Async surface the sizing, placement and pair layers consume.

    ``session_epoch`` must change whenever the adapter re-establishes its
    session, so that cached instrument specs can be dropped.
    """

    session_epoch: int = 0

    async def select_symbol(self, symbol: str) -> bool:  # pragma: no cover - interface
        raise NotImplementedError

    async def get_instrument_spec(self, symbol: str) -> Optional[InstrumentSpec]:  # pragma: no cover - interface
        raise NotImplementedError

    async def get_quote(self, symbol: str) -> PriceQuote:  # pragma: no cover - interface
        raise NotImplementedError

    async def submit_order(self, intent: OrderIntent) -> OrderResult:  # pragma: no cover - interface
        raise NotImplementedError

    async def cancel_order(self, ticket: int) -> bool:  # pragma: no cover - interface
        raise NotImplementedError

    async def close_position(self, ticket: int, volume: float | None = None) -> OrderResult:  # pragma: no cover
        raise NotImplementedError

    async def list_open_tickets(self) -> set[int]:  # pragma: no cover - interface
        raise NotImplementedError

    async def list_orders(self, symbol: str | None = None) -> list[PendingOrderInfo]:  # pragma: no cover - interface
        raise NotImplementedError

    async def list_positions(self, symbol: str | None = None) -> list[PositionInfo]:  # pragma: no cover - interface
        raise NotImplementedError

    async def ping(self) -> bool:
        return True
