"""Paper terminal for local testing and demos."""

from __future__ import annotations

from collections import deque
from datetime import datetime, timezone

from mt5_sugar.errors import TransportTransient
from mt5_sugar.execution.terminal import TerminalAdapter
from mt5_sugar.models import (
    RETCODE_DONE,
    RETCODE_PLACED,
    InstrumentSpec,
    OrderIntent,
    OrderResult,
    PendingOrderInfo,
    PositionInfo,
    PriceQuote,
    Side,
)

RETCODE_INVALID_STOPS = 10016
RETCODE_NOT_FOUND = 10013


class PaperTerminal(TerminalAdapter):
    """In-memory terminal.

    Market orders fill immediately at the current quote; pending orders rest
    until ``fill()`` is called. ``reject_next()``, ``fail_cancels``,
    ``fail_closes`` and ``poll_failures`` inject broker faults.
    """

    def __init__(
        self,
        symbol_specs: dict[str, InstrumentSpec] | None = None,
        quotes: dict[str, tuple[float, float]] | None = None,
        start_ticket: int = 1000,
    ) -> None:
        self._symbol_specs = dict(symbol_specs or {})
        self._quotes: dict[str, PriceQuote] = {}
        for symbol, (bid, ask) in (quotes or {}).items():
            self.set_quote(symbol, bid, ask)
        self._pending: dict[int, OrderIntent] = {}
        self._positions: dict[int, PositionInfo] = {}
        self._counter = start_ticket
        self._rejections: deque[tuple[int, str]] = deque()
        self.selected: set[str] = set()
        self.submitted: list[OrderIntent] = []
        self.cancel_calls: list[int] = []
        self.close_calls: list[int] = []
        self.fail_cancels: dict[int, int] = {}
        self.fail_closes: dict[int, int] = {}
        self.poll_failures = 0
        self.session_epoch = 0

    def set_quote(self, symbol: str, bid: float, ask: float) -> None:
        self._quotes[symbol] = PriceQuote(symbol=symbol, bid=bid, ask=ask, timestamp=datetime.now(timezone.utc))

    def set_symbol_spec(self, spec: InstrumentSpec) -> None:
        self._symbol_specs[spec.symbol] = spec

    def reject_next(self, return_code: int = RETCODE_INVALID_STOPS, message: str = "Invalid stops") -> None:
        self._rejections.append((return_code, message))

    def reconnect(self) -> None:
        self.session_epoch += 1

    def fill(self, ticket: int, price: float | None = None) -> PositionInfo:
        intent = self._pending.pop(ticket)
        return self._open_position(ticket, intent, price if price is not None else intent.entry_price or 0.0)

    def stop_out(self, ticket: int) -> PositionInfo:
        """Drop a position the way a triggered stop-loss or take-profit would."""
        return self._positions.pop(ticket)

    def _next_ticket(self) -> int:
        self._counter += 1
        return self._counter

    def _open_position(self, ticket: int, intent: OrderIntent, price: float) -> PositionInfo:
        position = PositionInfo(
            ticket=ticket,
            symbol=intent.symbol,
            side=intent.side,
            volume=intent.volume,
            price_open=price,
        )
        self._positions[ticket] = position
        return position

    async def select_symbol(self, symbol: str) -> bool:
        if symbol not in self._symbol_specs:
            return False
        self.selected.add(symbol)
        return True

    async def get_instrument_spec(self, symbol: str) -> InstrumentSpec | None:
        return self._symbol_specs.get(symbol)

    async def get_quote(self, symbol: str) -> PriceQuote:
        quote = self._quotes.get(symbol)
        if quote is None:
            raise TransportTransient(f"No tick data for {symbol}")
        return quote

    async def submit_order(self, intent: OrderIntent) -> OrderResult:
        self.submitted.append(intent)
        if self._rejections:
            code, message = self._rejections.popleft()
            return OrderResult(ticket=0, return_code=code, message=message)

        ticket = self._next_ticket()
        if intent.order_type.is_pending:
            self._pending[ticket] = intent
            return OrderResult(
                ticket=ticket,
                return_code=RETCODE_PLACED,
                execution_price=intent.entry_price or 0.0,
                executed_volume=intent.volume,
                message="Placed",
            )

        quote = await self.get_quote(intent.symbol)
        price = quote.ask if intent.side is Side.BUY else quote.bid
        self._open_position(ticket, intent, price)
        return OrderResult(
            ticket=ticket,
            return_code=RETCODE_DONE,
            execution_price=price,
            executed_volume=intent.volume,
            message="Done",
        )

    async def cancel_order(self, ticket: int) -> bool:
        self.cancel_calls.append(ticket)
        remaining = self.fail_cancels.get(ticket, 0)
        if remaining:
            self.fail_cancels[ticket] = remaining - 1
            raise TransportTransient(f"Cancel of {ticket} timed out")
        return self._pending.pop(ticket, None) is not None

    async def close_position(self, ticket: int, volume: float | None = None) -> OrderResult:
        self.close_calls.append(ticket)
        remaining = self.fail_closes.get(ticket, 0)
        if remaining:
            self.fail_closes[ticket] = remaining - 1
            raise TransportTransient(f"Close of {ticket} timed out")
        position = self._positions.get(ticket)
        if position is None:
            return OrderResult(ticket=0, return_code=RETCODE_NOT_FOUND, message=f"Position {ticket} not found")
        quote = await self.get_quote(position.symbol)
        price = quote.bid if position.side is Side.BUY else quote.ask
        closed = position.volume if volume is None else min(volume, position.volume)
        if closed >= position.volume:
            del self._positions[ticket]
        else:
            self._positions[ticket] = PositionInfo(
                ticket=ticket,
                symbol=position.symbol,
                side=position.side,
                volume=position.volume - closed,
                price_open=position.price_open,
            )
        return OrderResult(
            ticket=self._next_ticket(),
            return_code=RETCODE_DONE,
            execution_price=price,
            executed_volume=closed,
            message="Closed",
        )

    async def list_open_tickets(self) -> set[int]:
        if self.poll_failures > 0:
            self.poll_failures -= 1
            raise TransportTransient("Terminal did not answer")
        return set(self._pending)

    async def list_orders(self, symbol: str | None = None) -> list[PendingOrderInfo]:
        return [
            PendingOrderInfo(
                ticket=ticket,
                symbol=intent.symbol,
                order_type=intent.order_type,
                volume=intent.volume,
                price=intent.entry_price or 0.0,
            )
            for ticket, intent in self._pending.items()
            if symbol is None or intent.symbol == symbol
        ]

    async def list_positions(self, symbol: str | None = None) -> list[PositionInfo]:
        return [position for position in self._positions.values() if symbol is None or position.symbol == symbol]
