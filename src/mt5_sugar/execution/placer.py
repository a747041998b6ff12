"""Order placement facade with preflight sizing and stop validation."""

from __future__ import annotations

import math
from dataclasses import asdict
from typing import Optional

from mt5_sugar.errors import InvalidArgument
from mt5_sugar.execution.resolver import QuantityResolver
from mt5_sugar.execution.terminal import TerminalAdapter
from mt5_sugar.models import (
    InstrumentSpec,
    OrderIntent,
    OrderResult,
    OrderType,
    PriceQuote,
    Side,
)
from mt5_sugar.risk.normalizer import VolumeRounding, normalize_price, normalize_volume
from mt5_sugar.risk.sizer import volume_for_risk
from mt5_sugar.risk.stops import validate_pending_price, validate_stops

MAX_DEVIATION_POINTS = 2000


def _check_symbol(symbol: str) -> str:
    if not symbol or not symbol.strip():
        raise InvalidArgument("Symbol must be provided")
    return symbol.strip()


def _check_volume(volume: float) -> None:
    if math.isnan(volume) or math.isinf(volume) or volume <= 0:
        raise InvalidArgument(f"Volume must be a positive number, got {volume}")


def _check_deviation(deviation_points: int) -> None:
    if deviation_points < 0 or deviation_points > MAX_DEVIATION_POINTS:
        raise InvalidArgument(f"Deviation must be between 0 and {MAX_DEVIATION_POINTS}, got {deviation_points}")


def _check_ticket(ticket: int) -> None:
    if ticket <= 0:
        raise InvalidArgument(f"Ticket must be > 0, got {ticket}")


def _pick_level(name: str, absolute: Optional[float], points: Optional[float]) -> None:
    if absolute is not None and points is not None:
        raise InvalidArgument(f"Pass either {name} or {name}_points, not both")
    if points is not None and points <= 0:
        raise InvalidArgument(f"{name}_points must be positive, got {points}")


def _offset_levels(
    side: Side,
    base: float,
    point: float,
    sl_points: Optional[float],
    tp_points: Optional[float],
) -> tuple[Optional[float], Optional[float]]:
    direction = 1.0 if side is Side.BUY else -1.0
    sl = base - direction * sl_points * point if sl_points is not None else None
    tp = base + direction * tp_points * point if tp_points is not None else None
    return sl, tp


class OrderPlacer:
    """Submit single orders with broker-valid volume, price and stops.

    Each call resolves the instrument, takes a fresh quote, converts point
    offsets, validates stops and normalizes the volume before one submission.
    Rejections come back as the terminal's ``OrderResult``; nothing is resent.
    """

    def __init__(
        self,
        terminal: TerminalAdapter,
        resolver: Optional[QuantityResolver] = None,
        audit_log: Optional[object] = None,
        monitor: Optional[object] = None,
    ) -> None:
        self.terminal = terminal
        self.resolver = resolver or QuantityResolver(terminal)
        self._audit_log = audit_log
        self._monitor = monitor

    def _log(self, event: str, payload: dict) -> None:
        if self._audit_log is None:
            return
        self._audit_log.log(event, payload)

    async def resolve(self, symbol: str) -> InstrumentSpec:
        return await self.resolver.resolve(_check_symbol(symbol))

    async def quote(self, symbol: str) -> PriceQuote:
        return await self.terminal.get_quote(_check_symbol(symbol))

    async def _submit(self, intent: OrderIntent) -> OrderResult:
        result = await self.terminal.submit_order(intent)
        payload = asdict(intent)
        payload.update(
            ticket=result.ticket,
            return_code=result.return_code,
            execution_price=result.execution_price,
            message=result.message,
        )
        self._log("order_submitted", payload)
        if not result.accepted:
            self._log(
                "order_rejected",
                {"symbol": intent.symbol, "return_code": result.return_code, "message": result.message},
            )
            if self._monitor is not None:
                self._monitor.order_rejected(intent.symbol, result.return_code, result.message)
        return result

    async def place_market(
        self,
        symbol: str,
        volume: float,
        is_buy: bool,
        sl: Optional[float] = None,
        tp: Optional[float] = None,
        sl_points: Optional[float] = None,
        tp_points: Optional[float] = None,
        comment: str = "",
        deviation_points: int = 0,
    ) -> OrderResult:
        symbol = _check_symbol(symbol)
        _check_volume(volume)
        _check_deviation(deviation_points)
        _pick_level("sl", sl, sl_points)
        _pick_level("tp", tp, tp_points)

        spec = await self.resolver.resolve(symbol)
        quote = await self.terminal.get_quote(symbol)
        side = Side.BUY if is_buy else Side.SELL
        base = quote.ask if is_buy else quote.bid
        offset_sl, offset_tp = _offset_levels(side, base, spec.point, sl_points, tp_points)
        sl = sl if sl is not None else offset_sl
        tp = tp if tp is not None else offset_tp

        sl, tp = validate_stops(side, quote.bid, quote.ask, sl, tp, spec)
        intent = OrderIntent(
            symbol=symbol,
            side=side,
            order_type=OrderType.market(side),
            volume=normalize_volume(spec, volume),
            stop_loss=sl,
            take_profit=tp,
            comment=comment,
            max_slippage_points=deviation_points,
        )
        return await self._submit(intent)

    async def place_pending(
        self,
        symbol: str,
        volume: float,
        order_type: OrderType,
        price: float,
        sl: Optional[float] = None,
        tp: Optional[float] = None,
        sl_points: Optional[float] = None,
        tp_points: Optional[float] = None,
        comment: str = "",
        deviation_points: int = 0,
    ) -> OrderResult:
        symbol = _check_symbol(symbol)
        order_type = OrderType(order_type)
        if order_type.is_market:
            raise InvalidArgument(f"{order_type.name} is a market order type; use place_market")
        _check_volume(volume)
        _check_deviation(deviation_points)
        _pick_level("sl", sl, sl_points)
        _pick_level("tp", tp, tp_points)

        spec = await self.resolver.resolve(symbol)
        quote = await self.terminal.get_quote(symbol)
        price = validate_pending_price(order_type, quote.bid, quote.ask, price, spec)

        side = order_type.side
        offset_sl, offset_tp = _offset_levels(side, price, spec.point, sl_points, tp_points)
        sl = sl if sl is not None else offset_sl
        tp = tp if tp is not None else offset_tp
        # Stops on a pending order are measured from its entry price.
        sl, tp = validate_stops(side, price, price, sl, tp, spec)

        intent = OrderIntent(
            symbol=symbol,
            side=side,
            order_type=order_type,
            volume=normalize_volume(spec, volume),
            entry_price=price,
            stop_loss=sl,
            take_profit=tp,
            comment=comment,
            max_slippage_points=deviation_points,
        )
        return await self._submit(intent)

    async def price_from_offset_points(self, symbol: str, order_type: OrderType, offset_points: float) -> float:
        """Ask plus offset for buy types, bid minus offset for sell types."""
        spec = await self.resolve(symbol)
        quote = await self.terminal.get_quote(spec.symbol)
        if OrderType(order_type).side is Side.BUY:
            raw = quote.ask + offset_points * spec.point
        else:
            raw = quote.bid - offset_points * spec.point
        return normalize_price(spec, raw)

    async def place_pending_points(
        self,
        symbol: str,
        volume: float,
        order_type: OrderType,
        offset_points: float,
        sl_points: Optional[float] = None,
        tp_points: Optional[float] = None,
        comment: str = "",
        deviation_points: int = 0,
    ) -> OrderResult:
        """Place a pending order ``|offset_points`` away from the market.

        Limits sit inside the market (buy below ask, sell above bid), stops
        outside it (buy above ask, sell below bid).
        """
        order_type = OrderType(order_type)
        spec = await self.resolve(symbol)
        quote = await self.terminal.get_quote(spec.symbol)
        offset = abs(offset_points) * spec.point
        if order_type is OrderType.BUY_LIMIT:
            raw = quote.ask - offset
        elif order_type is OrderType.SELL_LIMIT:
            raw = quote.bid + offset
        elif order_type in (OrderType.BUY_STOP, OrderType.BUY_STOP_LIMIT):
            raw = quote.ask + offset
        elif order_type in (OrderType.SELL_STOP, OrderType.SELL_STOP_LIMIT):
            raw = quote.bid - offset
        else:
            raise InvalidArgument(f"{order_type.name} is a market order type; use place_market")
        return await self.place_pending(
            spec.symbol,
            volume,
            order_type,
            normalize_price(spec, raw),
            sl_points=sl_points,
            tp_points=tp_points,
            comment=comment,
            deviation_points=deviation_points,
        )

    async def buy_limit_points(self, symbol: str, volume: float, offset_points: float, **kwargs) -> OrderResult:
        return await self.place_pending_points(symbol, volume, OrderType.BUY_LIMIT, offset_points, **kwargs)

    async def sell_limit_points(self, symbol: str, volume: float, offset_points: float, **kwargs) -> OrderResult:
        return await self.place_pending_points(symbol, volume, OrderType.SELL_LIMIT, offset_points, **kwargs)

    async def buy_stop_points(self, symbol: str, volume: float, offset_points: float, **kwargs) -> OrderResult:
        return await self.place_pending_points(symbol, volume, OrderType.BUY_STOP, offset_points, **kwargs)

    async def sell_stop_points(self, symbol: str, volume: float, offset_points: float, **kwargs) -> OrderResult:
        return await self.place_pending_points(symbol, volume, OrderType.SELL_STOP, offset_points, **kwargs)

    async def market_by_risk(
        self,
        symbol: str,
        is_buy: bool,
        stop_points: float,
        risk_money: float,
        tp_points: Optional[float] = None,
        comment: str = "",
        deviation_points: int = 0,
        rounding: VolumeRounding = VolumeRounding.NEAREST,
    ) -> OrderResult:
        spec = await self.resolve(symbol)
        volume = volume_for_risk(spec, stop_points, risk_money, rounding)
        return await self.place_market(
            spec.symbol,
            volume,
            is_buy,
            sl_points=stop_points,
            tp_points=tp_points,
            comment=comment,
            deviation_points=deviation_points,
        )

    async def cancel_order(self, ticket: int) -> bool:
        _check_ticket(ticket)
        ok = await self.terminal.cancel_order(ticket)
        self._log("order_canceled", {"ticket": ticket, "ok": ok})
        return ok

    async def close_position(self, ticket: int, volume: float | None = None) -> OrderResult:
        _check_ticket(ticket)
        if volume is not None:
            _check_volume(volume)
        result = await self.terminal.close_position(ticket, volume)
        self._log(
            "position_closed",
            {"ticket": ticket, "volume": volume, "return_code": result.return_code, "message": result.message},
        )
        return result

    async def cancel_all(self, symbol: str | None = None, is_buy: bool | None = None) -> int:
        cancelled = 0
        for order in await self.terminal.list_orders(symbol):
            if is_buy is not None and (order.order_type.side is Side.BUY) != is_buy:
                continue
            if await self.cancel_order(order.ticket):
                cancelled += 1
        return cancelled

    async def close_all_positions(self, symbol: str | None = None, is_buy: bool | None = None) -> int:
        closed = 0
        for position in await self.terminal.list_positions(symbol):
            if is_buy is not None and (position.side is Side.BUY) != is_buy:
                continue
            result = await self.close_position(position.ticket)
            if result.accepted:
                closed += 1
        return closed
