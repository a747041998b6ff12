"""Stop-loss, take-profit and pending price validation against the market.

Direction errors raise ``InvalidStopSide``; distance errors (closer to the
market than the broker stop level allows) are pushed out to the stop level.
Nothing here talks to the terminal.
"""

from __future__ import annotations

from typing import Optional

from mt5_sugar.errors import InvalidArgument, InvalidStopSide
from mt5_sugar.models import InstrumentSpec, OrderType, Side
from mt5_sugar.risk.normalizer import PRICE_DECIMALS, normalize_price


def _min_distance(spec: InstrumentSpec) -> float:
    return max(0, spec.stop_level_points) * spec.point


def _snap_below(spec: InstrumentSpec, value: float, limit: float, market: float) -> float:
    limit = round(limit, PRICE_DECIMALS)
    price = normalize_price(spec, min(value, limit))
    while price > limit or price >= market:
        price = normalize_price(spec, price - spec.tick_size)
    return price


def _snap_above(spec: InstrumentSpec, value: float, limit: float, market: float) -> float:
    limit = round(limit, PRICE_DECIMALS)
    price = normalize_price(spec, max(value, limit))
    while price < limit or price <= market:
        price = normalize_price(spec, price + spec.tick_size)
    return price


def _check_positive(name: str, value: float) -> None:
    if value <= 0:
        raise InvalidArgument(f"{name} must be positive, got {value}")


def validate_stops(
    side: Side,
    bid: float,
    ask: float,
    stop_loss: Optional[float],
    take_profit: Optional[float],
    spec: InstrumentSpec,
) -> tuple[Optional[float], Optional[float]]:
    """Return broker-valid (stop_loss, take_profit) for an entry at bid/ask.

    Buy levels are measured from the ask and sell levels from the bid.
    """
    distance = _min_distance(spec)

    if side is Side.BUY:
        if stop_loss is not None:
            _check_positive("stop_loss", stop_loss)
            if stop_loss >= ask:
                raise InvalidStopSide(f"Stop-loss {stop_loss} for BUY must be below ask {ask}")
            stop_loss = _snap_below(spec, stop_loss, ask - distance, ask)
        if take_profit is not None:
            _check_positive("take_profit", take_profit)
            if take_profit <= ask:
                raise InvalidStopSide(f"Take-profit {take_profit} for BUY must be above ask {ask}")
            take_profit = _snap_above(spec, take_profit, ask + distance, ask)
    else:
        if stop_loss is not None:
            _check_positive("stop_loss", stop_loss)
            if stop_loss <= bid:
                raise InvalidStopSide(f"Stop-loss {stop_loss} for SELL must be above bid {bid}")
            stop_loss = _snap_above(spec, stop_loss, bid + distance, bid)
        if take_profit is not None:
            _check_positive("take_profit", take_profit)
            if take_profit >= bid:
                raise InvalidStopSide(f"Take-profit {take_profit} for SELL must be below bid {bid}")
            take_profit = _snap_below(spec, take_profit, bid - distance, bid)

    return stop_loss, take_profit


def validate_pending_price(
    order_type: OrderType,
    bid: float,
    ask: float,
    price: float,
    spec: InstrumentSpec,
) -> float:
    if order_type.is_market:
        raise InvalidArgument(f"{order_type.name} is not a pending order type")
    _check_positive("price", price)
    distance = _min_distance(spec)

    if order_type is OrderType.BUY_LIMIT:
        if price >= ask:
            raise InvalidStopSide(f"BUY_LIMIT price {price} must be below ask {ask}")
        return _snap_below(spec, price, ask - distance, ask)
    if order_type is OrderType.SELL_LIMIT:
        if price <= bid:
            raise InvalidStopSide(f"SELL_LIMIT price {price} must be above bid {bid}")
        return _snap_above(spec, price, bid + distance, bid)
    if order_type.side is Side.BUY:
        if price <= ask:
            raise InvalidStopSide(f"{order_type.name} price {price} must be above ask {ask}")
        return _snap_above(spec, price, ask + distance, ask)
    if price >= bid:
        raise InvalidStopSide(f"{order_type.name} price {price} must be below bid {bid}")
    return _snap_below(spec, price, bid - distance, bid)
