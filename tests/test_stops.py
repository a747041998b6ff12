from __future__ import annotations

import pytest

from mt5_sugar.errors import InvalidArgument, InvalidStopSide
from mt5_sugar.models import InstrumentSpec, OrderType, Side
from mt5_sugar.risk.stops import validate_pending_price, validate_stops

BID = 1.10000
ASK = 1.10002


def _spec(stop_level_points: int = 10) -> InstrumentSpec:
    return InstrumentSpec(
        symbol="EURUSD",
        point=0.00001,
        tick_size=0.00001,
        tick_value=1.0,
        volume_min=0.01,
        volume_max=100.0,
        volume_step=0.01,
        stop_level_points=stop_level_points,
        digits=5,
    )


def test_buy_levels_inside_stop_level_are_pushed_out() -> None:
    sl, tp = validate_stops(Side.BUY, BID, ASK, 1.09995, 1.10005, _spec())
    assert sl == 1.09992
    assert tp == 1.10012


def test_sell_levels_inside_stop_level_are_pushed_out() -> None:
    sl, tp = validate_stops(Side.SELL, BID, ASK, 1.10005, 1.09995, _spec())
    assert sl == 1.10010
    assert tp == 1.09990


def test_valid_levels_are_only_normalized() -> None:
    sl, tp = validate_stops(Side.BUY, BID, ASK, 1.098004, 1.102996, _spec())
    assert sl == 1.098
    assert tp == 1.103


def test_none_levels_pass_through() -> None:
    assert validate_stops(Side.BUY, BID, ASK, None, None, _spec()) == (None, None)
    assert validate_stops(Side.SELL, BID, ASK, None, 1.0990, _spec()) == (None, 1.099)


@pytest.mark.parametrize(
    "side,sl,tp",
    [
        (Side.BUY, 1.10002, None),
        (Side.BUY, 1.10050, None),
        (Side.BUY, None, 1.10002),
        (Side.BUY, None, 1.09900),
        (Side.SELL, 1.10000, None),
        (Side.SELL, 1.09900, None),
        (Side.SELL, None, 1.10000),
        (Side.SELL, None, 1.10100),
    ],
)
def test_wrong_side_levels_raise(side: Side, sl: float | None, tp: float | None) -> None:
    with pytest.raises(InvalidStopSide):
        validate_stops(side, BID, ASK, sl, tp, _spec())


def test_non_positive_levels_raise() -> None:
    with pytest.raises(InvalidArgument):
        validate_stops(Side.BUY, BID, ASK, -1.0, None, _spec())


def test_zero_stop_level_keeps_strict_side() -> None:
    sl, tp = validate_stops(Side.BUY, BID, ASK, 1.10001, 1.10003, _spec(stop_level_points=0))
    assert sl == 1.10001
    assert tp == 1.10003


def test_validated_levels_never_cross_the_market() -> None:
    spec = _spec(stop_level_points=7)
    for offset in range(1, 60, 3):
        distance = offset * spec.point
        sl, tp = validate_stops(Side.BUY, BID, ASK, ASK - distance, ASK + distance, spec)
        assert sl <= ASK - 7 * spec.point + 1e-12
        assert tp >= ASK + 7 * spec.point - 1e-12
        sl, tp = validate_stops(Side.SELL, BID, ASK, BID + distance, BID - distance, spec)
        assert sl >= BID + 7 * spec.point - 1e-12
        assert tp <= BID - 7 * spec.point + 1e-12


def test_pending_price_direction_and_distance() -> None:
    spec = _spec()
    assert validate_pending_price(OrderType.BUY_STOP, BID, ASK, 1.10027, spec) == 1.10027
    assert validate_pending_price(OrderType.SELL_STOP, BID, ASK, 1.09995, spec) == 1.09990
    assert validate_pending_price(OrderType.BUY_LIMIT, BID, ASK, 1.09980, spec) == 1.09980
    assert validate_pending_price(OrderType.SELL_LIMIT, BID, ASK, 1.10003, spec) == 1.10010

    with pytest.raises(InvalidStopSide):
        validate_pending_price(OrderType.BUY_LIMIT, BID, ASK, 1.10010, spec)
    with pytest.raises(InvalidStopSide):
        validate_pending_price(OrderType.SELL_STOP, BID, ASK, 1.10010, spec)
    with pytest.raises(InvalidArgument):
        validate_pending_price(OrderType.BUY, BID, ASK, 1.10010, spec)
