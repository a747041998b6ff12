"""Snap prices and volumes onto the broker's grids."""

from __future__ import annotations

import math
from enum import Enum

from mt5_sugar.errors import InvalidInstrumentSpec
from mt5_sugar.models import InstrumentSpec, PriceQuote

# Decimal places kept after snapping; strips binary float noise without leaving the grid.
PRICE_DECIMALS = 10
_STEP_EPSILON = 1e-9


class VolumeRounding(str, Enum):
    NEAREST = "nearest"
    DOWN = "down"


def normalize_price(spec: InstrumentSpec, raw_price: float) -> float:
    if spec.tick_size <= 0:
        raise InvalidInstrumentSpec(f"{spec.symbol}: tick size must be positive, got {spec.tick_size}")
    steps = round(raw_price / spec.tick_size)
    return round(steps * spec.tick_size, PRICE_DECIMALS)


def normalize_volume(
    spec: InstrumentSpec,
    raw_volume: float,
    rounding: VolumeRounding = VolumeRounding.NEAREST,
) -> float:
    """Snap a volume to the step grid anchored at ``volume_min``.

    NEAREST picks the closer step, so the traded volume (and the risk it
    carries) can land above or below the request. DOWN never rounds up and is
    the mode to use when the request is a ceiling. Either way the result is
    clamped to ``[volume_min, volume_max]``.
    """
    if spec.volume_step <= 0:
        raise InvalidInstrumentSpec(f"{spec.symbol}: volume step must be positive, got {spec.volume_step}")
    if spec.volume_max < spec.volume_min:
        raise InvalidInstrumentSpec(f"{spec.symbol}: volume max {spec.volume_max} below min {spec.volume_min}")

    ratio = (raw_volume - spec.volume_min) / spec.volume_step
    if rounding is VolumeRounding.DOWN:
        steps = math.floor(ratio + _STEP_EPSILON)
    else:
        steps = round(ratio)
    volume = spec.volume_min + steps * spec.volume_step
    volume = max(spec.volume_min, min(spec.volume_max, volume))
    return round(volume, PRICE_DECIMALS)


def points_to_pips(points: float, digits: int) -> float:
    factor = 10 ** max(0, digits - 4)
    return points / factor


def spread_points(quote: PriceQuote, spec: InstrumentSpec) -> float:
    if spec.point <= 0:
        raise InvalidInstrumentSpec(f"{spec.symbol}: point must be positive, got {spec.point}")
    return (quote.ask - quote.bid) / spec.point
