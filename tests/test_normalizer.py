from __future__ import annotations

import pytest

from mt5_sugar.errors import InvalidInstrumentSpec
from mt5_sugar.models import InstrumentSpec, PriceQuote
from mt5_sugar.risk.normalizer import (
    VolumeRounding,
    normalize_price,
    normalize_volume,
    points_to_pips,
    spread_points,
)


def _spec(**overrides) -> InstrumentSpec:
    values = dict(
        symbol="EURUSD",
        point=0.00001,
        tick_size=0.00001,
        tick_value=1.0,
        volume_min=0.01,
        volume_max=100.0,
        volume_step=0.01,
        stop_level_points=0,
        digits=5,
    )
    values.update(overrides)
    return InstrumentSpec(**values)


def test_volume_rounds_to_nearest_step() -> None:
    assert normalize_volume(_spec(), 0.037) == 0.04
    assert normalize_volume(_spec(), 0.034) == 0.03


def test_volume_round_down_mode_never_exceeds_request() -> None:
    assert normalize_volume(_spec(), 0.037, VolumeRounding.DOWN) == 0.03
    # Exact grid values survive float noise in the floor.
    assert normalize_volume(_spec(), 0.07, VolumeRounding.DOWN) == 0.07


def test_volume_is_clamped_to_range() -> None:
    spec = _spec(volume_max=5.0)
    assert normalize_volume(spec, 0.001) == 0.01
    assert normalize_volume(spec, 250.0) == 5.0


def test_volume_step_is_anchored_at_minimum() -> None:
    spec = _spec(volume_min=0.1, volume_step=0.25, volume_max=10.0)
    assert normalize_volume(spec, 0.4) == 0.35
    assert normalize_volume(spec, 0.5) == 0.6


@pytest.mark.parametrize("raw", [0.013, 0.5049, 1.23456, 7.77, 99.995])
def test_volume_lands_on_grid_and_is_idempotent(raw: float) -> None:
    spec = _spec()
    volume = normalize_volume(spec, raw)
    steps = (volume - spec.volume_min) / spec.volume_step
    assert abs(steps - round(steps)) < 1e-6
    assert spec.volume_min <= volume <= spec.volume_max
    assert normalize_volume(spec, volume) == volume


@pytest.mark.parametrize("raw", [1.100004, 1.100006, 1.0999949, 153.123456])
def test_price_snaps_within_half_tick(raw: float) -> None:
    spec = _spec()
    price = normalize_price(spec, raw)
    assert abs(price - raw) <= spec.tick_size / 2 + 1e-12
    assert abs(price / spec.tick_size - round(price / spec.tick_size)) < 1e-6
    assert normalize_price(spec, price) == price


def test_price_uses_tick_size_not_point() -> None:
    spec = _spec(symbol="US500", point=0.01, tick_size=0.25, digits=2)
    assert normalize_price(spec, 4500.13) == 4500.25
    assert normalize_price(spec, 4500.12) == 4500.0


def test_invalid_grids_raise() -> None:
    with pytest.raises(InvalidInstrumentSpec):
        normalize_price(_spec(tick_size=0.0), 1.1)
    with pytest.raises(InvalidInstrumentSpec):
        normalize_volume(_spec(volume_step=0.0), 1.0)
    with pytest.raises(InvalidInstrumentSpec):
        normalize_volume(_spec(volume_min=1.0, volume_max=0.5), 1.0)


def test_points_and_spread_helpers() -> None:
    assert points_to_pips(25, 5) == 2.5
    assert points_to_pips(25, 4) == 25
    quote = PriceQuote(symbol="EURUSD", bid=1.10000, ask=1.10002, timestamp=None)
    assert spread_points(quote, _spec()) == pytest.approx(2.0)
