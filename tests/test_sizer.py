from __future__ import annotations

import pytest

from mt5_sugar.errors import InvalidArgument, InvalidInstrumentSpec
from mt5_sugar.models import InstrumentSpec
from mt5_sugar.risk.normalizer import VolumeRounding
from mt5_sugar.risk.sizer import loss_per_lot, realized_risk, size_for_risk, volume_for_risk


def _eurusd(**overrides) -> InstrumentSpec:
    values = dict(
        symbol="EURUSD",
        point=0.00001,
        tick_size=0.00001,
        tick_value=1.0,
        volume_min=0.01,
        volume_max=100.0,
        volume_step=0.01,
        stop_level_points=10,
        digits=5,
    )
    values.update(overrides)
    return InstrumentSpec(**values)


def test_eurusd_fifty_points_hundred_dollars() -> None:
    spec = _eurusd()
    assert loss_per_lot(spec, 50) == pytest.approx(50.0)
    assert volume_for_risk(spec, 50, 100.0) == 2.0


def test_tick_size_larger_than_point() -> None:
    spec = _eurusd(symbol="XAUUSD", point=0.01, tick_size=0.05, tick_value=5.0, digits=2)
    # 200 points = 40 ticks at $5 = $200 per lot.
    assert loss_per_lot(spec, 200) == pytest.approx(200.0)
    assert volume_for_risk(spec, 200, 100.0) == 0.5


def test_volume_clamps_to_broker_range() -> None:
    spec = _eurusd(volume_max=1.5)
    assert volume_for_risk(spec, 50, 100.0) == 1.5
    assert volume_for_risk(spec, 500, 0.01) == 0.01


def test_volume_monotone_in_risk_and_stop() -> None:
    spec = _eurusd()
    by_risk = [volume_for_risk(spec, 40, risk) for risk in (10, 25, 50, 100, 250)]
    assert by_risk == sorted(by_risk)
    by_stop = [volume_for_risk(spec, stop, 100) for stop in (10, 20, 40, 80, 160)]
    assert by_stop == sorted(by_stop, reverse=True)


@pytest.mark.parametrize("stop_points,risk", [(0, 100.0), (-5, 100.0), (50, 0.0), (50, -1.0)])
def test_non_positive_inputs_raise(stop_points: float, risk: float) -> None:
    with pytest.raises(InvalidArgument):
        volume_for_risk(_eurusd(), stop_points, risk)


def test_zero_tick_value_is_an_instrument_error() -> None:
    with pytest.raises(InvalidInstrumentSpec):
        volume_for_risk(_eurusd(tick_value=0.0), 50, 100.0)


def test_round_down_mode_keeps_risk_under_budget() -> None:
    spec = _eurusd()
    # 33 points -> $33 per lot; $100 buys 3.0303 lots.
    nearest = volume_for_risk(spec, 33, 100.0)
    strict = volume_for_risk(spec, 33, 100.0, VolumeRounding.DOWN)
    assert nearest == 3.03
    assert strict == 3.03
    assert realized_risk(spec, 33, strict) <= 100.0

    # 0.037 lots requested through risk: $3.70 at 100 points.
    assert volume_for_risk(spec, 100, 3.7) == 0.04
    assert volume_for_risk(spec, 100, 3.7, VolumeRounding.DOWN) == 0.03


def test_round_down_mode_refuses_to_clamp_up() -> None:
    with pytest.raises(InvalidArgument):
        volume_for_risk(_eurusd(), 500, 1.0, VolumeRounding.DOWN)


def test_size_result_reports_estimated_risk() -> None:
    result = size_for_risk(_eurusd(), 100, 3.7)
    assert result.volume == 0.04
    assert result.estimated_risk == pytest.approx(4.0)
    assert result.reason == "Sized above budget by step rounding"
