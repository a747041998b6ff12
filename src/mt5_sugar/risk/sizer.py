"""Risk-based position sizing."""

from __future__ import annotations

from dataclasses import dataclass

from mt5_sugar.errors import InvalidArgument, InvalidInstrumentSpec
from mt5_sugar.models import InstrumentSpec
from mt5_sugar.risk.normalizer import VolumeRounding, normalize_volume


@dataclass(frozen=True)
class SizeResult:
    volume: float
    requested_risk: float
    estimated_risk: float
    reason: str


def loss_per_lot(spec: InstrumentSpec, stop_points: float) -> float:
    if spec.tick_size <= 0:
        raise InvalidInstrumentSpec(f"{spec.symbol}: tick size must be positive, got {spec.tick_size}")
    loss = (stop_points * spec.point / spec.tick_size) * spec.tick_value
    if loss <= 0:
        raise InvalidInstrumentSpec(f"{spec.symbol}: computed loss per lot {loss} is not positive")
    return loss


def volume_for_risk(
    spec: InstrumentSpec,
    stop_points: float,
    risk_money: float,
    rounding: VolumeRounding = VolumeRounding.NEAREST,
) -> float:
    """Volume whose stop-out loss is closest to ``risk_money``.

    With the default NEAREST rounding the realized risk may exceed the budget
    by up to half a volume step. Pass ``VolumeRounding.DOWN`` to treat the
    budget as a ceiling; that mode raises instead of clamping up to
    ``volume_min``.
    """
    if stop_points <= 0:
        raise InvalidArgument(f"stop_points must be positive, got {stop_points}")
    if risk_money <= 0:
        raise InvalidArgument(f"risk_money must be positive, got {risk_money}")

    raw_volume = risk_money / loss_per_lot(spec, stop_points)
    if rounding is VolumeRounding.DOWN and raw_volume < spec.volume_min:
        raise InvalidArgument(
            f"Risk budget {risk_money} too small for minimum volume {spec.volume_min} on {spec.symbol}"
        )
    return normalize_volume(spec, raw_volume, rounding)


def realized_risk(spec: InstrumentSpec, stop_points: float, volume: float) -> float:
    return volume * loss_per_lot(spec, stop_points)


def size_for_risk(
    spec: InstrumentSpec,
    stop_points: float,
    risk_money: float,
    rounding: VolumeRounding = VolumeRounding.NEAREST,
) -> SizeResult:
    volume = volume_for_risk(spec, stop_points, risk_money, rounding)
    estimated = realized_risk(spec, stop_points, volume)
    reason = "Sized"
    if estimated > risk_money:
        reason = "Sized above budget by step rounding"
    return SizeResult(volume=volume, requested_risk=risk_money, estimated_risk=estimated, reason=reason)
