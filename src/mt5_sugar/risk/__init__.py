"""Normalization, sizing and stop validation."""

from mt5_sugar.risk.normalizer import (
    VolumeRounding,
    normalize_price,
    normalize_volume,
    points_to_pips,
    spread_points,
)
from mt5_sugar.risk.sizer import SizeResult, loss_per_lot, realized_risk, size_for_risk, volume_for_risk
from mt5_sugar.risk.stops import validate_pending_price, validate_stops

__all__ = [
    "SizeResult",
    "VolumeRounding",
    "loss_per_lot",
    "normalize_price",
    "normalize_volume",
    "points_to_pips",
    "realized_risk",
    "size_for_risk",
    "spread_points",
    "validate_pending_price",
    "validate_stops",
    "volume_for_risk",
]
