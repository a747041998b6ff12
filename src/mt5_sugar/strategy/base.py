"""Shared pieces for the packaged strategies."""

from __future__ import annotations

from typing import Optional

from mt5_sugar.errors import InvalidArgument
from mt5_sugar.execution.placer import OrderPlacer
from mt5_sugar.risk.normalizer import normalize_volume
from mt5_sugar.risk.sizer import volume_for_risk


async def resolve_volume(
    placer: OrderPlacer,
    symbol: str,
    volume: Optional[float],
    risk_money: Optional[float],
    stop_points: float,
) -> float:
    """Fixed volume when given, otherwise sized from ``risk_money`` over ``stop_points``."""
    spec = await placer.resolve(symbol)
    if risk_money is not None:
        return volume_for_risk(spec, stop_points, risk_money)
    if volume is None:
        raise InvalidArgument(f"{symbol}: either volume or risk_money is required")
    return normalize_volume(spec, volume)
