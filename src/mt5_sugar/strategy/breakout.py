"""Pending breakout: a buy stop above and a sell stop below the market."""

from __future__ import annotations

import asyncio
from typing import Optional

from mt5_sugar.config.models import BreakoutParams
from mt5_sugar.execution.placer import OrderPlacer
from mt5_sugar.models import OrderType
from mt5_sugar.runtime.clock import Clock
from mt5_sugar.runtime.orchestrator import LegRequest, PairOrchestrator, PairReport, PairRunConfig
from mt5_sugar.strategy.base import resolve_volume


class PendingBreakoutStrategy:
    """Whichever stop triggers first wins; the other is cancelled.

    The filled leg is left to run on its own stop-loss and take-profit.
    """

    def __init__(
        self,
        placer: OrderPlacer,
        params: BreakoutParams,
        clock: Optional[Clock] = None,
        audit_log: Optional[object] = None,
        monitor: Optional[object] = None,
    ) -> None:
        self.strategy_id = "pending_breakout"
        self.placer = placer
        self.params = params
        self.orchestrator = PairOrchestrator(
            placer,
            clock=clock,
            config=PairRunConfig(
                max_wait_seconds=params.max_wait_minutes * 60.0,
                poll_interval_seconds=params.poll_interval_seconds,
            ),
            audit_log=audit_log,
            monitor=monitor,
        )

    def legs(self, volume: float) -> tuple[LegRequest, LegRequest]:
        params = self.params
        common = dict(
            symbol=params.symbol,
            volume=volume,
            offset_points=params.distance_points,
            sl_points=params.stop_loss_points,
            tp_points=params.take_profit_points,
        )
        return (
            LegRequest(order_type=OrderType.BUY_STOP, comment="Breakout-Buy", **common),
            LegRequest(order_type=OrderType.SELL_STOP, comment="Breakout-Sell", **common),
        )

    async def execute(self, stop_event: Optional[asyncio.Event] = None) -> PairReport:
        params = self.params
        volume = await resolve_volume(
            self.placer, params.symbol, params.volume, params.risk_money, params.stop_loss_points
        )
        buy_leg, sell_leg = self.legs(volume)
        return await self.orchestrator.run(buy_leg, sell_leg, stop_event)
