"""News straddle: bracket the market shortly before a scheduled release."""

from __future__ import annotations

import asyncio
from typing import Optional

from mt5_sugar.config.models import StraddleParams
from mt5_sugar.execution.placer import OrderPlacer
from mt5_sugar.models import OrderType
from mt5_sugar.runtime.clock import Clock, MonotonicClock, wait_or_stop
from mt5_sugar.runtime.orchestrator import LegRequest, PairOrchestrator, PairReport, PairRunConfig
from mt5_sugar.strategy.base import resolve_volume


class NewsStraddleStrategy:
    """Wait, place both stops, then unwind whatever filled after a short hold.

    A single fill is held for ``hold_seconds``; a whipsaw that fills both legs
    is held for ``hold_both_seconds``. The pair's positions are closed either way.
    """

    def __init__(
        self,
        placer: OrderPlacer,
        params: StraddleParams,
        clock: Optional[Clock] = None,
        audit_log: Optional[object] = None,
        monitor: Optional[object] = None,
    ) -> None:
        self.strategy_id = "news_straddle"
        self.placer = placer
        self.params = params
        self.clock = clock or MonotonicClock()
        self._audit_log = audit_log
        self.orchestrator = PairOrchestrator(
            placer,
            clock=self.clock,
            config=PairRunConfig(
                max_wait_seconds=params.max_wait_seconds,
                poll_interval_seconds=params.poll_interval_seconds,
                hold_seconds=params.hold_seconds,
                hold_both_seconds=params.hold_both_seconds,
                close_on_resolve=True,
            ),
            audit_log=audit_log,
            monitor=monitor,
        )

    def _log(self, event: str, payload: dict) -> None:
        if self._audit_log is None:
            return
        self._audit_log.log(event, payload)

    async def execute(self, stop_event: Optional[asyncio.Event] = None) -> Optional[PairReport]:
        """Run the straddle; ``None`` when stopped before anything was placed."""
        params = self.params
        if await wait_or_stop(self.clock, params.seconds_before_news, stop_event):
            self._log("straddle_skipped", {"symbol": params.symbol, "reason": "stopped before news"})
            return None

        volume = await resolve_volume(
            self.placer, params.symbol, params.volume, params.risk_money, params.stop_loss_points
        )
        common = dict(
            symbol=params.symbol,
            volume=volume,
            offset_points=params.distance_points,
            sl_points=params.stop_loss_points,
            tp_points=params.take_profit_points,
        )
        return await self.orchestrator.run(
            LegRequest(order_type=OrderType.BUY_STOP, comment="Straddle-Buy", **common),
            LegRequest(order_type=OrderType.SELL_STOP, comment="Straddle-Sell", **common),
            stop_event,
        )
