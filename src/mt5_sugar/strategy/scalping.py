"""Scalping: one risk-sized market position with tight stops and a hold limit."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from mt5_sugar.config.models import ScalpingParams
from mt5_sugar.errors import PairIntegrityFailure
from mt5_sugar.execution.placer import OrderPlacer
from mt5_sugar.models import OrderResult
from mt5_sugar.runtime.actions import close_positions
from mt5_sugar.runtime.clock import Clock, MonotonicClock, wait_or_stop


@dataclass(frozen=True)
class ScalpReport:
    symbol: str
    position: OrderResult
    closed_tickets: tuple[int, ...] = ()
    reason: str = ""

    @property
    def closed_by_timer(self) -> bool:
        """True when the hold limit, not a stop-loss or take-profit, ended the trade."""
        return self.position.ticket in self.closed_tickets


class SimpleScalpingStrategy:
    """Open at market sized from ``risk_money`` and close after ``max_hold_seconds``."""

    def __init__(
        self,
        placer: OrderPlacer,
        params: ScalpingParams,
        clock: Optional[Clock] = None,
        audit_log: Optional[object] = None,
        monitor: Optional[object] = None,
        action_retries: int = 1,
    ) -> None:
        self.strategy_id = "simple_scalping"
        self.placer = placer
        self.params = params
        self.clock = clock or MonotonicClock()
        self.action_retries = action_retries
        self._audit_log = audit_log
        self._monitor = monitor

    def _log(self, event: str, payload: dict) -> None:
        if self._audit_log is None:
            return
        self._audit_log.log(event, payload)

    async def execute(self, stop_event: Optional[asyncio.Event] = None) -> ScalpReport:
        params = self.params
        position = await self.placer.market_by_risk(
            params.symbol,
            params.is_buy,
            params.stop_loss_points,
            params.risk_money,
            tp_points=params.take_profit_points,
            comment="Scalper",
        )
        if not position.accepted:
            return ScalpReport(symbol=params.symbol, position=position, reason="position rejected")
        self._log(
            "scalp_opened",
            {"symbol": params.symbol, "ticket": position.ticket, "volume": position.executed_volume},
        )

        stopped = await wait_or_stop(self.clock, params.max_hold_seconds, stop_event)
        closed, stuck = await close_positions(
            self.placer, params.symbol, [position.ticket], self.action_retries, self._log
        )
        if stuck:
            reason = f"could not close position {position.ticket}"
            if self._monitor is not None:
                self._monitor.pair_integrity_failure(params.symbol, reason)
            raise PairIntegrityFailure(reason)

        report = ScalpReport(
            symbol=params.symbol,
            position=position,
            closed_tickets=closed,
            reason="cancelled" if stopped else "",
        )
        self._log(
            "scalp_finished",
            {"symbol": params.symbol, "closed_by_timer": report.closed_by_timer, "reason": report.reason},
        )
        return report
