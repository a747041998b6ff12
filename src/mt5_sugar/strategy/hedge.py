"""Quick hedge: open a risk-sized position and hedge it on an adverse move."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from mt5_sugar.config.models import HedgeParams
from mt5_sugar.errors import PairIntegrityFailure, SugarError, TransportTransient
from mt5_sugar.execution.placer import OrderPlacer
from mt5_sugar.models import OrderResult
from mt5_sugar.runtime.actions import close_positions
from mt5_sugar.runtime.clock import Clock, MonotonicClock, wait_or_stop


@dataclass(frozen=True)
class HedgeReport:
    symbol: str
    primary: OrderResult
    hedge: Optional[OrderResult] = None
    adverse_points: float = 0.0
    closed_tickets: tuple[int, ...] = ()
    reason: str = ""

    @property
    def hedged(self) -> bool:
        return self.hedge is not None and self.hedge.accepted


class QuickHedgeStrategy:
    def __init__(
        self,
        placer: OrderPlacer,
        params: HedgeParams,
        clock: Optional[Clock] = None,
        audit_log: Optional[object] = None,
        monitor: Optional[object] = None,
        action_retries: int = 1,
    ) -> None:
        self.strategy_id = "quick_hedge"
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

    def adverse_points(self, entry_price: float, bid: float, ask: float, point: float) -> float:
        """Points the market moved against the primary position (0 when favourable)."""
        if self.params.is_buy:
            move = entry_price - bid
        else:
            move = ask - entry_price
        return max(0.0, move / point)

    async def execute(self, stop_event: Optional[asyncio.Event] = None) -> HedgeReport:
        params = self.params
        primary = await self.placer.market_by_risk(
            params.symbol,
            params.is_buy,
            params.stop_loss_points,
            params.risk_money,
            tp_points=params.take_profit_points,
            comment="Hedge-Primary",
        )
        if not primary.accepted:
            return HedgeReport(symbol=params.symbol, primary=primary, reason="primary rejected")

        spec = await self.placer.resolve(params.symbol)
        hedge: Optional[OrderResult] = None
        worst = 0.0
        deadline = self.clock.now() + params.max_watch_seconds
        stopped = False
        failure = ""
        while self.clock.now() < deadline:
            if await wait_or_stop(self.clock, params.poll_interval_seconds, stop_event):
                stopped = True
                break
            try:
                quote = await self.placer.quote(params.symbol)
            except (TransportTransient, OSError) as exc:
                self._log("poll_failed", {"symbol": params.symbol, "error": str(exc)})
                continue
            moved = self.adverse_points(primary.execution_price, quote.bid, quote.ask, spec.point)
            worst = max(worst, moved)
            if moved < params.hedge_trigger_points:
                continue
            try:
                hedge = await self.placer.place_market(
                    params.symbol,
                    primary.executed_volume,
                    is_buy=not params.is_buy,
                    comment="Hedge-Protection",
                )
            except (SugarError, OSError) as exc:
                # The primary is already past the trigger with no protection: unwind it now.
                failure = f"hedge failed: {exc}"
                self._log("hedge_failed", {"symbol": params.symbol, "adverse_points": moved, "error": str(exc)})
                if self._monitor is not None:
                    self._monitor.hedge_failed(params.symbol, str(exc))
                break
            self._log(
                "hedge_placed" if hedge.accepted else "hedge_failed",
                {"symbol": params.symbol, "adverse_points": moved, "ticket": hedge.ticket},
            )
            if hedge.accepted:
                break

        if not stopped and not failure:
            stopped = await wait_or_stop(self.clock, params.hold_seconds, stop_event)

        tickets = [primary.ticket]
        if hedge is not None and hedge.accepted:
            tickets.append(hedge.ticket)
        closed = await self._close(tickets)
        report = HedgeReport(
            symbol=params.symbol,
            primary=primary,
            hedge=hedge,
            adverse_points=worst,
            closed_tickets=closed,
            reason="cancelled" if stopped else failure,
        )
        self._log(
            "hedge_finished",
            {"symbol": params.symbol, "hedged": report.hedged, "closed": closed, "reason": report.reason},
        )
        return report

    async def _close(self, tickets: list[int]) -> tuple[int, ...]:
        closed, stuck = await close_positions(
            self.placer, self.params.symbol, tickets, self.action_retries, self._log
        )
        if stuck:
            reason = f"could not close positions {list(stuck)}"
            self._log("hedge_integrity_failure", {"symbol": self.params.symbol, "reason": reason, "closed": closed})
            if self._monitor is not None:
                self._monitor.pair_integrity_failure(self.params.symbol, reason)
            raise PairIntegrityFailure(reason)
        return closed
