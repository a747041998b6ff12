"""Grid: symmetric buy and sell limits around the market, swept after a fixed runtime."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from mt5_sugar.config.models import GridParams
from mt5_sugar.errors import InvalidArgument, PairIntegrityFailure, SugarError, TransportTransient
from mt5_sugar.execution.placer import OrderPlacer
from mt5_sugar.models import OrderResult
from mt5_sugar.runtime.actions import cancel_orders, close_positions
from mt5_sugar.runtime.clock import Clock, MonotonicClock, wait_or_stop
from mt5_sugar.strategy.base import resolve_volume


@dataclass(frozen=True)
class GridReport:
    symbol: str
    placed: tuple[OrderResult, ...] = ()
    rejected: int = 0
    filled_tickets: tuple[int, ...] = ()
    cancelled_tickets: tuple[int, ...] = ()
    closed_tickets: tuple[int, ...] = ()
    reason: str = ""

    @property
    def tickets(self) -> tuple[int, ...]:
        return tuple(result.ticket for result in self.placed)


class GridTradingStrategy:
    """Place ``grid_levels`` buy limits below and sell limits above the market.

    Level ``i`` sits ``i * grid_spacing_points`` from the quote. A level the
    broker refuses is skipped. When ``max_run_minutes`` runs out (or the run
    is stopped) every grid order still pending is cancelled and every grid
    position still open is closed.
    """

    def __init__(
        self,
        placer: OrderPlacer,
        params: GridParams,
        clock: Optional[Clock] = None,
        audit_log: Optional[object] = None,
        monitor: Optional[object] = None,
        action_retries: int = 1,
    ) -> None:
        if params.grid_levels < 1:
            raise InvalidArgument(f"grid_levels must be >= 1, got {params.grid_levels}")
        if params.grid_spacing_points <= 0:
            raise InvalidArgument(f"grid_spacing_points must be positive, got {params.grid_spacing_points}")
        self.strategy_id = "grid_trading"
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

    async def _place_level(self, is_buy: bool, level: int, volume: float) -> Optional[OrderResult]:
        params = self.params
        place = self.placer.buy_limit_points if is_buy else self.placer.sell_limit_points
        side = "Buy" if is_buy else "Sell"
        try:
            result = await place(
                params.symbol,
                volume,
                level * params.grid_spacing_points,
                sl_points=params.stop_loss_points,
                tp_points=params.take_profit_points,
                comment=f"Grid-{side}-{level}",
            )
        except (SugarError, OSError) as exc:
            self._log("grid_level_failed", {"symbol": params.symbol, "side": side, "level": level, "error": str(exc)})
            return None
        if not result.accepted:
            self._log(
                "grid_level_failed",
                {"symbol": params.symbol, "side": side, "level": level, "error": f"{result.return_code}"},
            )
            return None
        return result

    async def execute(self, stop_event: Optional[asyncio.Event] = None) -> GridReport:
        params = self.params
        volume = await resolve_volume(self.placer, params.symbol, params.volume, None, params.stop_loss_points)

        placed: list[OrderResult] = []
        rejected = 0
        try:
            for is_buy in (True, False):
                for level in range(1, params.grid_levels + 1):
                    result = await self._place_level(is_buy, level, volume)
                    if result is None:
                        rejected += 1
                    else:
                        placed.append(result)
        except Exception:
            await self._sweep(placed)
            raise
        tickets = [result.ticket for result in placed]
        self._log("grid_placed", {"symbol": params.symbol, "tickets": tickets, "rejected": rejected})

        stopped = False
        deadline = self.clock.now() + params.max_run_minutes * 60.0
        while placed and self.clock.now() < deadline:
            if await wait_or_stop(self.clock, params.poll_interval_seconds, stop_event):
                stopped = True
                break
            try:
                pending = await self.placer.terminal.list_open_tickets()
            except (TransportTransient, OSError) as exc:
                self._log("poll_failed", {"symbol": params.symbol, "error": str(exc)})
                continue
            filled = [ticket for ticket in tickets if ticket not in pending]
            self._log("grid_status", {"symbol": params.symbol, "filled": filled})

        filled, cancelled, closed = await self._sweep(placed)
        report = GridReport(
            symbol=params.symbol,
            placed=tuple(placed),
            rejected=rejected,
            filled_tickets=filled,
            cancelled_tickets=cancelled,
            closed_tickets=closed,
            reason="cancelled" if stopped else "",
        )
        self._log(
            "grid_finished",
            {
                "symbol": params.symbol,
                "filled": filled,
                "cancelled": cancelled,
                "closed": closed,
                "reason": report.reason,
            },
        )
        return report

    async def _sweep(self, placed: list[OrderResult]) -> tuple[tuple[int, ...], tuple[int, ...], tuple[int, ...]]:
        """Cancel the grid's pending orders, then close the grid's open positions."""
        symbol = self.params.symbol
        tickets = [result.ticket for result in placed]
        if not tickets:
            return (), (), ()
        try:
            pending = set(await self.placer.terminal.list_open_tickets())
        except (TransportTransient, OSError) as exc:
            self._log("poll_failed", {"symbol": symbol, "error": str(exc)})
            pending = set(tickets)
        cancelled, stuck_orders = await cancel_orders(
            self.placer, [ticket for ticket in tickets if ticket in pending], self.action_retries, self._log
        )
        # Orders that filled while the sweep ran are picked up here as positions.
        closed, stuck_positions = await close_positions(self.placer, symbol, tickets, self.action_retries, self._log)
        filled = tuple(ticket for ticket in tickets if ticket not in cancelled and ticket not in stuck_orders)

        stuck = stuck_orders + stuck_positions
        if stuck:
            reason = f"could not clean up grid tickets {list(stuck)}"
            self._log("grid_integrity_failure", {"symbol": symbol, "reason": reason, "closed": closed})
            if self._monitor is not None:
                self._monitor.pair_integrity_failure(symbol, reason)
            raise PairIntegrityFailure(reason)
        return filled, cancelled, closed
