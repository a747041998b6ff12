"""Async driver for one-cancels-other order pairs."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import NoReturn, Optional

from mt5_sugar.errors import InvalidArgument, PairIntegrityFailure, SugarError, TransportTransient
from mt5_sugar.execution.placer import OrderPlacer
from mt5_sugar.execution.terminal import TerminalAdapter
from mt5_sugar.models import OrderResult, OrderType
from mt5_sugar.runtime.actions import cancel_with_retry, close_with_retry
from mt5_sugar.runtime.clock import Clock, MonotonicClock, wait_or_stop
from mt5_sugar.runtime.pair import (
    CancelRequested,
    CleanupDone,
    CleanupFailed,
    LateFill,
    LegFailed,
    LegsAccepted,
    MonitoringStarted,
    PairDecision,
    PairStateMachine,
    PollFailed,
    Resolution,
    Snapshot,
)


@dataclass(frozen=True)
class PairRunConfig:
    max_wait_seconds: float = 1800.0
    poll_interval_seconds: float = 3.0
    hold_seconds: float = 0.0
    hold_both_seconds: Optional[float] = None
    close_on_resolve: bool = False
    action_retries: int = 1
    cleanup_attempts: int = 2


@dataclass(frozen=True)
class LegRequest:
    """One side of a pair.

    Pending legs give either an absolute ``price`` or an ``offset_points``
    distance from the market; market legs give neither.
    """

    symbol: str
    order_type: OrderType
    volume: float
    price: Optional[float] = None
    offset_points: Optional[float] = None
    sl: Optional[float] = None
    tp: Optional[float] = None
    sl_points: Optional[float] = None
    tp_points: Optional[float] = None
    comment: str = ""


@dataclass(frozen=True)
class PairReport:
    symbol: str
    resolution: Resolution
    leg_a: Optional[OrderResult]
    leg_b: Optional[OrderResult]
    filled_tickets: tuple[int, ...] = ()
    cancelled_tickets: tuple[int, ...] = ()
    closed_tickets: tuple[int, ...] = ()
    realized_volumes: dict[int, float] = field(default_factory=dict)
    poll_failures: int = 0
    reason: str = ""

    @property
    def kept_both(self) -> bool:
        return self.resolution is Resolution.BOTH_FILLED

    @property
    def cancelled_other(self) -> bool:
        return self.resolution is Resolution.ONE_FILLED

    def describe(self) -> str:
        if self.resolution is Resolution.ONE_FILLED:
            return f"kept {self.filled_tickets}, cancelled {self.cancelled_tickets}"
        if self.resolution is Resolution.BOTH_FILLED:
            return f"both legs intentionally kept {self.filled_tickets}"
        if self.resolution is Resolution.TIMED_OUT:
            return f"no fill, cancelled {self.cancelled_tickets}"
        return f"failed: {self.reason}"


class PairOrchestrator:
    """Place two opposing legs, watch which fills, cancel the loser, unwind.

    Leg A is confirmed before leg B is sent; if leg B fails in any way leg A
    is cancelled. Each cycle pings the terminal, then reads the open-ticket
    list once, and the machine decides from that single snapshot. Poll
    errors are absorbed until the deadline. Every cancel and close is
    attempted before a failure is reported, and legs that filled while
    being cancelled are kept rather than treated as failures. Orders still
    pending (or positions still open) after one retry raise
    ``PairIntegrityFailure``.
    """

    def __init__(
        self,
        placer: OrderPlacer,
        terminal: Optional[TerminalAdapter] = None,
        clock: Optional[Clock] = None,
        config: Optional[PairRunConfig] = None,
        audit_log: Optional[object] = None,
        monitor: Optional[object] = None,
    ) -> None:
        self.placer = placer
        self.terminal = terminal or placer.terminal
        self.clock = clock or MonotonicClock()
        self.config = config or PairRunConfig()
        self._audit_log = audit_log
        self._monitor = monitor
        self.machine = PairStateMachine()

    def _log(self, event: str, payload: dict) -> None:
        if self._audit_log is None:
            return
        self._audit_log.log(event, payload)

    async def _place(self, leg: LegRequest) -> OrderResult:
        order_type = OrderType(leg.order_type)
        if order_type.is_market:
            return await self.placer.place_market(
                leg.symbol,
                leg.volume,
                is_buy=order_type is OrderType.BUY,
                sl=leg.sl,
                tp=leg.tp,
                sl_points=leg.sl_points,
                tp_points=leg.tp_points,
                comment=leg.comment,
            )
        if leg.price is not None:
            return await self.placer.place_pending(
                leg.symbol,
                leg.volume,
                order_type,
                leg.price,
                sl=leg.sl,
                tp=leg.tp,
                sl_points=leg.sl_points,
                tp_points=leg.tp_points,
                comment=leg.comment,
            )
        if leg.offset_points is None:
            raise InvalidArgument("Pending leg needs a price or offset_points")
        return await self.placer.place_pending_points(
            leg.symbol,
            leg.volume,
            order_type,
            leg.offset_points,
            sl_points=leg.sl_points,
            tp_points=leg.tp_points,
            comment=leg.comment,
        )

    async def run(
        self,
        leg_a: LegRequest,
        leg_b: LegRequest,
        stop_event: Optional[asyncio.Event] = None,
    ) -> PairReport:
        if leg_a.symbol != leg_b.symbol:
            raise InvalidArgument(f"Pair legs must share a symbol, got {leg_a.symbol} and {leg_b.symbol}")
        self.machine = PairStateMachine()
        symbol = leg_a.symbol

        # Validation errors on leg A propagate: nothing has been sent yet.
        result_a = await self._place(leg_a)
        if not result_a.accepted:
            decision = self.machine.handle(LegFailed(f"leg A rejected ({result_a.return_code}): {result_a.message}"))
            return self._finish(symbol, decision, result_a, None)

        result_b: Optional[OrderResult] = None
        failure = ""
        try:
            result_b = await self._place(leg_b)
            if not result_b.accepted:
                failure = f"leg B rejected ({result_b.return_code}): {result_b.message}"
        except (SugarError, OSError) as exc:
            failure = f"leg B failed: {exc}"
        except Exception as exc:
            self._log("leg_b_error", {"symbol": symbol, "leg_a": result_a.ticket, "error": repr(exc)})
            decision = self.machine.handle(LegFailed(f"leg B raised {exc!r}", accepted_leg=result_a))
            await self._unwind_single_leg(symbol, decision, result_a, None)
            raise

        if failure:
            decision = self.machine.handle(LegFailed(failure, accepted_leg=result_a))
            return await self._unwind_single_leg(symbol, decision, result_a, result_b)

        deadline = self.clock.now() + self.config.max_wait_seconds
        self.machine.handle(LegsAccepted(result_a, result_b, deadline))
        self._log(
            "pair_submitted",
            {"symbol": symbol, "leg_a": result_a.ticket, "leg_b": result_b.ticket, "deadline": deadline},
        )
        self.machine.handle(MonitoringStarted())
        decision = await self._monitor_until_resolved(symbol, stop_event)

        if decision.reason == "cancelled":
            return await self._abort(symbol, decision, result_a, result_b)

        decision, cancelled = await self._cancel(symbol, decision, result_a, result_b)
        volumes = await self._realized_volumes(symbol, decision, result_a, result_b)
        closed: tuple[int, ...] = ()
        if decision.keep and self.config.close_on_resolve:
            hold = self.config.hold_seconds
            if decision.resolution is Resolution.BOTH_FILLED and self.config.hold_both_seconds is not None:
                hold = self.config.hold_both_seconds
            await wait_or_stop(self.clock, hold, stop_event)
            closed = await self._close(symbol, decision, result_a, result_b, cancelled)

        return self._finish(symbol, decision, result_a, result_b, cancelled=cancelled, closed=closed, volumes=volumes)

    async def _unwind_single_leg(
        self,
        symbol: str,
        decision: PairDecision,
        leg_a: OrderResult,
        leg_b: Optional[OrderResult],
    ) -> PairReport:
        """Cancel the accepted leg of a half-submitted pair, closing it if it already filled."""
        decision, cancelled = await self._cancel(symbol, decision, leg_a, leg_b)
        closed: tuple[int, ...] = ()
        if decision.keep:
            closed = await self._close(symbol, decision, leg_a, leg_b, cancelled)
        return self._finish(symbol, decision, leg_a, leg_b, cancelled=cancelled, closed=closed)

    async def _monitor_until_resolved(self, symbol: str, stop_event: Optional[asyncio.Event]) -> PairDecision:
        epoch = self.terminal.session_epoch
        while True:
            if await wait_or_stop(self.clock, self.config.poll_interval_seconds, stop_event):
                return self.machine.handle(CancelRequested(self.clock.now()))

            try:
                # Health check first: a terminal that re-initializes bumps its session epoch.
                if not await self.terminal.ping():
                    raise TransportTransient("terminal session unavailable")
                if self.terminal.session_epoch != epoch:
                    epoch = self.terminal.session_epoch
                    self.placer.resolver.invalidate()
                    self._log("session_changed", {"symbol": symbol, "epoch": epoch})
                    if self._monitor is not None:
                        self._monitor.disconnect(f"terminal session re-established (epoch {epoch})")
                tickets = await self.terminal.list_open_tickets()
            except (TransportTransient, OSError) as exc:
                self._log("poll_failed", {"symbol": symbol, "error": str(exc)})
                decision = self.machine.handle(PollFailed(str(exc), self.clock.now()))
            else:
                decision = self.machine.handle(Snapshot(frozenset(tickets), self.clock.now()))
            if decision is not None:
                return decision

    async def _cancel(
        self,
        symbol: str,
        decision: PairDecision,
        leg_a: OrderResult,
        leg_b: Optional[OrderResult],
    ) -> tuple[PairDecision, tuple[int, ...]]:
        """Cancel every ticket the decision names, then account for the ones that would not go.

        A ticket that is no longer pending filled or vanished between the last
        snapshot and the cancel. Filled ones move to the kept side of the
        decision; only tickets still pending raise ``PairIntegrityFailure``.
        """
        cancelled: list[int] = []
        failed: list[int] = []
        for ticket in decision.cancel:
            if await cancel_with_retry(self.placer, ticket, self.config.action_retries, self._log):
                cancelled.append(ticket)
            else:
                failed.append(ticket)
        if not failed:
            return decision, tuple(cancelled)

        try:
            pending = set(await self.terminal.list_open_tickets())
            positions = await self._open_positions(symbol)
        except (TransportTransient, OSError) as exc:
            reason = f"could not cancel orders {failed} and could not re-read the terminal: {exc}"
            self._integrity_failure(symbol, reason, leg_a, leg_b, tuple(cancelled))

        filled = [ticket for ticket in failed if ticket not in pending and ticket in positions]
        gone = [ticket for ticket in failed if ticket not in pending and ticket not in positions]
        stuck = [ticket for ticket in failed if ticket in pending]
        cancelled.extend(gone)
        if filled:
            decision = self.machine.handle(LateFill(frozenset(filled)))
            self._log("late_fill", {"symbol": symbol, "tickets": filled, "resolution": decision.resolution.value})
        if stuck:
            self._integrity_failure(symbol, f"could not cancel orders {stuck}", leg_a, leg_b, tuple(cancelled))
        return decision, tuple(cancelled)

    async def _open_positions(self, symbol: str) -> set[int]:
        return {position.ticket for position in await self.terminal.list_positions(symbol)}

    async def _close(
        self,
        symbol: str,
        decision: PairDecision,
        leg_a: OrderResult,
        leg_b: Optional[OrderResult],
        cancelled: tuple[int, ...],
    ) -> tuple[int, ...]:
        try:
            positions = await self._open_positions(symbol)
        except (TransportTransient, OSError) as exc:
            self._integrity_failure(symbol, f"could not list positions: {exc}", leg_a, leg_b, cancelled)
        closed: list[int] = []
        failed: list[int] = []
        for ticket in decision.keep:
            # Already gone: stop-loss or take-profit hit during the hold.
            if ticket not in positions:
                continue
            if await close_with_retry(self.placer, ticket, self.config.action_retries, self._log):
                closed.append(ticket)
            else:
                failed.append(ticket)
        if not failed:
            return tuple(closed)

        try:
            still_open = await self._open_positions(symbol)
        except (TransportTransient, OSError) as exc:
            self._log("positions_unavailable", {"symbol": symbol, "error": str(exc)})
            still_open = set(failed)
        stuck = [ticket for ticket in failed if ticket in still_open]
        if stuck:
            self._integrity_failure(
                symbol, f"could not close positions {stuck}", leg_a, leg_b, cancelled, tuple(closed)
            )
        return tuple(closed)

    async def _realized_volumes(
        self,
        symbol: str,
        decision: PairDecision,
        leg_a: OrderResult,
        leg_b: OrderResult,
    ) -> dict[int, float]:
        if not decision.keep:
            return {}
        by_ticket = {leg_a.ticket: leg_a.executed_volume, leg_b.ticket: leg_b.executed_volume}
        volumes = {ticket: by_ticket.get(ticket, 0.0) for ticket in decision.keep}
        try:
            positions = await self.terminal.list_positions(symbol)
        except (TransportTransient, OSError) as exc:
            self._log("positions_unavailable", {"symbol": symbol, "error": str(exc)})
            return volumes
        for position in positions:
            if position.ticket in volumes:
                volumes[position.ticket] = position.volume
        return volumes

    async def _abort(
        self,
        symbol: str,
        decision: PairDecision,
        leg_a: OrderResult,
        leg_b: OrderResult,
    ) -> PairReport:
        """Best-effort unwind after an external stop; never blocks past the attempt budget."""
        attempts = max(1, self.config.cleanup_attempts)
        cancelled: list[int] = []
        for ticket in decision.cancel:
            if await cancel_with_retry(self.placer, ticket, attempts - 1, self._log):
                cancelled.append(ticket)

        closed: list[int] = []
        try:
            positions = await self.terminal.list_positions(symbol)
        except (TransportTransient, OSError) as exc:
            self._log("cleanup_incomplete", {"symbol": symbol, "error": str(exc)})
            positions = []
        for position in positions:
            if position.ticket not in decision.cancel:
                continue
            if await close_with_retry(self.placer, position.ticket, attempts - 1, self._log):
                closed.append(position.ticket)

        outstanding = [t for t in decision.cancel if t not in cancelled and t not in closed]
        if outstanding:
            self._log("cleanup_incomplete", {"symbol": symbol, "tickets": outstanding})
        return self._finish(symbol, decision, leg_a, leg_b, cancelled=tuple(cancelled), closed=tuple(closed))

    def _integrity_failure(
        self,
        symbol: str,
        reason: str,
        leg_a: OrderResult,
        leg_b: Optional[OrderResult],
        cancelled: tuple[int, ...],
        closed: tuple[int, ...] = (),
    ) -> NoReturn:
        decision = self.machine.handle(CleanupFailed(reason))
        report = self._report(symbol, decision, leg_a, leg_b, cancelled=cancelled, closed=closed)
        tickets = decision.cancel + decision.keep
        self._log("pair_integrity_failure", {"symbol": symbol, "reason": reason, "tickets": tickets})
        if self._monitor is not None:
            self._monitor.pair_integrity_failure(symbol, reason)
        raise PairIntegrityFailure(reason, report)

    def _report(
        self,
        symbol: str,
        decision: PairDecision,
        leg_a: Optional[OrderResult],
        leg_b: Optional[OrderResult],
        cancelled: tuple[int, ...] = (),
        closed: tuple[int, ...] = (),
        volumes: Optional[dict[int, float]] = None,
    ) -> PairReport:
        return PairReport(
            symbol=symbol,
            resolution=decision.resolution,
            leg_a=leg_a,
            leg_b=leg_b,
            filled_tickets=decision.keep,
            cancelled_tickets=cancelled,
            closed_tickets=closed,
            realized_volumes=dict(volumes or {}),
            poll_failures=self.machine.poll_failures,
            reason=decision.reason,
        )

    def _finish(
        self,
        symbol: str,
        decision: PairDecision,
        leg_a: Optional[OrderResult],
        leg_b: Optional[OrderResult],
        cancelled: tuple[int, ...] = (),
        closed: tuple[int, ...] = (),
        volumes: Optional[dict[int, float]] = None,
    ) -> PairReport:
        self.machine.handle(CleanupDone())
        report = self._report(symbol, decision, leg_a, leg_b, cancelled, closed, volumes)
        self._log(
            "pair_resolved",
            {
                "symbol": symbol,
                "resolution": report.resolution.value,
                "filled": report.filled_tickets,
                "cancelled": report.cancelled_tickets,
                "closed": report.closed_tickets,
                "volumes": report.realized_volumes,
                "reason": report.reason,
            },
        )
        if self._monitor is not None:
            self._monitor.pair_resolved(symbol, report.resolution.value, report.describe())
        return report
