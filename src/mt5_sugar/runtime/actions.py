"""Cancel and close calls with a bounded retry, singly and in bulk."""

from __future__ import annotations

from typing import Callable, Iterable, Optional

from mt5_sugar.errors import TransportTransient
from mt5_sugar.execution.placer import OrderPlacer

LogFn = Callable[[str, dict], None]


def _noop(event: str, payload: dict) -> None:
    return None


async def cancel_with_retry(placer: OrderPlacer, ticket: int, retries: int = 1, log: Optional[LogFn] = None) -> bool:
    log = log or _noop
    for attempt in range(1 + max(0, retries)):
        try:
            if await placer.cancel_order(ticket):
                return True
            log("cancel_failed", {"ticket": ticket, "attempt": attempt + 1, "error": "terminal declined"})
        except (TransportTransient, OSError) as exc:
            log("cancel_failed", {"ticket": ticket, "attempt": attempt + 1, "error": str(exc)})
    return False


async def close_with_retry(placer: OrderPlacer, ticket: int, retries: int = 1, log: Optional[LogFn] = None) -> bool:
    log = log or _noop
    for attempt in range(1 + max(0, retries)):
        try:
            result = await placer.close_position(ticket)
            if result.accepted:
                return True
            log(
                "close_failed",
                {"ticket": ticket, "attempt": attempt + 1, "error": f"{result.return_code}: {result.message}"},
            )
        except (TransportTransient, OSError) as exc:
            log("close_failed", {"ticket": ticket, "attempt": attempt + 1, "error": str(exc)})
    return False


async def _position_tickets(placer: OrderPlacer, symbol: str) -> set[int]:
    return {position.ticket for position in await placer.terminal.list_positions(symbol)}


async def cancel_orders(
    placer: OrderPlacer,
    tickets: Iterable[int],
    retries: int = 1,
    log: Optional[LogFn] = None,
) -> tuple[tuple[int, ...], tuple[int, ...]]:
    """Attempt every cancel, then re-read the book.

    Returns ``(cancelled, still_pending)``. A ticket whose cancel failed but
    which is no longer pending has filled or gone, and is in neither tuple.
    """
    cancelled: list[int] = []
    failed: list[int] = []
    for ticket in tickets:
        if await cancel_with_retry(placer, ticket, retries, log):
            cancelled.append(ticket)
        else:
            failed.append(ticket)
    if not failed:
        return tuple(cancelled), ()
    try:
        pending = set(await placer.terminal.list_open_tickets())
    except (TransportTransient, OSError):
        pending = set(failed)
    return tuple(cancelled), tuple(ticket for ticket in failed if ticket in pending)


async def close_positions(
    placer: OrderPlacer,
    symbol: str,
    tickets: Iterable[int],
    retries: int = 1,
    log: Optional[LogFn] = None,
) -> tuple[tuple[int, ...], tuple[int, ...]]:
    """Close each of ``tickets`` that is an open position, attempting all of them.

    Returns ``(closed, still_open)``; tickets that were not open (stopped out,
    never filled) are skipped.
    """
    log = log or _noop
    tickets = list(tickets)
    try:
        open_tickets = await _position_tickets(placer, symbol)
    except (TransportTransient, OSError) as exc:
        log("positions_unavailable", {"symbol": symbol, "error": str(exc)})
        open_tickets = set(tickets)
    closed: list[int] = []
    failed: list[int] = []
    for ticket in tickets:
        if ticket not in open_tickets:
            continue
        if await close_with_retry(placer, ticket, retries, log):
            closed.append(ticket)
        else:
            failed.append(ticket)
    if not failed:
        return tuple(closed), ()
    try:
        still_open = await _position_tickets(placer, symbol)
    except (TransportTransient, OSError):
        still_open = set(failed)
    return tuple(closed), tuple(ticket for ticket in failed if ticket in still_open)
