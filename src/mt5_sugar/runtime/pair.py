"""One-cancels-other pair state machine.

The machine owns no timers and makes no remote calls. The orchestrator feeds
it events (submissions, ticket snapshots, poll failures, cancellation, late
fills, cleanup outcome) and executes the returned decision. Every decision names
both legs, either as kept or as to-be-cancelled, so no leg is abandoned.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from mt5_sugar.models import OrderResult


class PairPhase(str, Enum):
    IDLE = "idle"
    LEGS_SUBMITTED = "legs_submitted"
    MONITORING = "monitoring"
    RESOLVED = "resolved"
    CLEANED = "cleaned"


class Resolution(str, Enum):
    PENDING = "pending"
    ONE_FILLED = "one_filled"
    BOTH_FILLED = "both_filled"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass
class PendingPair:
    leg_a: OrderResult
    leg_b: OrderResult
    deadline: float
    resolution: Resolution = Resolution.PENDING
    filled: tuple[int, ...] = ()
    cancelled: tuple[int, ...] = ()
    reason: str = ""

    @property
    def tickets(self) -> tuple[int, int]:
        return self.leg_a.ticket, self.leg_b.ticket


@dataclass(frozen=True)
class PairDecision:
    resolution: Resolution
    cancel: tuple[int, ...] = ()
    keep: tuple[int, ...] = ()
    reason: str = ""


@dataclass(frozen=True)
class LegsAccepted:
    leg_a: OrderResult
    leg_b: OrderResult
    deadline: float


@dataclass(frozen=True)
class LegFailed:
    reason: str
    accepted_leg: Optional[OrderResult] = None


@dataclass(frozen=True)
class MonitoringStarted:
    pass


@dataclass(frozen=True)
class Snapshot:
    open_tickets: frozenset[int]
    now: float


@dataclass(frozen=True)
class PollFailed:
    error: str
    now: float


@dataclass(frozen=True)
class CancelRequested:
    now: float


@dataclass(frozen=True)
class LateFill:
    """Tickets due for cancellation that turned out to have filled."""

    tickets: frozenset[int]


@dataclass(frozen=True)
class CleanupDone:
    pass


@dataclass(frozen=True)
class CleanupFailed:
    reason: str


PairEvent = Union[
    LegsAccepted,
    LegFailed,
    MonitoringStarted,
    Snapshot,
    PollFailed,
    CancelRequested,
    LateFill,
    CleanupDone,
    CleanupFailed,
]


class PairStateMachine:
    def __init__(self) -> None:
        self.phase = PairPhase.IDLE
        self.pair: Optional[PendingPair] = None
        self.decision: Optional[PairDecision] = None
        self.poll_failures = 0

    @property
    def resolution(self) -> Resolution:
        if self.decision is None:
            return Resolution.PENDING
        return self.decision.resolution

    def _expect(self, event: PairEvent, *phases: PairPhase) -> None:
        if self.phase not in phases:
            raise RuntimeError(f"{type(event).__name__} not valid in phase {self.phase.value}")

    def _resolve(self, decision: PairDecision) -> PairDecision:
        self.phase = PairPhase.RESOLVED
        self.decision = decision
        if self.pair is not None:
            self.pair.resolution = decision.resolution
            self.pair.filled = decision.keep
            self.pair.cancelled = decision.cancel
            self.pair.reason = decision.reason
        return decision

    def handle(self, event: PairEvent) -> Optional[PairDecision]:
        if isinstance(event, LegsAccepted):
            self._expect(event, PairPhase.IDLE)
            self.pair = PendingPair(leg_a=event.leg_a, leg_b=event.leg_b, deadline=event.deadline)
            self.phase = PairPhase.LEGS_SUBMITTED
            return None

        if isinstance(event, LegFailed):
            self._expect(event, PairPhase.IDLE)
            cancel = (event.accepted_leg.ticket,) if event.accepted_leg is not None else ()
            return self._resolve(PairDecision(Resolution.FAILED, cancel=cancel, reason=event.reason))

        if isinstance(event, MonitoringStarted):
            self._expect(event, PairPhase.LEGS_SUBMITTED)
            self.phase = PairPhase.MONITORING
            return None

        if isinstance(event, Snapshot):
            self._expect(event, PairPhase.MONITORING)
            return self._on_snapshot(event)

        if isinstance(event, PollFailed):
            self._expect(event, PairPhase.MONITORING)
            self.poll_failures += 1
            if event.now >= self.pair.deadline:
                return self._resolve(
                    PairDecision(
                        Resolution.TIMED_OUT,
                        cancel=self.pair.tickets,
                        reason=f"deadline reached after poll failure: {event.error}",
                    )
                )
            return None

        if isinstance(event, CancelRequested):
            self._expect(event, PairPhase.LEGS_SUBMITTED, PairPhase.MONITORING)
            return self._resolve(PairDecision(Resolution.FAILED, cancel=self.pair.tickets, reason="cancelled"))

        if isinstance(event, LateFill):
            self._expect(event, PairPhase.RESOLVED)
            return self._on_late_fill(event)

        if isinstance(event, CleanupDone):
            self._expect(event, PairPhase.RESOLVED)
            self.phase = PairPhase.CLEANED
            return None

        if isinstance(event, CleanupFailed):
            self._expect(event, PairPhase.RESOLVED)
            previous = self.decision or PairDecision(Resolution.FAILED)
            return self._resolve(
                PairDecision(Resolution.FAILED, cancel=previous.cancel, keep=previous.keep, reason=event.reason)
            )

        raise TypeError(f"Unknown pair event: {event!r}")

    def _on_snapshot(self, event: Snapshot) -> Optional[PairDecision]:
        ticket_a, ticket_b = self.pair.tickets
        a_pending = ticket_a in event.open_tickets
        b_pending = ticket_b in event.open_tickets

        if not a_pending and b_pending:
            return self._resolve(PairDecision(Resolution.ONE_FILLED, cancel=(ticket_b,), keep=(ticket_a,)))
        if a_pending and not b_pending:
            return self._resolve(PairDecision(Resolution.ONE_FILLED, cancel=(ticket_a,), keep=(ticket_b,)))
        if not a_pending and not b_pending:
            return self._resolve(PairDecision(Resolution.BOTH_FILLED, keep=(ticket_a, ticket_b)))
        if event.now >= self.pair.deadline:
            return self._resolve(
                PairDecision(Resolution.TIMED_OUT, cancel=(ticket_a, ticket_b), reason="no fill before deadline")
            )
        return None

    def _on_late_fill(self, event: LateFill) -> PairDecision:
        previous = self.decision
        filled = tuple(ticket for ticket in previous.cancel if ticket in event.tickets)
        if not filled:
            return previous
        cancel = tuple(ticket for ticket in previous.cancel if ticket not in event.tickets)
        keep = previous.keep + filled
        resolution = previous.resolution
        reason = f"filled while cancelling: {', '.join(str(ticket) for ticket in filled)}"
        if resolution is Resolution.FAILED:
            # A lone leg that filled after its partner failed stays a failure.
            reason = f"{previous.reason}; {reason}"
        else:
            resolution = Resolution.BOTH_FILLED if len(keep) == 2 else Resolution.ONE_FILLED
        return self._resolve(PairDecision(resolution, cancel=cancel, keep=keep, reason=reason))
