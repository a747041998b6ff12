"""Pair orchestration runtime."""

from mt5_sugar.runtime.clock import Clock, MonotonicClock, wait_or_stop
from mt5_sugar.runtime.context import RunContext, create_run_context
from mt5_sugar.runtime.orchestrator import LegRequest, PairOrchestrator, PairReport, PairRunConfig
from mt5_sugar.runtime.pair import PairDecision, PairPhase, PairStateMachine, PendingPair, Resolution

__all__ = [
    "Clock",
    "LegRequest",
    "MonotonicClock",
    "PairDecision",
    "PairOrchestrator",
    "PairPhase",
    "PairReport",
    "PairRunConfig",
    "PairStateMachine",
    "PendingPair",
    "Resolution",
    "RunContext",
    "create_run_context",
    "wait_or_stop",
]
