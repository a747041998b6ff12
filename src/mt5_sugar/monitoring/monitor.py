"""Operator alerts for orders and pairs."""

from __future__ import annotations

from dataclasses import dataclass

from mt5_sugar.monitoring.notifier import Notifier


@dataclass
class Monitor:
    notifier: Notifier

    def order_rejected(self, symbol: str, return_code: int, message: str) -> None:
        self.notifier.notify("ORDER_REJECTED", f"{symbol} rejected ({return_code}): {message}")

    def pair_resolved(self, symbol: str, resolution: str, detail: str) -> None:
        self.notifier.notify("PAIR_RESOLVED", f"{symbol} {resolution}: {detail}")

    def pair_integrity_failure(self, symbol: str, reason: str) -> None:
        self.notifier.notify("PAIR_INTEGRITY", f"{symbol} needs manual intervention: {reason}")

    def disconnect(self, reason: str) -> None:
        self.notifier.notify("DISCONNECT", reason)

    def hedge_failed(self, symbol: str, reason: str) -> None:
        self.notifier.notify("HEDGE_FAILED", f"{symbol} hedge not placed, unwinding primary: {reason}")
