"""Monitoring exports."""

from mt5_sugar.monitoring.audit import AuditLog
from mt5_sugar.monitoring.monitor import Monitor
from mt5_sugar.monitoring.notifier import LogNotifier, MemoryNotifier, Notifier

__all__ = [
    "AuditLog",
    "LogNotifier",
    "MemoryNotifier",
    "Monitor",
    "Notifier",
]
