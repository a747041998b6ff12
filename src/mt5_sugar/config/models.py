"""Configuration models for orchestrator runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class TerminalConfig:
    broker: str = "paper"
    magic: int = 901003
    deviation: int = 10
    filling_mode: str = "fok"
    time_type: str = "gtc"


@dataclass(frozen=True)
class BreakoutParams:
    symbol: str
    distance_points: float = 25.0
    volume: Optional[float] = None
    risk_money: Optional[float] = None
    stop_loss_points: float = 15.0
    take_profit_points: float = 30.0
    max_wait_minutes: float = 30.0
    poll_interval_seconds: float = 3.0


@dataclass(frozen=True)
class StraddleParams:
    symbol: str
    seconds_before_news: float = 60.0
    distance_points: float = 15.0
    volume: Optional[float] = 0.02
    risk_money: Optional[float] = None
    stop_loss_points: float = 20.0
    take_profit_points: float = 40.0
    max_wait_seconds: float = 180.0
    poll_interval_seconds: float = 1.0
    hold_seconds: float = 60.0
    hold_both_seconds: float = 30.0


@dataclass(frozen=True)
class HedgeParams:
    symbol: str
    risk_money: float = 30.0
    stop_loss_points: float = 25.0
    take_profit_points: float = 40.0
    is_buy: bool = True
    hedge_trigger_points: float = 15.0
    poll_interval_seconds: float = 2.0
    max_watch_seconds: float = 300.0
    hold_seconds: float = 30.0


@dataclass(frozen=True)
class ScalpingParams:
    symbol: str
    risk_money: float = 20.0
    stop_loss_points: float = 10.0
    take_profit_points: float = 20.0
    is_buy: bool = True
    max_hold_seconds: float = 60.0


@dataclass(frozen=True)
class GridParams:
    symbol: str
    grid_levels: int = 3
    grid_spacing_points: float = 20.0
    volume: float = 0.01
    stop_loss_points: float = 50.0
    take_profit_points: float = 30.0
    max_run_minutes: float = 15.0
    poll_interval_seconds: float = 5.0


@dataclass(frozen=True)
class MonitoringConfig:
    audit_log_path: str = "runtime/audit.log"
    notifier_prefix: str = "[MT5]"


@dataclass(frozen=True)
class SugarConfig:
    name: str
    version: str
    run_id_prefix: str
    terminal: TerminalConfig
    breakout: Optional[BreakoutParams] = None
    straddle: Optional[StraddleParams] = None
    hedge: Optional[HedgeParams] = None
    scalping: Optional[ScalpingParams] = None
    grid: Optional[GridParams] = None
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
