"""Load YAML configuration files."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from mt5_sugar.config.models import (
    BreakoutParams,
    GridParams,
    HedgeParams,
    MonitoringConfig,
    ScalpingParams,
    StraddleParams,
    SugarConfig,
    TerminalConfig,
)

BROKERS = ("mt5", "paper")


def load_config(path: str | Path) -> SugarConfig:
    path = Path(path)
    data = _load_yaml(path)

    name = _require(data, "name")
    version = str(_require(data, "version"))
    run_id_prefix = data.get("run_id_prefix", name)

    return SugarConfig(
        name=name,
        version=version,
        run_id_prefix=run_id_prefix,
        terminal=_parse_terminal(_require(data, "terminal")),
        breakout=_parse_breakout(data["breakout"]) if data.get("breakout") else None,
        straddle=_parse_straddle(data["straddle"]) if data.get("straddle") else None,
        hedge=_parse_hedge(data["hedge"]) if data.get("hedge") else None,
        scalping=_parse_scalping(data["scalping"]) if data.get("scalping") else None,
        grid=_parse_grid(data["grid"]) if data.get("grid") else None,
        monitoring=_parse_monitoring(data.get("monitoring", {})),
    )


def compute_config_hash(path: str | Path) -> str:
    path = Path(path)
    content = path.read_bytes()
    return hashlib.sha256(content).hexdigest()


def mt5_credentials(env: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
    """Read terminal credentials from ``MT5_LOGIN``/``MT5_PASSWORD``/``MT5_SERVER``/``MT5_PATH``."""
    env = os.environ if env is None else env
    login = env.get("MT5_LOGIN")
    password = env.get("MT5_PASSWORD")
    server = env.get("MT5_SERVER")
    if not login or not password or not server:
        raise ValueError("MT5_LOGIN, MT5_PASSWORD and MT5_SERVER must be set")
    try:
        login_id = int(login)
    except ValueError as exc:
        raise ValueError(f"Invalid MT5_LOGIN: {login}") from exc
    return {"login": login_id, "password": password, "server": server, "path": env.get("MT5_PATH")}


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Config must be a mapping")
    return data


def _require(data: dict[str, Any], key: str) -> Any:
    if key not in data:
        raise ValueError(f"Missing required config key: {key}")
    return data[key]


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def _parse_terminal(data: dict[str, Any]) -> TerminalConfig:
    broker = str(_require(data, "broker")).lower()
    if broker not in BROKERS:
        raise ValueError(f"Invalid broker: {broker}")
    return TerminalConfig(
        broker=broker,
        magic=int(data.get("magic", 901003)),
        deviation=int(data.get("deviation", 10)),
        filling_mode=str(data.get("filling_mode", "fok")),
        time_type=str(data.get("time_type", "gtc")),
    )


def _parse_breakout(data: dict[str, Any]) -> BreakoutParams:
    return BreakoutParams(
        symbol=str(_require(data, "symbol")),
        distance_points=float(data.get("distance_points", 25.0)),
        volume=_optional_float(data.get("volume")),
        risk_money=_optional_float(data.get("risk_money")),
        stop_loss_points=float(data.get("stop_loss_points", 15.0)),
        take_profit_points=float(data.get("take_profit_points", 30.0)),
        max_wait_minutes=float(data.get("max_wait_minutes", 30.0)),
        poll_interval_seconds=float(data.get("poll_interval_seconds", 3.0)),
    )


def _parse_straddle(data: dict[str, Any]) -> StraddleParams:
    return StraddleParams(
        symbol=str(_require(data, "symbol")),
        seconds_before_news=float(data.get("seconds_before_news", 60.0)),
        distance_points=float(data.get("distance_points", 15.0)),
        volume=_optional_float(data.get("volume", 0.02)),
        risk_money=_optional_float(data.get("risk_money")),
        stop_loss_points=float(data.get("stop_loss_points", 20.0)),
        take_profit_points=float(data.get("take_profit_points", 40.0)),
        max_wait_seconds=float(data.get("max_wait_seconds", 180.0)),
        poll_interval_seconds=float(data.get("poll_interval_seconds", 1.0)),
        hold_seconds=float(data.get("hold_seconds", 60.0)),
        hold_both_seconds=float(data.get("hold_both_seconds", 30.0)),
    )


def _parse_hedge(data: dict[str, Any]) -> HedgeParams:
    return HedgeParams(
        symbol=str(_require(data, "symbol")),
        risk_money=float(data.get("risk_money", 30.0)),
        stop_loss_points=float(data.get("stop_loss_points", 25.0)),
        take_profit_points=float(data.get("take_profit_points", 40.0)),
        is_buy=bool(data.get("is_buy", True)),
        hedge_trigger_points=float(data.get("hedge_trigger_points", 15.0)),
        poll_interval_seconds=float(data.get("poll_interval_seconds", 2.0)),
        max_watch_seconds=float(data.get("max_watch_seconds", 300.0)),
        hold_seconds=float(data.get("hold_seconds", 30.0)),
    )


def _parse_scalping(data: dict[str, Any]) -> ScalpingParams:
    return ScalpingParams(
        symbol=str(_require(data, "symbol")),
        risk_money=float(data.get("risk_money", 20.0)),
        stop_loss_points=float(data.get("stop_loss_points", 10.0)),
        take_profit_points=float(data.get("take_profit_points", 20.0)),
        is_buy=bool(data.get("is_buy", True)),
        max_hold_seconds=float(data.get("max_hold_seconds", 60.0)),
    )


def _parse_grid(data: dict[str, Any]) -> GridParams:
    levels = int(data.get("grid_levels", 3))
    if levels < 1:
        raise ValueError(f"Invalid grid_levels: {levels}")
    spacing = float(data.get("grid_spacing_points", 20.0))
    if spacing <= 0:
        raise ValueError(f"Invalid grid_spacing_points: {spacing}")
    return GridParams(
        symbol=str(_require(data, "symbol")),
        grid_levels=levels,
        grid_spacing_points=spacing,
        volume=float(data.get("volume", 0.01)),
        stop_loss_points=float(data.get("stop_loss_points", 50.0)),
        take_profit_points=float(data.get("take_profit_points", 30.0)),
        max_run_minutes=float(data.get("max_run_minutes", 15.0)),
        poll_interval_seconds=float(data.get("poll_interval_seconds", 5.0)),
    )

def _parse_monitoring(data: dict[str, Any]) -> MonitoringConfig:
    return MonitoringConfig(
        audit_log_path=str(data.get("audit_log_path", "runtime/audit.log")),
        notifier_prefix=str(data.get("notifier_prefix", "[MT5]")),
    )
