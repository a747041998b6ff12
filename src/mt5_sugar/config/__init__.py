"""Config loading."""

from mt5_sugar.config.loader import compute_config_hash, load_config, mt5_credentials
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

__all__ = [
    "BreakoutParams",
    "GridParams",
    "HedgeParams",
    "MonitoringConfig",
    "ScalpingParams",
    "StraddleParams",
    "SugarConfig",
    "TerminalConfig",
    "compute_config_hash",
    "load_config",
    "mt5_credentials",
]
