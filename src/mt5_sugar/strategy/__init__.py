"""Pair, hedge, scalping and grid strategies built on the placement facade."""

from mt5_sugar.strategy.base import resolve_volume
from mt5_sugar.strategy.breakout import PendingBreakoutStrategy
from mt5_sugar.strategy.grid import GridReport, GridTradingStrategy
from mt5_sugar.strategy.hedge import HedgeReport, QuickHedgeStrategy
from mt5_sugar.strategy.scalping import ScalpReport, SimpleScalpingStrategy
from mt5_sugar.strategy.straddle import NewsStraddleStrategy

__all__ = [
    "GridReport",
    "GridTradingStrategy",
    "HedgeReport",
    "NewsStraddleStrategy",
    "PendingBreakoutStrategy",
    "QuickHedgeStrategy",
    "ScalpReport",
    "SimpleScalpingStrategy",
    "resolve_volume",
]
