from __future__ import annotations

import argparse
import asyncio
import signal
from pathlib import Path

from mt5_sugar.config import TerminalConfig, load_config, mt5_credentials
from mt5_sugar.execution import OrderPlacer, PaperTerminal, TerminalAdapter
from mt5_sugar.execution.mt5 import MT5Terminal
from mt5_sugar.models import InstrumentSpec
from mt5_sugar.monitoring import AuditLog, LogNotifier, Monitor
from mt5_sugar.runtime import create_run_context
from mt5_sugar.strategy import (
    GridTradingStrategy,
    NewsStraddleStrategy,
    PendingBreakoutStrategy,
    QuickHedgeStrategy,
    SimpleScalpingStrategy,
)

PAPER_SPEC = InstrumentSpec(
    symbol="EURUSD",
    point=0.00001,
    tick_size=0.00001,
    tick_value=1.0,
    volume_min=0.01,
    volume_max=100.0,
    volume_step=0.01,
    stop_level_points=10,
    digits=5,
)

STRATEGIES = {
    "breakout": PendingBreakoutStrategy,
    "straddle": NewsStraddleStrategy,
    "hedge": QuickHedgeStrategy,
    "scalping": SimpleScalpingStrategy,
    "grid": GridTradingStrategy,
}


def _build_terminal(config: TerminalConfig) -> TerminalAdapter:
    if config.broker == "paper":
        return PaperTerminal({PAPER_SPEC.symbol: PAPER_SPEC}, quotes={PAPER_SPEC.symbol: (1.10000, 1.10002)})
    credentials = mt5_credentials()
    return MT5Terminal(
        login=credentials["login"],
        password=credentials["password"],
        server=credentials["server"],
        path=credentials["path"],
        magic=config.magic,
        deviation=config.deviation,
        filling_mode=config.filling_mode,
        time_type=config.time_type,
    )


def _build_strategy(name: str, config, placer: OrderPlacer, audit: AuditLog, monitor: Monitor):
    params = getattr(config, name)
    if params is None:
        raise ValueError(f"Config has no '{name}' section")
    return STRATEGIES[name](placer, params, audit_log=audit, monitor=monitor)


async def _run(strategy) -> object:
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, stop_event.set)
    except NotImplementedError:
        # Windows event loops do not support signal handlers; Ctrl+C raises instead.
        pass
    return await strategy.execute(stop_event)


def main() -> None:
    parser = argparse.ArgumentParser(description="Run one strategy against MT5 or the paper terminal.")
    parser.add_argument("strategy", choices=sorted(STRATEGIES))
    parser.add_argument("--config", default="configs/sugar.yaml")
    parser.add_argument("--run-id", default=None)
    args = parser.parse_args()

    config_path = Path(args.config)
    config = load_config(config_path)
    context = create_run_context(
        config_path, config.run_id_prefix, args.strategy, broker=config.terminal.broker, run_id=args.run_id
    )

    monitor = Monitor(LogNotifier(prefix=config.monitoring.notifier_prefix))
    audit = AuditLog(Path(config.monitoring.audit_log_path), run_id=context.run_id, config_hash=context.config_hash)
    audit.log("run_start", context.describe())

    terminal = _build_terminal(config.terminal)
    placer = OrderPlacer(terminal, audit_log=audit, monitor=monitor)
    strategy = _build_strategy(args.strategy, config, placer, audit, monitor)

    report = asyncio.run(_run(strategy))
    audit.log("run_finished", {"strategy": args.strategy, "report": repr(report)})
    print(report)


if __name__ == "__main__":
    main()
