"""Identity of one strategy run, shared by the audit log and the report."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from mt5_sugar.config.loader import compute_config_hash


@dataclass(frozen=True)
class RunContext:
    run_id: str
    strategy: str
    broker: str
    config_path: Path
    config_hash: str
    started_at: datetime

    def describe(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "strategy": self.strategy,
            "broker": self.broker,
            "config": str(self.config_path),
            "config_hash": self.config_hash,
            "started_at": self.started_at.isoformat(),
        }


def create_run_context(
    config_path: str | Path,
    run_id_prefix: str,
    strategy: str,
    broker: str = "paper",
    run_id: Optional[str] = None,
) -> RunContext:
    """Run ids read ``<prefix>-<strategy>-<UTC stamp>-<config hash>`` so audit lines group per strategy."""
    if not strategy:
        raise ValueError("strategy is required for a run context")
    path = Path(config_path)
    config_hash = compute_config_hash(path)
    started_at = datetime.now(timezone.utc)
    if run_id is None:
        stamp = started_at.strftime("%Y%m%dT%H%M%SZ")
        run_id = f"{run_id_prefix}-{strategy}-{stamp}-{config_hash[:8]}"
    return RunContext(
        run_id=run_id,
        strategy=strategy,
        broker=broker,
        config_path=path,
        config_hash=config_hash,
        started_at=started_at,
    )
