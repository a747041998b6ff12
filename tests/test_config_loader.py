from pathlib import Path

import pytest

yaml = pytest.importorskip("yaml")

from mt5_sugar.config import compute_config_hash, load_config, mt5_credentials
from mt5_sugar.runtime import create_run_context


def test_load_config_sample():
    config = load_config(Path("configs") / "sugar.yaml")
    assert config.terminal.broker == "paper"
    assert config.breakout.distance_points == 25
    assert config.breakout.risk_money == 50
    assert config.straddle.volume == 0.02
    assert config.straddle.hold_both_seconds == 30
    assert config.hedge.hedge_trigger_points == 15
    assert config.scalping.max_hold_seconds == 60
    assert config.scalping.risk_money == 20
    assert config.grid.grid_levels == 3
    assert config.grid.grid_spacing_points == 20
    assert config.grid.max_run_minutes == 15
    assert config.monitoring.audit_log_path == "runtime/audit.log"


def test_optional_sections_and_defaults(tmp_path):
    path = tmp_path / "minimal.yaml"
    path.write_text(
        yaml.safe_dump({"name": "mini", "version": 2, "terminal": {"broker": "MT5"}, "breakout": {"symbol": "GBPUSD"}}),
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.run_id_prefix == "mini"
    assert config.version == "2"
    assert config.terminal.broker == "mt5"
    assert config.terminal.magic == 901003
    assert config.breakout.stop_loss_points == 15
    assert config.breakout.max_wait_minutes == 30
    assert config.straddle is None
    assert config.hedge is None
    assert config.scalping is None
    assert config.grid is None


def test_missing_and_invalid_keys(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text(yaml.safe_dump({"name": "x", "version": 1}), encoding="utf-8")
    with pytest.raises(ValueError, match="Missing required config key: terminal"):
        load_config(path)

    path.write_text(yaml.safe_dump({"name": "x", "version": 1, "terminal": {"broker": "fix"}}), encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid broker"):
        load_config(path)

    path.write_text(
        yaml.safe_dump({"name": "x", "version": 1, "terminal": {"broker": "paper"}, "hedge": {"risk_money": 5}}),
        encoding="utf-8",
    )
    with pytest.raises(ValueError, match="Missing required config key: symbol"):
        load_config(path)

    path.write_text(
        yaml.safe_dump(
            {"name": "x", "version": 1, "terminal": {"broker": "paper"}, "grid": {"symbol": "EURUSD", "grid_levels": 0}}
        ),
        encoding="utf-8",
    )
    with pytest.raises(ValueError, match="Invalid grid_levels"):
        load_config(path)


def test_mt5_credentials_from_environment():
    env = {"MT5_LOGIN": "123456", "MT5_PASSWORD": "secret", "MT5_SERVER": "Demo-Server"}
    assert mt5_credentials(env) == {"login": 123456, "password": "secret", "server": "Demo-Server", "path": None}
    with pytest.raises(ValueError):
        mt5_credentials({"MT5_LOGIN": "abc", "MT5_PASSWORD": "p", "MT5_SERVER": "s"})
    with pytest.raises(ValueError):
        mt5_credentials({})


def test_run_context_names_strategy_and_config(tmp_path):
    source = Path("configs") / "sugar.yaml"
    target = tmp_path / "sugar.yaml"
    target.write_text(source.read_text(encoding="utf-8"), encoding="utf-8")

    context = create_run_context(target, "sugar", "grid")
    assert context.config_hash == compute_config_hash(target)
    assert context.strategy == "grid"
    assert context.run_id.startswith("sugar-grid-")
    assert context.run_id.endswith(context.config_hash[:8])
    assert context.describe()["broker"] == "paper"

    pinned = create_run_context(target, "sugar", "hedge", broker="mt5", run_id="manual-1")
    assert pinned.run_id == "manual-1"
    assert pinned.describe()["strategy"] == "hedge"

    with pytest.raises(ValueError):
        create_run_context(target, "sugar", "")
