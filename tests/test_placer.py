from __future__ import annotations

import asyncio
import math

import pytest

from mt5_sugar.errors import InstrumentUnavailable, InvalidArgument, InvalidStopSide, OrderRejected
from mt5_sugar.execution.paper import PaperTerminal
from mt5_sugar.execution.placer import OrderPlacer
from mt5_sugar.models import InstrumentSpec, OrderType, Side
from mt5_sugar.monitoring import AuditLog, MemoryNotifier, Monitor

EURUSD = InstrumentSpec(
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


def _terminal() -> PaperTerminal:
    return PaperTerminal({"EURUSD": EURUSD}, quotes={"EURUSD": (1.10000, 1.10002)})


def test_point_offsets_follow_order_type() -> None:
    terminal = _terminal()
    placer = OrderPlacer(terminal)

    async def run() -> None:
        await placer.buy_stop_points("EURUSD", 0.1, 25, sl_points=15, tp_points=30)
        await placer.sell_stop_points("EURUSD", 0.1, 25)
        await placer.buy_limit_points("EURUSD", 0.1, 20)
        await placer.sell_limit_points("EURUSD", 0.1, 20)

    asyncio.run(run())
    buy_stop, sell_stop, buy_limit, sell_limit = terminal.submitted
    assert buy_stop.order_type is OrderType.BUY_STOP
    assert buy_stop.entry_price == 1.10027
    assert buy_stop.stop_loss == 1.10012
    assert buy_stop.take_profit == 1.10057
    assert sell_stop.entry_price == 1.09975
    assert buy_limit.entry_price == 1.09982
    assert sell_limit.entry_price == 1.1002


def test_price_from_offset_points() -> None:
    placer = OrderPlacer(_terminal())
    assert asyncio.run(placer.price_from_offset_points("EURUSD", OrderType.BUY_LIMIT, 10)) == 1.10012
    assert asyncio.run(placer.price_from_offset_points("EURUSD", OrderType.SELL_STOP, 10)) == 1.0999


def test_market_order_normalizes_volume_and_stops() -> None:
    terminal = _terminal()
    result = asyncio.run(OrderPlacer(terminal).place_market("EURUSD", 0.037, is_buy=True, sl_points=20))

    assert result.accepted
    intent = terminal.submitted[0]
    assert intent.volume == 0.04
    assert intent.side is Side.BUY
    assert intent.stop_loss == 1.09982
    assert intent.take_profit is None
    assert result.execution_price == 1.10002


def test_market_by_risk_sizes_from_stop_distance() -> None:
    terminal = _terminal()
    result = asyncio.run(OrderPlacer(terminal).market_by_risk("EURUSD", True, stop_points=50, risk_money=100.0))

    assert result.executed_volume == 2.0
    assert terminal.submitted[0].stop_loss == 1.09952


def test_rejection_is_returned_verbatim_and_not_retried(tmp_path) -> None:
    terminal = _terminal()
    terminal.reject_next(10016, "Invalid stops")
    audit = AuditLog(tmp_path / "audit.log")
    notifier = MemoryNotifier()
    placer = OrderPlacer(terminal, audit_log=audit, monitor=Monitor(notifier))

    result = asyncio.run(placer.place_market("EURUSD", 0.1, is_buy=False))

    assert not result.accepted
    assert result.return_code == 10016
    assert result.message == "Invalid stops"
    assert len(terminal.submitted) == 1
    assert len(audit.events("order_submitted")) == 1
    assert audit.events("order_rejected")[0]["payload"]["return_code"] == 10016
    assert notifier.messages[0][0] == "ORDER_REJECTED"
    with pytest.raises(OrderRejected):
        result.raise_for_status()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"symbol": " ", "volume": 0.1},
        {"symbol": "EURUSD", "volume": 0.0},
        {"symbol": "EURUSD", "volume": -1.0},
        {"symbol": "EURUSD", "volume": math.nan},
        {"symbol": "EURUSD", "volume": math.inf},
        {"symbol": "EURUSD", "volume": 0.1, "deviation_points": 2001},
        {"symbol": "EURUSD", "volume": 0.1, "sl": 1.0999, "sl_points": 20},
        {"symbol": "EURUSD", "volume": 0.1, "tp_points": 0},
    ],
)
def test_argument_errors_raise_before_any_submission(kwargs: dict) -> None:
    terminal = _terminal()
    with pytest.raises(InvalidArgument):
        asyncio.run(OrderPlacer(terminal).place_market(is_buy=True, **kwargs))
    assert terminal.submitted == []


def test_wrong_side_stop_never_reaches_terminal() -> None:
    terminal = _terminal()
    with pytest.raises(InvalidStopSide):
        asyncio.run(OrderPlacer(terminal).place_market("EURUSD", 0.1, is_buy=True, sl=1.1010))
    assert terminal.submitted == []


def test_pending_placement_rejects_market_types_and_unknown_symbols() -> None:
    terminal = _terminal()
    placer = OrderPlacer(terminal)
    with pytest.raises(InvalidArgument):
        asyncio.run(placer.place_pending("EURUSD", 0.1, OrderType.BUY, 1.1))
    with pytest.raises(InstrumentUnavailable):
        asyncio.run(placer.buy_stop_points("GBPUSD", 0.1, 25))
    with pytest.raises(InvalidArgument):
        asyncio.run(placer.cancel_order(0))
    assert terminal.submitted == []


def test_bulk_cancel_and_close_filter_by_direction(tmp_path) -> None:
    terminal = _terminal()
    audit = AuditLog(tmp_path / "audit.log")
    placer = OrderPlacer(terminal, audit_log=audit)

    async def run() -> None:
        await placer.buy_stop_points("EURUSD", 0.1, 25)
        await placer.sell_stop_points("EURUSD", 0.1, 25)
        assert await placer.cancel_all("EURUSD", is_buy=True) == 1
        remaining = await terminal.list_orders("EURUSD")
        assert [order.order_type for order in remaining] == [OrderType.SELL_STOP]

        await placer.place_market("EURUSD", 0.1, is_buy=True)
        await placer.place_market("EURUSD", 0.2, is_buy=False)
        assert await placer.close_all_positions("EURUSD") == 2
        assert await terminal.list_positions("EURUSD") == []

    asyncio.run(run())
    assert len(audit.events("order_canceled")) == 1
    assert len(audit.events("position_closed")) == 2
