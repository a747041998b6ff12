import asyncio

from mt5_sugar.execution import OrderPlacer, PaperTerminal
from mt5_sugar.models import InstrumentSpec, OrderType
from mt5_sugar.risk import size_for_risk
from mt5_sugar.runtime import LegRequest, PairOrchestrator, PairRunConfig

spec = InstrumentSpec(
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

terminal = PaperTerminal({"EURUSD": spec}, quotes={"EURUSD": (1.10000, 1.10002)})
placer = OrderPlacer(terminal)

print("Sizing:", size_for_risk(spec, stop_points=150, risk_money=100))


async def fill_buy_leg_later() -> None:
    # The buy stop is the first order the pair submits.
    while not terminal.submitted:
        await asyncio.sleep(0.05)
    await asyncio.sleep(0.3)
    orders = await terminal.list_orders("EURUSD")
    ticket = next(order.ticket for order in orders if order.order_type is OrderType.BUY_STOP)
    terminal.set_quote("EURUSD", 1.10030, 1.10032)
    print("Filled buy stop:", terminal.fill(ticket))


async def main() -> None:
    orchestrator = PairOrchestrator(placer, config=PairRunConfig(max_wait_seconds=5, poll_interval_seconds=0.1))
    buy = LegRequest("EURUSD", OrderType.BUY_STOP, 0.1, offset_points=25, sl_points=15, tp_points=30)
    sell = LegRequest("EURUSD", OrderType.SELL_STOP, 0.1, offset_points=25, sl_points=15, tp_points=30)
    report, _ = await asyncio.gather(orchestrator.run(buy, sell), fill_buy_leg_later())
    print("Pair:", report.resolution.value, report.describe())
    print("Positions:", await terminal.list_positions("EURUSD"))


asyncio.run(main())
