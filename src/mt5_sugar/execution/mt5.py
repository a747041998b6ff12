"""MT5 terminal adapter."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Optional

from mt5_sugar.errors import TransportTransient
from mt5_sugar.execution.terminal import TerminalAdapter
from mt5_sugar.models import (
    InstrumentSpec,
    OrderIntent,
    OrderResult,
    OrderType,
    PendingOrderInfo,
    PositionInfo,
    PriceQuote,
    Side,
)

try:  # pragma: no cover - optional dependency
    import MetaTrader5 as mt5
except ImportError:  # pragma: no cover - optional dependency
    mt5 = None


class MT5Terminal(TerminalAdapter):
    def __init__(
        self,
        login: int,
        password: str,
        server: str,
        path: str | None = None,
        magic: int = 901003,
        deviation: int = 10,
        filling_mode: str = "fok",
        time_type: str = "gtc",
    ) -> None:
        if mt5 is None:
            raise RuntimeError("MetaTrader5 package is not installed")
        self.login = login
        self.password = password
        self.server = server
        self.path = path
        self.magic = magic
        self.deviation = deviation
        self.filling_mode = filling_mode.lower()
        self.time_type = time_type.lower()
        self.session_epoch = 0
        if not self._initialize():
            raise RuntimeError("Failed to initialize MetaTrader5")

        filling_map = {
            "fok": mt5.ORDER_FILLING_FOK,
            "ioc": mt5.ORDER_FILLING_IOC,
            "return": mt5.ORDER_FILLING_RETURN,
        }
        time_map = {
            "gtc": mt5.ORDER_TIME_GTC,
            "day": mt5.ORDER_TIME_DAY,
            "spec": mt5.ORDER_TIME_SPECIFIED,
            "spec_gtd": mt5.ORDER_TIME_SPECIFIED_DAY,
        }
        self._type_filling = filling_map.get(self.filling_mode, mt5.ORDER_FILLING_FOK)
        self._type_time = time_map.get(self.time_type, mt5.ORDER_TIME_GTC)
        self._order_types = {
            OrderType.BUY: mt5.ORDER_TYPE_BUY,
            OrderType.SELL: mt5.ORDER_TYPE_SELL,
            OrderType.BUY_LIMIT: mt5.ORDER_TYPE_BUY_LIMIT,
            OrderType.SELL_LIMIT: mt5.ORDER_TYPE_SELL_LIMIT,
            OrderType.BUY_STOP: mt5.ORDER_TYPE_BUY_STOP,
            OrderType.SELL_STOP: mt5.ORDER_TYPE_SELL_STOP,
            OrderType.BUY_STOP_LIMIT: mt5.ORDER_TYPE_BUY_STOP_LIMIT,
            OrderType.SELL_STOP_LIMIT: mt5.ORDER_TYPE_SELL_STOP_LIMIT,
        }

    def _initialize(self) -> bool:
        return bool(mt5.initialize(login=self.login, password=self.password, server=self.server, path=self.path))

    @staticmethod
    def _last_error() -> str:
        code, message = mt5.last_error()
        return f"{code}: {message}"

    async def _call(self, func, *args, **kwargs):
        return await asyncio.to_thread(func, *args, **kwargs)

    async def select_symbol(self, symbol: str) -> bool:
        if not await self._call(mt5.symbol_select, symbol, True):
            return False
        # A tick only arrives once the terminal has synchronized the symbol.
        return await self._call(mt5.symbol_info_tick, symbol) is not None

    async def get_instrument_spec(self, symbol: str) -> Optional[InstrumentSpec]:
        info = await self._call(mt5.symbol_info, symbol)
        if info is None:
            return None
        point = float(getattr(info, "point", 0.0) or 0.0)
        tick_size = float(getattr(info, "trade_tick_size", 0.0) or 0.0)
        return InstrumentSpec(
            symbol=symbol,
            point=point,
            tick_size=tick_size or point,
            tick_value=float(getattr(info, "trade_tick_value", 0.0) or 0.0),
            volume_min=float(getattr(info, "volume_min", 0.0) or 0.0),
            volume_max=float(getattr(info, "volume_max", 0.0) or 0.0),
            volume_step=float(getattr(info, "volume_step", 0.0) or 0.0),
            stop_level_points=int(getattr(info, "trade_stops_level", 0) or 0),
            digits=int(getattr(info, "digits", 0) or 0),
        )

    async def get_quote(self, symbol: str) -> PriceQuote:
        tick = await self._call(mt5.symbol_info_tick, symbol)
        if tick is None:
            raise TransportTransient(f"No tick data for {symbol}: {self._last_error()}")
        return PriceQuote(
            symbol=symbol,
            bid=float(tick.bid),
            ask=float(tick.ask),
            timestamp=datetime.fromtimestamp(tick.time_msc / 1000.0, tz=timezone.utc),
        )

    def _to_result(self, result) -> OrderResult:
        if result is None:
            raise TransportTransient(f"MT5 order_send returned None: {self._last_error()}")
        return OrderResult(
            ticket=int(result.order or result.deal or 0),
            return_code=int(result.retcode),
            execution_price=float(result.price or 0.0),
            executed_volume=float(result.volume or 0.0),
            message=str(result.comment or ""),
        )

    async def submit_order(self, intent: OrderIntent) -> OrderResult:
        request = {
            "symbol": intent.symbol,
            "volume": float(intent.volume),
            "type": self._order_types[intent.order_type],
            "sl": float(intent.stop_loss or 0.0),
            "tp": float(intent.take_profit or 0.0),
            "deviation": int(intent.max_slippage_points or self.deviation),
            "magic": self.magic,
            "comment": intent.comment,
            "type_time": self._type_time,
            "type_filling": self._type_filling,
        }
        if intent.order_type.is_market:
            tick = await self.get_quote(intent.symbol)
            request["action"] = mt5.TRADE_ACTION_DEAL
            request["price"] = tick.ask if intent.side is Side.BUY else tick.bid
        else:
            request["action"] = mt5.TRADE_ACTION_PENDING
            request["price"] = float(intent.entry_price)
        return self._to_result(await self._call(mt5.order_send, request))

    async def cancel_order(self, ticket: int) -> bool:
        request = {
            "action": mt5.TRADE_ACTION_REMOVE,
            "order": int(ticket),
        }
        result = await self._call(mt5.order_send, request)
        if result is None:
            raise TransportTransient(f"Failed to cancel order {ticket}: {self._last_error()}")
        return result.retcode in (mt5.TRADE_RETCODE_DONE, mt5.TRADE_RETCODE_PLACED)

    async def close_position(self, ticket: int, volume: float | None = None) -> OrderResult:
        positions = await self._call(mt5.positions_get, ticket=int(ticket))
        if not positions:
            return OrderResult(ticket=0, return_code=0, message=f"Position {ticket} not found")
        position = positions[0]
        tick = await self.get_quote(position.symbol)
        is_buy = position.type == mt5.POSITION_TYPE_BUY
        request = {
            "action": mt5.TRADE_ACTION_DEAL,
            "position": int(ticket),
            "symbol": position.symbol,
            "volume": float(volume or position.volume),
            "type": mt5.ORDER_TYPE_SELL if is_buy else mt5.ORDER_TYPE_BUY,
            "price": tick.bid if is_buy else tick.ask,
            "deviation": self.deviation,
            "magic": self.magic,
            "type_time": self._type_time,
            "type_filling": self._type_filling,
        }
        return self._to_result(await self._call(mt5.order_send, request))

    async def list_open_tickets(self) -> set[int]:
        orders = await self._call(mt5.orders_get)
        if orders is None:
            raise TransportTransient(f"orders_get failed: {self._last_error()}")
        return {int(order.ticket) for order in orders}

    async def list_orders(self, symbol: str | None = None) -> list[PendingOrderInfo]:
        if symbol is None:
            orders = await self._call(mt5.orders_get)
        else:
            orders = await self._call(mt5.orders_get, symbol=symbol)
        if orders is None:
            raise TransportTransient(f"orders_get failed: {self._last_error()}")
        return [
            PendingOrderInfo(
                ticket=int(order.ticket),
                symbol=order.symbol,
                order_type=OrderType(int(order.type)),
                volume=float(order.volume_current),
                price=float(order.price_open),
            )
            for order in orders
        ]

    async def list_positions(self, symbol: str | None = None) -> list[PositionInfo]:
        if symbol is None:
            positions = await self._call(mt5.positions_get)
        else:
            positions = await self._call(mt5.positions_get, symbol=symbol)
        if positions is None:
            raise TransportTransient(f"positions_get failed: {self._last_error()}")
        return [
            PositionInfo(
                ticket=int(position.ticket),
                symbol=position.symbol,
                side=Side.BUY if position.type == mt5.POSITION_TYPE_BUY else Side.SELL,
                volume=float(position.volume),
                price_open=float(position.price_open),
                profit=float(position.profit),
            )
            for position in positions
        ]

    async def ping(self) -> bool:
        if await self._call(mt5.terminal_info) is not None:
            return True
        if await self._call(self._initialize):
            self.session_epoch += 1
            return True
        return False
