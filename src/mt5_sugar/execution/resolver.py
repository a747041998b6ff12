"""Resolve and cache broker instrument constraints."""

from __future__ import annotations

from typing import Optional

from mt5_sugar.errors import InstrumentUnavailable, InvalidInstrumentSpec
from mt5_sugar.execution.terminal import TerminalAdapter
from mt5_sugar.models import InstrumentSpec


class InstrumentCache:
    """Short-lived per-run cache keyed by symbol.

    Entries are dropped wholesale when the terminal's ``session_epoch`` moves,
    since volume and price constraints can change between sessions.
    """

    def __init__(self) -> None:
        self._specs: dict[str, InstrumentSpec] = {}
        self._epoch: Optional[int] = None

    def get(self, symbol: str, epoch: int) -> Optional[InstrumentSpec]:
        if self._epoch != epoch:
            self._specs.clear()
            self._epoch = epoch
        return self._specs.get(symbol)

    def put(self, spec: InstrumentSpec, epoch: int) -> None:
        if self._epoch != epoch:
            self._specs.clear()
            self._epoch = epoch
        self._specs[spec.symbol] = spec

    def invalidate(self, symbol: str | None = None) -> None:
        if symbol is None:
            self._specs.clear()
        else:
            self._specs.pop(symbol, None)

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._specs


def check_spec(spec: InstrumentSpec) -> InstrumentSpec:
    if spec.point <= 0 or spec.tick_size <= 0:
        raise InvalidInstrumentSpec(
            f"{spec.symbol}: point {spec.point} and tick size {spec.tick_size} must be positive"
        )
    if spec.volume_step <= 0 or spec.volume_min <= 0:
        raise InvalidInstrumentSpec(
            f"{spec.symbol}: volume min {spec.volume_min} and step {spec.volume_step} must be positive"
        )
    if spec.volume_max < spec.volume_min:
        raise InvalidInstrumentSpec(f"{spec.symbol}: volume max {spec.volume_max} below min {spec.volume_min}")
    return spec


class QuantityResolver:
    def __init__(self, terminal: TerminalAdapter, cache: Optional[InstrumentCache] = None) -> None:
        self.terminal = terminal
        self.cache = cache if cache is not None else InstrumentCache()

    async def resolve(self, symbol: str) -> InstrumentSpec:
        epoch = self.terminal.session_epoch
        cached = self.cache.get(symbol, epoch)
        if cached is not None:
            return cached

        # Unselected symbols can report stale or default metadata.
        if not await self.terminal.select_symbol(symbol):
            raise InstrumentUnavailable(f"Symbol {symbol} cannot be selected or synchronized")
        spec = await self.terminal.get_instrument_spec(symbol)
        if spec is None:
            raise InstrumentUnavailable(f"Unknown symbol {symbol}")

        check_spec(spec)
        self.cache.put(spec, epoch)
        return spec

    def invalidate(self, symbol: str | None = None) -> None:
        self.cache.invalidate(symbol)
