"""
Application service: random-walk price simulator for the supported symbols.

Owns the current price and a bounded rolling history per symbol.  Every
tick() moves each price by up to +/-1.5% and appends it to the history; the
history keeps the most recent HISTORY_LENGTH prices, oldest first.
"""

import random
import threading
from collections import deque
from typing import Iterable, Optional, Protocol

from stock_relay.domain.entities.price import PriceUpdate
from stock_relay.domain.entities.symbol import SUPPORTED_SYMBOLS, Symbol, parse_symbol
from stock_relay.domain.errors import UnknownSymbolError

HISTORY_LENGTH = 60
MAX_CHANGE = 0.015
PRICE_FLOOR = 1.0
SEED_LOW = 100.0
SEED_SPAN = 100.0


class RandomSource(Protocol):
    def random(self) -> float: ...


class PriceSimulator:
    def __init__(
        self,
        symbols: Iterable[Symbol] = SUPPORTED_SYMBOLS,
        rng: Optional[RandomSource] = None,
        seed_prices: Optional[dict[Symbol, float]] = None,
        history_length: int = HISTORY_LENGTH,
    ) -> None:
        """
        Args:
            symbols:        Symbols to simulate, in tick order.
            rng:            Source of uniform floats in [0, 1). Defaults to a
                            fresh ``random.Random``.
            seed_prices:    Optional starting prices; missing symbols get a
                            random seed in [100, 200).
            history_length: Capacity of each rolling history.
        """
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self._symbols = tuple(symbols)
        self._prices: dict[Symbol, float] = {}
        self._history: dict[Symbol, deque[float]] = {}

        seed_prices = seed_prices or {}
        for symbol in self._symbols:
            seed = seed_prices.get(symbol)
            if seed is None:
                seed = SEED_LOW + self._rng.random() * SEED_SPAN
            self._prices[symbol] = float(seed)
            self._history[symbol] = deque([float(seed)] * history_length, maxlen=history_length)

    @property
    def symbols(self) -> tuple[Symbol, ...]:
        return self._symbols

    def tick(self) -> list[PriceUpdate]:
        """Advance every symbol by one step and return the new prices."""
        updates: list[PriceUpdate] = []
        with self._lock:
            for symbol in self._symbols:
                delta = (self._rng.random() - 0.5) * 2 * MAX_CHANGE
                new_price = max(self._prices[symbol] * (1 + delta), PRICE_FLOOR)
                self._prices[symbol] = new_price
                # deque(maxlen=...) drops the oldest entry on append
                self._history[symbol].append(new_price)
                updates.append(PriceUpdate(symbol=symbol, price=new_price))
        return updates

    def current_price(self, symbol: Symbol | str) -> float:
        """Raises UnknownSymbolError for tickers outside the supported set."""
        key = self._resolve(symbol)
        with self._lock:
            return self._prices[key]

    def get_history(self, symbol: Symbol | str) -> list[float]:
        """Return a copy of the rolling history for *symbol*, oldest first.

        Raises:
            UnknownSymbolError: if *symbol* is not simulated.
        """
        key = self._resolve(symbol)
        with self._lock:
            return list(self._history[key])

    def _resolve(self, symbol: Symbol | str) -> Symbol:
        key = parse_symbol(symbol)
        if key not in self._prices:
            # supported in general but not simulated by this instance
            raise UnknownSymbolError(symbol)
        return key
