"""
Application service: per-connection subscription sets.

Maps a connection id to the set of symbols that connection wants.  Only ids
are stored, never connection objects, so an entry cannot keep a closed
transport alive.  Every read and write holds the same lock: HTTP handlers
mutate the registry from worker threads while the dispatcher reads it from
the event loop.
"""

import threading
from typing import Iterable

from stock_relay.domain.entities.symbol import Symbol, parse_symbol
from stock_relay.domain.errors import DuplicateConnectionError, UnknownConnectionError


class SubscriptionRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: dict[str, set[Symbol]] = {}

    def register(self, connection_id: str, initial_symbols: Iterable[Symbol | str] = ()) -> None:
        """Create the subscription set for a new connection.

        Raises:
            DuplicateConnectionError: if *connection_id* is already registered;
                the existing entry is left untouched.
            UnknownSymbolError: if any initial symbol is unsupported.
        """
        symbols = {parse_symbol(s) for s in initial_symbols}
        with self._lock:
            if connection_id in self._subscriptions:
                raise DuplicateConnectionError(connection_id)
            self._subscriptions[connection_id] = symbols

    def unregister(self, connection_id: str) -> None:
        """Remove the entry for *connection_id*; absent ids are ignored."""
        with self._lock:
            self._subscriptions.pop(connection_id, None)

    def add_symbol(self, connection_id: str, symbol: Symbol | str) -> None:
        key = parse_symbol(symbol)
        with self._lock:
            self._entry(connection_id).add(key)

    def remove_symbol(self, connection_id: str, symbol: Symbol | str) -> None:
        key = parse_symbol(symbol)
        with self._lock:
            self._entry(connection_id).discard(key)

    def subscribers_of(self, symbol: Symbol | str) -> set[str]:
        """Connection ids currently subscribed to *symbol* (a fresh set)."""
        key = parse_symbol(symbol)
        with self._lock:
            return {cid for cid, symbols in self._subscriptions.items() if key in symbols}

    def symbols_for(self, connection_id: str) -> frozenset[Symbol]:
        with self._lock:
            return frozenset(self._entry(connection_id))

    def __contains__(self, connection_id: object) -> bool:
        with self._lock:
            return connection_id in self._subscriptions

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def _entry(self, connection_id: str) -> set[Symbol]:
        # caller holds the lock
        try:
            return self._subscriptions[connection_id]
        except KeyError:
            raise UnknownConnectionError(connection_id) from None
