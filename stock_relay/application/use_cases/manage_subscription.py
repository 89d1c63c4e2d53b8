"""
Use-cases: subscribe to / unsubscribe from a ticker.

The persisted list is written first and the live subscription registry is
updated in the same call, so a user's open connections never disagree with
what is stored.
"""

from stock_relay.application.services.connection_lifecycle import ConnectionLifecycleManager
from stock_relay.application.services.price_simulator import PriceSimulator
from stock_relay.domain.entities.symbol import SUPPORTED_SYMBOLS, parse_symbol
from stock_relay.domain.entities.user import User
from stock_relay.domain.errors import NotSubscribedError, UnauthorizedError
from stock_relay.domain.ports.user_store_port import IUserStore

SUPPORTED_TICKERS = frozenset(s.value for s in SUPPORTED_SYMBOLS)


def _authorize(user_store: IUserStore, token: str) -> User:
    user = user_store.find_by_token(token) if token else None
    if user is None:
        raise UnauthorizedError("Unauthorized")
    return user


class SubscribeTickerUseCase:
    def __init__(
        self,
        user_store: IUserStore,
        lifecycle: ConnectionLifecycleManager,
        simulator: PriceSimulator,
    ) -> None:
        self._user_store = user_store
        self._lifecycle = lifecycle
        self._simulator = simulator

    def execute(self, token: str, ticker: str) -> float:
        """Subscribe the user owning *token* to *ticker*; return its current price.

        Subscribing twice is not an error.

        Raises:
            UnauthorizedError: if *token* does not belong to a user.
            UnknownSymbolError: if *ticker* is not supported.
        """
        user = _authorize(self._user_store, token)
        symbol = parse_symbol(ticker)

        if symbol.value not in user.subscribed_stocks:
            self._user_store.set_subscriptions(token, [*user.subscribed_stocks, symbol.value])
        self._lifecycle.sync_subscription(token, symbol, subscribed=True)
        return self._simulator.current_price(symbol)


class UnsubscribeTickerUseCase:
    def __init__(self, user_store: IUserStore, lifecycle: ConnectionLifecycleManager) -> None:
        self._user_store = user_store
        self._lifecycle = lifecycle

    def execute(self, token: str, ticker: str) -> None:
        """
        Raises:
            UnauthorizedError: if *token* does not belong to a user.
            NotSubscribedError: if *ticker* is not in the user's list.
        """
        user = _authorize(self._user_store, token)
        wanted = (ticker or "").strip().upper()
        remaining = [t for t in user.subscribed_stocks if t != wanted]
        if len(remaining) == len(user.subscribed_stocks):
            raise NotSubscribedError("Ticker not found in subscription list.")

        self._user_store.set_subscriptions(token, remaining)
        # a stale, no longer supported ticker has no live registry entry
        if wanted in SUPPORTED_TICKERS:
            self._lifecycle.sync_subscription(token, parse_symbol(wanted), subscribed=False)
