"""
Application service: the process-wide relay context.

build_relay_context() is called once by the composition root at start-up.
The returned object owns the simulator, registry and connection state for
the lifetime of the process and is handed to whatever needs it.
"""

from dataclasses import dataclass
from typing import Optional

from stock_relay.application.services.broadcast_dispatcher import BroadcastDispatcher
from stock_relay.application.services.connection_lifecycle import ConnectionLifecycleManager
from stock_relay.application.services.price_simulator import PriceSimulator, RandomSource
from stock_relay.application.services.price_ticker import TICK_INTERVAL_SECONDS, PriceTicker
from stock_relay.application.services.subscription_registry import SubscriptionRegistry
from stock_relay.domain.entities.symbol import Symbol
from stock_relay.domain.ports.user_store_port import IUserStore


@dataclass(frozen=True)
class RelayContext:
    user_store: IUserStore
    simulator: PriceSimulator
    registry: SubscriptionRegistry
    lifecycle: ConnectionLifecycleManager
    dispatcher: BroadcastDispatcher
    ticker: PriceTicker


def build_relay_context(
    user_store: IUserStore,
    rng: Optional[RandomSource] = None,
    seed_prices: Optional[dict[Symbol, float]] = None,
    tick_interval: float = TICK_INTERVAL_SECONDS,
) -> RelayContext:
    simulator = PriceSimulator(rng=rng, seed_prices=seed_prices)
    registry = SubscriptionRegistry()
    lifecycle = ConnectionLifecycleManager(user_store, registry)
    dispatcher = BroadcastDispatcher(simulator, registry, lifecycle)
    ticker = PriceTicker(dispatcher, lifecycle, interval=tick_interval)
    return RelayContext(
        user_store=user_store,
        simulator=simulator,
        registry=registry,
        lifecycle=lifecycle,
        dispatcher=dispatcher,
        ticker=ticker,
    )
