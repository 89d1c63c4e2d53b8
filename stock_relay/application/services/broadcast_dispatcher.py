"""
Application service: subscription-scoped fan-out of simulated prices.

dispatch_tick() advances the simulator once and sends each new price only to
the connections subscribed to that symbol.  Delivery is at-most-once: a
closed connection is skipped, a failed send is logged and handed to the
lifecycle manager for cleanup, and nothing is retried.
"""

import json
import logging

from stock_relay.application.services.connection_lifecycle import ConnectionLifecycleManager
from stock_relay.application.services.price_simulator import PriceSimulator
from stock_relay.application.services.subscription_registry import SubscriptionRegistry
from stock_relay.domain.entities.price import PriceUpdate, TickReport

logger = logging.getLogger(__name__)


class BroadcastDispatcher:
    def __init__(
        self,
        simulator: PriceSimulator,
        registry: SubscriptionRegistry,
        lifecycle: ConnectionLifecycleManager,
    ) -> None:
        self._simulator = simulator
        self._registry = registry
        self._lifecycle = lifecycle

    async def dispatch_tick(self) -> TickReport:
        """Run one simulation step and deliver it to subscribers.

        Every subscriber of a symbol has been sent its update before this
        coroutine returns, so the next tick can never overtake it.
        """
        updates = self._simulator.tick()
        sent = skipped = failed = 0

        for update in updates:
            try:
                s, k, f = await self._fan_out(update)
            except Exception:
                logger.exception("Fan-out for %s aborted", update.symbol)
                continue
            sent += s
            skipped += k
            failed += f

        return TickReport(updates=tuple(updates), sent=sent, skipped=skipped, failed=failed)

    async def _fan_out(self, update: PriceUpdate) -> tuple[int, int, int]:
        subscribers = self._registry.subscribers_of(update.symbol)
        if not subscribers:
            return 0, 0, 0

        message = json.dumps(update.to_wire())
        sent = skipped = failed = 0
        for connection_id in subscribers:
            connection = self._lifecycle.connection(connection_id)
            if connection is None or not connection.is_open():
                skipped += 1
                continue
            try:
                await connection.send_text(message)
            except Exception as exc:
                failed += 1
                logger.warning("Send of %s to %s failed: %s", update.symbol, connection_id, exc)
                self._lifecycle.mark_unreachable(connection_id)
            else:
                sent += 1
        return sent, skipped, failed
