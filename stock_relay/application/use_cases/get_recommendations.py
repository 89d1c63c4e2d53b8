"""
Use-case: mock recommendations.

There is no signal logic: one ticker the user is not yet subscribed to is
picked at random and labelled BUY.
"""

import random
from typing import Optional

from stock_relay.domain.entities.recommendation import Recommendation
from stock_relay.domain.entities.symbol import SUPPORTED_SYMBOLS
from stock_relay.domain.ports.user_store_port import IUserStore


class GetRecommendationsUseCase:
    def __init__(self, user_store: IUserStore, rng: Optional[random.Random] = None) -> None:
        self._user_store = user_store
        self._rng = rng or random.Random()

    def execute(self, token: Optional[str]) -> list[Recommendation]:
        subscribed = self._user_store.subscribed_symbols(token) if token else []
        available = [s.value for s in SUPPORTED_SYMBOLS if s.value not in subscribed]
        if not available:
            return []

        ticker = self._rng.choice(available)
        return [
            Recommendation(
                ticker=ticker,
                signal_type="BUY",
                reason=f"Strong volume detected in {ticker}. Potential upward momentum.",
            )
        ]
