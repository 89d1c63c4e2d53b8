"""
Use-case: rolling price history used to backfill a chart before live updates.
"""

from stock_relay.application.services.price_simulator import PriceSimulator


class GetPriceHistoryUseCase:
    def __init__(self, simulator: PriceSimulator) -> None:
        self._simulator = simulator

    def execute(self, ticker: str) -> list[float]:
        """Return up to 60 prices for *ticker*, oldest first.

        Raises:
            UnknownSymbolError: if *ticker* is not supported.
        """
        return self._simulator.get_history(ticker)
