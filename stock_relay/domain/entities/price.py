"""
Domain entities for simulated price data.
Zero external dependencies, pure Python dataclasses only.
"""

from dataclasses import dataclass

from stock_relay.domain.entities.symbol import Symbol


@dataclass(frozen=True)
class PriceUpdate:
    symbol: Symbol
    price: float

    def to_wire(self) -> dict:
        """Wire payload sent to subscribers; the price is a fixed 2-decimal string."""
        return {"ticker": self.symbol.value, "price": f"{self.price:.2f}"}


@dataclass(frozen=True)
class TickReport:
    updates: tuple[PriceUpdate, ...]
    sent: int = 0
    skipped: int = 0
    failed: int = 0
