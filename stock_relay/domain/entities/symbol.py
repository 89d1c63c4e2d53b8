"""
Domain entity for the fixed set of supported ticker symbols.
Zero external dependencies.
"""

from enum import Enum

from stock_relay.domain.errors import UnknownSymbolError


class Symbol(str, Enum):
    GOOG = "GOOG"
    TSLA = "TSLA"
    AMZN = "AMZN"
    META = "META"
    NVDA = "NVDA"

    def __str__(self) -> str:
        return self.value


SUPPORTED_SYMBOLS: tuple[Symbol, ...] = tuple(Symbol)


def parse_symbol(raw: object) -> Symbol:
    """Resolve *raw* (case-insensitive, surrounding whitespace ignored) to a Symbol.

    Raises:
        UnknownSymbolError: if *raw* is not one of the supported tickers.
    """
    if isinstance(raw, Symbol):
        return raw
    if not isinstance(raw, str):
        raise UnknownSymbolError(raw)
    try:
        return Symbol(raw.strip().upper())
    except ValueError:
        raise UnknownSymbolError(raw) from None
