"""
Domain exceptions for the market-data relay.
Zero external dependencies.

Core errors (UnknownSymbolError, UnknownConnectionError, DuplicateConnectionError)
are raised by the simulator and the subscription registry.  The request-level
errors are raised by the use cases and mapped to HTTP responses by the entry point.
"""


class RelayError(Exception):
    """Base class for every error raised by the relay."""


class UnknownSymbolError(RelayError, ValueError):
    def __init__(self, symbol: object) -> None:
        super().__init__(f"Unsupported stock ticker: {symbol!r}")
        self.symbol = symbol


class UnknownConnectionError(RelayError, LookupError):
    def __init__(self, connection_id: str) -> None:
        super().__init__(f"Connection {connection_id!r} is not registered")
        self.connection_id = connection_id


class DuplicateConnectionError(RelayError):
    def __init__(self, connection_id: str) -> None:
        super().__init__(f"Connection {connection_id!r} is already registered")
        self.connection_id = connection_id


class UserStoreError(RelayError):
    """The persisted user store could not be read or written."""


class UserAlreadyExistsError(RelayError):
    pass


class UserNotFoundError(RelayError):
    pass


class UnauthorizedError(RelayError):
    pass


class NotSubscribedError(RelayError):
    pass
