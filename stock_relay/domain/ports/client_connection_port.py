"""
Port (interface) for a live client connection.
The transport owns the connection; the core only talks to it through this
interface and refers to it by ``connection_id`` everywhere else.
"""

from abc import ABC, abstractmethod


class IClientConnection(ABC):
    @property
    @abstractmethod
    def connection_id(self) -> str: ...

    @abstractmethod
    def is_open(self) -> bool:
        """True while the transport is accepted and writable."""
        ...

    @abstractmethod
    async def accept(self) -> None: ...

    @abstractmethod
    async def send_text(self, text: str) -> None:
        """Send one text frame. Raises on transport failure."""
        ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None: ...
