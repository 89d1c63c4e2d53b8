"""
Port (interface) for the persisted user store.
Infrastructure adapters (e.g. JsonUserStore) must implement this interface.
"""

from abc import ABC, abstractmethod
from typing import Optional

from stock_relay.domain.entities.user import User


class IUserStore(ABC):
    @abstractmethod
    def all(self) -> list[User]:
        """Return every persisted user.

        Raises:
            UserStoreError: if the backing store cannot be read.
        """
        ...

    @abstractmethod
    def find_by_token(self, token: str) -> Optional[User]: ...

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[User]: ...

    @abstractmethod
    def add(self, user: User) -> None:
        """Persist a new user. Callers check uniqueness beforehand."""
        ...

    @abstractmethod
    def subscribed_symbols(self, token: str) -> list[str]:
        """Return the persisted subscription list for *token* (empty if unknown)."""
        ...

    @abstractmethod
    def set_subscriptions(self, token: str, symbols: list[str]) -> None:
        """Replace the persisted subscription list of the user owning *token*."""
        ...
