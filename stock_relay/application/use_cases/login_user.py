"""
Use-case: log an existing user in by email.
Depends only on Domain ports and entities, no infrastructure imports.
"""

from stock_relay.domain.entities.user import User
from stock_relay.domain.errors import UserNotFoundError
from stock_relay.domain.ports.user_store_port import IUserStore


class LoginUserUseCase:
    def __init__(self, user_store: IUserStore) -> None:
        self._user_store = user_store

    def execute(self, email: str) -> User:
        """Return the stored user (and its token) for *email*.

        Raises:
            UserNotFoundError: if nobody registered with *email*.
        """
        user = self._user_store.find_by_email((email or "").strip())
        if user is None:
            raise UserNotFoundError("User not found. Please register.")
        return user
