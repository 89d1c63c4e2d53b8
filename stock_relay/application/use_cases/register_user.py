"""
Use-case: register a new relay user by email.
Depends only on Domain ports and entities, no infrastructure imports.

Tokens are "token" followed by 16 hex characters from the secrets module.
They never expire and are not a security boundary.
"""

import secrets

from stock_relay.domain.entities.user import User
from stock_relay.domain.errors import UserAlreadyExistsError
from stock_relay.domain.ports.user_store_port import IUserStore

TOKEN_PREFIX = "token"


def generate_token() -> str:
    return TOKEN_PREFIX + secrets.token_hex(8)


class RegisterUserUseCase:
    def __init__(self, user_store: IUserStore) -> None:
        self._user_store = user_store

    def execute(self, email: str) -> User:
        """Create and persist a user with a fresh token and no subscriptions.

        Raises:
            ValueError: if *email* is blank.
            UserAlreadyExistsError: if a user with *email* already exists.
            UserStoreError: propagated from the store on I/O failure.
        """
        if not email or not email.strip():
            raise ValueError("email must be a non-empty string")
        email = email.strip()
        if self._user_store.find_by_email(email) is not None:
            raise UserAlreadyExistsError("User already exists.")

        user = User(email=email, token=generate_token(), subscribed_stocks=[])
        self._user_store.add(user)
        return user
