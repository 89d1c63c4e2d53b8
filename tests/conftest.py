# tests/conftest.py

import json
import os
from typing import Optional

import pytest

from stock_relay.application.services.relay_context import build_relay_context
from stock_relay.domain.entities.symbol import Symbol
from stock_relay.domain.entities.user import User
from stock_relay.domain.errors import UserNotFoundError, UserStoreError
from stock_relay.domain.ports.client_connection_port import IClientConnection
from stock_relay.domain.ports.user_store_port import IUserStore

# (r - 0.5) * 0.03 == +0.01, i.e. every tick moves prices up by 1%
UP_ONE_PERCENT = 0.5 + 1 / 3

SEED_PRICES = {
    Symbol.GOOG: 150.0,
    Symbol.TSLA: 200.0,
    Symbol.AMZN: 120.0,
    Symbol.META: 180.0,
    Symbol.NVDA: 110.0,
}


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated, no I/O).")
    config.addinivalue_line("markers", "integration: Tests driving the FastAPI app.")


def pytest_collection_modifyitems(config, items):
    # auto-tag tests by folder so `-m unit|integration` works
    for item in items:
        path = str(item.fspath)
        if f"{os.sep}integration{os.sep}" in path:
            item.add_marker(pytest.mark.integration)
        elif f"{os.sep}unit{os.sep}" in path:
            item.add_marker(pytest.mark.unit)


# --- Test doubles ---

class SequenceRandom:
    """Stands in for random.Random: returns the given values in a cycle."""

    def __init__(self, *values: float):
        self._values = list(values)
        self._index = 0
        self.calls = 0

    def random(self) -> float:
        value = self._values[self._index % len(self._values)]
        self._index += 1
        self.calls += 1
        return value


class FakeConnection(IClientConnection):
    def __init__(self, connection_id: str, fail_send: bool = False, fail_accept: bool = False):
        self._connection_id = connection_id
        self.fail_send = fail_send
        self.fail_accept = fail_accept
        self.accepted = False
        self.closed: Optional[tuple[int, str]] = None
        self.sent: list[str] = []

    @property
    def connection_id(self) -> str:
        return self._connection_id

    def is_open(self) -> bool:
        return self.accepted and self.closed is None

    async def accept(self) -> None:
        if self.fail_accept:
            raise ConnectionResetError("peer went away during the handshake")
        self.accepted = True

    async def send_text(self, text: str) -> None:
        if self.fail_send:
            raise ConnectionResetError("peer went away")
        self.sent.append(text)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed = (code, reason)

    @property
    def messages(self) -> list[dict]:
        return [json.loads(t) for t in self.sent]

    @property
    def tickers(self) -> list[str]:
        return [m["ticker"] for m in self.messages]


class InMemoryUserStore(IUserStore):
    def __init__(self):
        self.users: list[User] = []
        self.fail_lookups = False
        self.fail_subscriptions = False

    def seed(self, email: str, token: str, subscribed=()) -> User:
        user = User(email=email, token=token, subscribed_stocks=list(subscribed))
        self.users.append(user)
        return user

    def all(self) -> list[User]:
        if self.fail_lookups:
            raise UserStoreError("store offline")
        return [User(u.email, u.token, list(u.subscribed_stocks)) for u in self.users]

    def find_by_token(self, token):
        return next((u for u in self.all() if u.token == token), None)

    def find_by_email(self, email):
        return next((u for u in self.all() if u.email == email), None)

    def add(self, user):
        self.users.append(user)

    def subscribed_symbols(self, token):
        if self.fail_subscriptions:
            raise UserStoreError("subscriptions offline")
        user = self.find_by_token(token)
        return list(user.subscribed_stocks) if user else []

    def set_subscriptions(self, token, symbols):
        for user in self.users:
            if user.token == token:
                user.subscribed_stocks = list(symbols)
                return
        raise UserNotFoundError("No user owns the given token.")


# --- Fixtures ---

@pytest.fixture
def user_store():
    return InMemoryUserStore()


@pytest.fixture
def make_connection():
    def _make(connection_id: str = "conn-1", fail_send: bool = False, fail_accept: bool = False) -> FakeConnection:
        return FakeConnection(connection_id, fail_send=fail_send, fail_accept=fail_accept)

    return _make


@pytest.fixture
def up_rng():
    return SequenceRandom(UP_ONE_PERCENT)


@pytest.fixture
def sequence_random():
    return SequenceRandom


@pytest.fixture
def seed_prices():
    return dict(SEED_PRICES)


@pytest.fixture
def relay(user_store, up_rng, seed_prices):
    """A relay context with fixed seeds where every tick adds 1%."""
    return build_relay_context(user_store, rng=up_rng, seed_prices=seed_prices)
