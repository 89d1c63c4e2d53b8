# tests/unit/test_use_cases.py

import random
import re

import pytest

from stock_relay.application.use_cases.get_price_history import GetPriceHistoryUseCase
from stock_relay.application.use_cases.get_recommendations import GetRecommendationsUseCase
from stock_relay.application.use_cases.login_user import LoginUserUseCase
from stock_relay.application.use_cases.manage_subscription import (
    SubscribeTickerUseCase,
    UnsubscribeTickerUseCase,
)
from stock_relay.application.use_cases.register_user import RegisterUserUseCase, generate_token
from stock_relay.domain.entities.symbol import Symbol
from stock_relay.domain.errors import (
    NotSubscribedError,
    UnauthorizedError,
    UnknownSymbolError,
    UserAlreadyExistsError,
    UserNotFoundError,
)


class TestRegisterAndLogin:
    def test_register_creates_user_without_subscriptions(self, user_store):
        user = RegisterUserUseCase(user_store).execute("  ann@example.com ")

        assert user.email == "ann@example.com"
        assert user.subscribed_stocks == []
        assert user_store.find_by_token(user.token).email == "ann@example.com"

    def test_tokens_are_prefixed_and_unique(self):
        tokens = {generate_token() for _ in range(100)}
        assert len(tokens) == 100
        assert all(re.fullmatch(r"token[0-9a-f]{16}", t) for t in tokens)

    def test_register_duplicate_email(self, user_store):
        user_store.seed("ann@example.com", "token-ann")
        with pytest.raises(UserAlreadyExistsError):
            RegisterUserUseCase(user_store).execute("ann@example.com")

    @pytest.mark.parametrize("email", ["", "   "])
    def test_register_blank_email(self, user_store, email):
        with pytest.raises(ValueError):
            RegisterUserUseCase(user_store).execute(email)

    def test_login_returns_existing_token(self, user_store):
        user_store.seed("ann@example.com", "token-ann", ["GOOG"])
        user = LoginUserUseCase(user_store).execute("ann@example.com")
        assert user.token == "token-ann"
        assert user.subscribed_stocks == ["GOOG"]

    def test_login_unknown_email(self, user_store):
        with pytest.raises(UserNotFoundError):
            LoginUserUseCase(user_store).execute("nobody@example.com")


class TestSubscribe:
    @pytest.fixture
    def subscribe(self, relay):
        return SubscribeTickerUseCase(relay.user_store, relay.lifecycle, relay.simulator)

    def test_subscribe_persists_and_returns_current_price(self, subscribe, user_store):
        user_store.seed("ann@example.com", "token-ann")

        price = subscribe.execute("token-ann", "goog")

        assert price == 150.0
        assert user_store.subscribed_symbols("token-ann") == ["GOOG"]

    def test_subscribing_twice_does_not_duplicate(self, subscribe, user_store):
        user_store.seed("ann@example.com", "token-ann", ["GOOG"])
        subscribe.execute("token-ann", "GOOG")
        assert user_store.subscribed_symbols("token-ann") == ["GOOG"]

    @pytest.mark.parametrize("token", ["", "token-nobody"])
    def test_subscribe_unauthorized(self, subscribe, token):
        with pytest.raises(UnauthorizedError):
            subscribe.execute(token, "GOOG")

    def test_subscribe_unknown_ticker(self, subscribe, user_store):
        user_store.seed("ann@example.com", "token-ann")
        with pytest.raises(UnknownSymbolError):
            subscribe.execute("token-ann", "AAPL")
        assert user_store.subscribed_symbols("token-ann") == []

    @pytest.mark.asyncio
    async def test_subscribe_updates_open_connections(self, subscribe, relay, user_store, make_connection):
        user_store.seed("ann@example.com", "token-ann")
        await relay.lifecycle.open(make_connection("ann"), "token-ann")

        subscribe.execute("token-ann", "META")

        assert relay.registry.symbols_for("ann") == {Symbol.META}


class TestUnsubscribe:
    @pytest.fixture
    def unsubscribe(self, relay):
        return UnsubscribeTickerUseCase(relay.user_store, relay.lifecycle)

    def test_unsubscribe_persists(self, unsubscribe, user_store):
        user_store.seed("ann@example.com", "token-ann", ["GOOG", "TSLA"])
        unsubscribe.execute("token-ann", "tsla")
        assert user_store.subscribed_symbols("token-ann") == ["GOOG"]

    def test_unsubscribe_not_subscribed(self, unsubscribe, user_store):
        user_store.seed("ann@example.com", "token-ann", ["GOOG"])
        with pytest.raises(NotSubscribedError):
            unsubscribe.execute("token-ann", "TSLA")

    def test_unsubscribe_unauthorized(self, unsubscribe):
        with pytest.raises(UnauthorizedError):
            unsubscribe.execute("token-nobody", "GOOG")

    def test_unsubscribe_stale_unsupported_ticker(self, unsubscribe, user_store):
        user_store.seed("ann@example.com", "token-ann", ["AAPL", "GOOG"])
        unsubscribe.execute("token-ann", "AAPL")
        assert user_store.subscribed_symbols("token-ann") == ["GOOG"]

    @pytest.mark.asyncio
    async def test_unsubscribe_updates_open_connections(self, unsubscribe, relay, user_store, make_connection):
        user_store.seed("ann@example.com", "token-ann", ["GOOG", "TSLA"])
        await relay.lifecycle.open(make_connection("ann"), "token-ann")

        unsubscribe.execute("token-ann", "GOOG")

        assert relay.registry.symbols_for("ann") == {Symbol.TSLA}


class TestHistoryAndRecommendations:
    def test_history(self, relay):
        history = GetPriceHistoryUseCase(relay.simulator).execute("nvda")
        assert history == [110.0] * 60

    def test_history_unknown_ticker(self, relay):
        with pytest.raises(UnknownSymbolError):
            GetPriceHistoryUseCase(relay.simulator).execute("AAPL")

    def test_recommendation_skips_subscribed_tickers(self, user_store):
        user_store.seed("ann@example.com", "token-ann", ["GOOG", "TSLA", "AMZN", "META"])
        use_case = GetRecommendationsUseCase(user_store, rng=random.Random(0))

        recs = use_case.execute("token-ann")

        assert len(recs) == 1
        assert recs[0].ticker == "NVDA"
        assert recs[0].signal_type == "BUY"
        assert "NVDA" in recs[0].reason

    def test_no_recommendation_when_everything_is_subscribed(self, user_store):
        user_store.seed("ann@example.com", "token-ann", [s.value for s in Symbol])
        assert GetRecommendationsUseCase(user_store).execute("token-ann") == []

    @pytest.mark.parametrize("token", [None, "token-nobody"])
    def test_anonymous_recommendation(self, user_store, token):
        recs = GetRecommendationsUseCase(user_store, rng=random.Random(1)).execute(token)
        assert len(recs) == 1
        assert recs[0].ticker in {s.value for s in Symbol}
