"""
Application service: connection lifecycle (CONNECTING -> AUTHENTICATED -> ACTIVE -> CLOSED).

Validates the token a client connects with, seeds the subscription registry
from the user's persisted list, and removes the registry entry again when
the transport closes.  The manager is the only owner of live connection
references; the registry and dispatcher see connection ids.

Store lookups run on a worker thread so a handshake never blocks the event
loop.  Seeding a new connection and syncing a subscription change hold the
same admission lock, so a change persisted while a client is connecting
reaches that client either through the persisted read or through the sync.

Seeding policy: if the persisted subscription list cannot be loaded
(UserStoreError) the connection still becomes ACTIVE with an empty set and a
warning is logged.  Persisted tickers that are no longer supported are
dropped with a warning.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from stock_relay.application.services.subscription_registry import SubscriptionRegistry
from stock_relay.domain.entities.symbol import Symbol, parse_symbol
from stock_relay.domain.errors import (
    DuplicateConnectionError,
    UnknownConnectionError,
    UnknownSymbolError,
    UserStoreError,
)
from stock_relay.domain.ports.client_connection_port import IClientConnection
from stock_relay.domain.ports.user_store_port import IUserStore

logger = logging.getLogger(__name__)

POLICY_VIOLATION = 1008
INTERNAL_ERROR = 1011

TOKEN_REQUIRED = "token required"
INVALID_TOKEN = "invalid token"
STORE_UNAVAILABLE = "user store unavailable"
DUPLICATE_CONNECTION = "duplicate connection"
UNREACHABLE = "unreachable"


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass
class ConnectionSession:
    connection_id: str
    state: ConnectionState = ConnectionState.CONNECTING
    token: Optional[str] = None
    email: Optional[str] = None
    close_reason: Optional[str] = None


class ConnectionLifecycleManager:
    def __init__(self, user_store: IUserStore, registry: SubscriptionRegistry) -> None:
        self._user_store = user_store
        self._registry = registry
        self._lock = threading.Lock()
        self._admission_lock = threading.Lock()
        self._connections: dict[str, IClientConnection] = {}
        self._sessions: dict[str, ConnectionSession] = {}
        self._unreachable: set[str] = set()

    async def open(self, connection: IClientConnection, token: Optional[str]) -> ConnectionSession:
        """Authenticate *connection* and, on success, register it as ACTIVE.

        Rejected connections are accepted and immediately closed with a
        policy-violation code so the client sees the reason.  The returned
        session is CLOSED in that case.
        """
        session = ConnectionSession(connection_id=connection.connection_id)

        if not token or not token.strip():
            await self._reject(connection, session, TOKEN_REQUIRED)
            return session

        try:
            user = await asyncio.to_thread(self._user_store.find_by_token, token)
        except UserStoreError:
            logger.exception("User store lookup failed for connection %s", session.connection_id)
            await self._reject(connection, session, STORE_UNAVAILABLE, code=INTERNAL_ERROR)
            return session

        if user is None:
            await self._reject(connection, session, INVALID_TOKEN)
            return session

        session.state = ConnectionState.AUTHENTICATED
        session.token = token
        session.email = user.email

        try:
            symbols = await asyncio.to_thread(self._admit, connection, session)
        except DuplicateConnectionError:
            logger.warning("Connection %s is already registered; rejecting", session.connection_id)
            await self._reject(connection, session, DUPLICATE_CONNECTION)
            return session

        try:
            await connection.accept()
        except Exception:
            self.close(session.connection_id)
            raise

        session.state = ConnectionState.ACTIVE
        logger.info(
            "Client connected: %s (%s) subscribed to %s",
            user.email,
            session.connection_id,
            ", ".join(sorted(s.value for s in symbols)) or "nothing",
        )
        return session

    def close(self, connection_id: str) -> None:
        """Drop the connection and its registry entry. Safe to call repeatedly."""
        with self._lock:
            self._connections.pop(connection_id, None)
            session = self._sessions.pop(connection_id, None)
            self._unreachable.discard(connection_id)
        self._registry.unregister(connection_id)
        if session is not None and session.state is not ConnectionState.CLOSED:
            session.state = ConnectionState.CLOSED
            logger.info("Client disconnected: %s (%s)", session.email, connection_id)

    def connection(self, connection_id: str) -> Optional[IClientConnection]:
        with self._lock:
            return self._connections.get(connection_id)

    def session(self, connection_id: str) -> Optional[ConnectionSession]:
        with self._lock:
            return self._sessions.get(connection_id)

    def connections_for_token(self, token: str) -> list[str]:
        with self._lock:
            return [cid for cid, s in self._sessions.items() if s.token == token]

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._connections)

    def sync_subscription(self, token: str, symbol: Symbol | str, subscribed: bool) -> None:
        """Apply a persisted subscription change to every open connection of *token*.

        Blocks while a connection is being admitted, so a connection whose
        persisted read missed the change is already visible here.
        """
        with self._admission_lock:
            for connection_id in self.connections_for_token(token):
                try:
                    if subscribed:
                        self._registry.add_symbol(connection_id, symbol)
                    else:
                        self._registry.remove_symbol(connection_id, symbol)
                except UnknownConnectionError:
                    # closed between the lookup and the update
                    logger.warning("Subscription sync skipped for unregistered connection %s", connection_id)

    def mark_unreachable(self, connection_id: str) -> None:
        with self._lock:
            if connection_id in self._connections:
                self._unreachable.add(connection_id)

    async def reap_unreachable(self) -> int:
        """Close every connection marked unreachable since the last call."""
        with self._lock:
            pending, self._unreachable = self._unreachable, set()

        for connection_id in pending:
            connection = self.connection(connection_id)
            if connection is not None and connection.is_open():
                try:
                    await connection.close(INTERNAL_ERROR, UNREACHABLE)
                except Exception as exc:
                    logger.warning("Closing unreachable connection %s failed: %s", connection_id, exc)
            self.close(connection_id)
        return len(pending)

    def _admit(self, connection: IClientConnection, session: ConnectionSession) -> set[Symbol]:
        with self._admission_lock:
            symbols = self._initial_symbols(session.token)
            self._registry.register(session.connection_id, symbols)
            with self._lock:
                self._connections[session.connection_id] = connection
                self._sessions[session.connection_id] = session
        return symbols

    def _initial_symbols(self, token: str) -> set[Symbol]:
        try:
            persisted = self._user_store.subscribed_symbols(token)
        except UserStoreError as exc:
            logger.warning("Subscriptions unavailable for token, starting with none: %s", exc)
            return set()

        symbols: set[Symbol] = set()
        for raw in persisted:
            try:
                symbols.add(parse_symbol(raw))
            except UnknownSymbolError:
                logger.warning("Ignoring unsupported persisted ticker %r", raw)
        return symbols

    async def _reject(
        self,
        connection: IClientConnection,
        session: ConnectionSession,
        reason: str,
        code: int = POLICY_VIOLATION,
    ) -> None:
        logger.warning("Rejecting connection %s: %s", session.connection_id, reason)
        session.state = ConnectionState.CLOSED
        session.close_reason = reason
        try:
            await connection.accept()
            await connection.close(code, reason)
        except Exception as exc:
            logger.info("Connection %s went away before it was rejected: %s", session.connection_id, exc)
