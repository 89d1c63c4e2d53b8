"""
Infrastructure adapter: flat JSON file -> IUserStore.

The whole file is read on every call and rewritten on every change.  There
is no locking and no transaction; concurrent writers may lose updates.
Record layout: {"email": ..., "token": ..., "subscribedStocks": [...]}.
"""

import json
import logging
import os
from typing import Optional

from stock_relay.domain.entities.user import User
from stock_relay.domain.errors import UserNotFoundError, UserStoreError
from stock_relay.domain.ports.user_store_port import IUserStore

logger = logging.getLogger(__name__)


class JsonUserStore(IUserStore):
    """Users persisted as a pretty-printed JSON array."""

    def __init__(self, path: str) -> None:
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    # ------------------------------------------------------------------
    # IUserStore interface
    # ------------------------------------------------------------------

    def all(self) -> list[User]:
        return [self._from_record(r) for r in self._load()]

    def find_by_token(self, token: str) -> Optional[User]:
        return next((u for u in self.all() if u.token == token), None)

    def find_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self.all() if u.email == email), None)

    def add(self, user: User) -> None:
        records = self._load()
        records.append(self._to_record(user))
        self._save(records)

    def subscribed_symbols(self, token: str) -> list[str]:
        user = self.find_by_token(token)
        return list(user.subscribed_stocks) if user else []

    def set_subscriptions(self, token: str, symbols: list[str]) -> None:
        records = self._load()
        for record in records:
            if record.get("token") == token:
                record["subscribedStocks"] = list(symbols)
                break
        else:
            raise UserNotFoundError("No user owns the given token.")
        self._save(records)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _load(self) -> list[dict]:
        try:
            if not os.path.exists(self._path):
                os.makedirs(os.path.dirname(self._path) or ".", exist_ok=True)
                with open(self._path, "w", encoding="utf-8") as fh:
                    fh.write("[]")
                return []
            with open(self._path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Error loading %s: %s", self._path, exc)
            raise UserStoreError(f"Cannot read user store {self._path!r}: {exc}") from exc

        if not isinstance(data, list):
            raise UserStoreError(f"User store {self._path!r} does not hold a JSON array")
        return data

    def _save(self, records: list[dict]) -> None:
        try:
            with open(self._path, "w", encoding="utf-8") as fh:
                json.dump(records, fh, indent=4)
        except OSError as exc:
            logger.error("Error saving %s: %s", self._path, exc)
            raise UserStoreError(f"Cannot write user store {self._path!r}: {exc}") from exc

    @staticmethod
    def _to_record(user: User) -> dict:
        return {
            "email": user.email,
            "token": user.token,
            "subscribedStocks": list(user.subscribed_stocks),
        }

    @staticmethod
    def _from_record(record: dict) -> User:
        return User(
            email=record.get("email", ""),
            token=record.get("token", ""),
            subscribed_stocks=list(record.get("subscribedStocks") or []),
        )
