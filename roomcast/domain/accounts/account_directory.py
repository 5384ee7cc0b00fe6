"""Account directory seen by the live subsystem.

The chat presence layer owns accounts; the live subsystem only reads them
through `AccountLookup`. `InMemoryAccountDirectory` is the single-process
implementation used by the server and tests.
"""

import threading
from typing import Protocol, runtime_checkable

from loguru import logger
from pydantic import BaseModel, Field


class Account(BaseModel):
    account_id: str
    token: str
    name: str = ""
    # Pseudonymous per-identity hash used for ignore relations
    ihash: str | None = None
    current_room: str | None = None
    alive: bool = True
    ignored_ihashes: set[str] = Field(default_factory=set)


@runtime_checkable
class AccountLookup(Protocol):
    def get_account(self, account_id: str) -> Account | None: ...

    def get_account_by_token(self, token: str) -> Account | None: ...

    def get_ihash(self, account_id: str) -> str | None: ...

    def is_ignored(self, account_id: str, ihash: str) -> bool: ...


class InMemoryAccountDirectory:
    """Thread-safe in-memory account store."""

    def __init__(self):
        self._accounts: dict[str, Account] = {}
        self._by_token: dict[str, str] = {}
        self._lock = threading.Lock()

    def register(self, account: Account) -> Account:
        with self._lock:
            previous = self._accounts.get(account.account_id)
            if previous is not None:
                self._by_token.pop(previous.token, None)
            self._accounts[account.account_id] = account.model_copy(deep=True)
            self._by_token[account.token] = account.account_id
        logger.debug("Registered account {}", account.account_id)
        return account

    def remove(self, account_id: str) -> None:
        with self._lock:
            account = self._accounts.pop(account_id, None)
            if account is not None:
                self._by_token.pop(account.token, None)

    def clear(self) -> None:
        with self._lock:
            self._accounts.clear()
            self._by_token.clear()

    def get_account(self, account_id: str) -> Account | None:
        with self._lock:
            account = self._accounts.get(account_id)
            return account.model_copy(deep=True) if account else None

    def get_account_by_token(self, token: str) -> Account | None:
        with self._lock:
            account_id = self._by_token.get(token)
            account = self._accounts.get(account_id) if account_id else None
            return account.model_copy(deep=True) if account else None

    def get_ihash(self, account_id: str) -> str | None:
        with self._lock:
            account = self._accounts.get(account_id)
            return account.ihash if account and account.ihash else None

    def is_ignored(self, account_id: str, ihash: str) -> bool:
        with self._lock:
            account = self._accounts.get(account_id)
            return bool(account and ihash in account.ignored_ihashes)

    def update_ignore(self, account_id: str, ihash: str, ignored: bool) -> None:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                return
            if ignored:
                account.ignored_ihashes.add(ihash)
            else:
                account.ignored_ihashes.discard(ihash)

    def move_room(self, account_id: str, room: str | None) -> None:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is not None:
                account.current_room = room

    def set_alive(self, account_id: str, alive: bool) -> None:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is not None:
                account.alive = alive
