"""
Storage backends for the bearer token used by :class:`OAuth2Auth`.

A token store only needs ``get`` and ``set``.  The in-memory store is
the default and lives as long as the client that owns it; pass the
same store to several clients to let them share one token.  The Redis
store keeps the token across process restarts.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Any, Optional


class TokenStorage(ABC):
    """Interface for objects that hold the current access token."""

    @abstractmethod
    def get(self) -> Optional[str]:
        """Return the stored token, or ``None`` if nothing was stored yet."""

    @abstractmethod
    def set(self, token: str) -> None:
        """Replace the stored token."""


class MemoryTokenStorage(TokenStorage):
    """Keep the token in process memory."""

    def __init__(self, token: Optional[str] = None) -> None:
        self._token = token
        self._lock = threading.Lock()

    def get(self) -> Optional[str]:
        with self._lock:
            return self._token

    def set(self, token: str) -> None:
        with self._lock:
            self._token = token


class RedisTokenStorage(TokenStorage):
    """Keep the token in a Redis-compatible key-value store.

    Parameters
    ----------
    db : object
        Any client exposing ``get(key)`` and ``set(key, value)``, such as
        ``redis.Redis``.  Single-key reads and writes are atomic on the
        server, which is all the client requires.
    key : str, optional
        The key under which the token is stored.
    """

    DEFAULT_KEY = "helpscout-client-token"

    def __init__(self, db: Any, key: str = DEFAULT_KEY) -> None:
        self._db = db
        self.key = key

    def get(self) -> Optional[str]:
        value = self._db.get(self.key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set(self, token: str) -> None:
        self._db.set(self.key, token)
