"""
Usage counters behind a small store interface.

Request handlers never touch process globals for counting; they receive a
``UsageStore`` (SQL-backed in the app, in-memory in tests) and a
``RateLimiter`` that buckets hits per client per window.
"""

from __future__ import annotations
import threading
import time
from typing import Callable, Dict, Optional, Protocol

from sqlalchemy.orm import Session

from .errors import RateLimitError
from .models import UsageCounter


class UsageStore(Protocol):
    def get(self, key: str) -> int:
        ...

    def increment(self, key: str, amount: int = 1) -> int:
        ...


class MemoryUsageStore:
    def __init__(self) -> None:
        self._counts: Dict[str, int] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> int:
        with self._lock:
            return self._counts.get(key, 0)

    def increment(self, key: str, amount: int = 1) -> int:
        with self._lock:
            self._counts[key] = self._counts.get(key, 0) + amount
            return self._counts[key]


class SqlUsageStore:
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def get(self, key: str) -> int:
        db = self._session_factory()
        try:
            row = db.get(UsageCounter, key)
            return int(row.count) if row else 0
        finally:
            db.close()

    def increment(self, key: str, amount: int = 1) -> int:
        db = self._session_factory()
        try:
            row = db.get(UsageCounter, key)
            if row is None:
                row = UsageCounter(key=key, count=amount)
                db.add(row)
            else:
                row.count = int(row.count) + amount
            db.commit()
            return int(row.count)
        finally:
            db.close()


class RateLimiter:
    def __init__(self, store: UsageStore, limit: int, *, window_seconds: int = 60, scope: str = "generate") -> None:
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds
        self.scope = scope

    def key_for(self, client: str, now: Optional[float] = None) -> str:
        window = int((time.time() if now is None else now) // self.window_seconds)
        return f"{self.scope}:{client}:{window}"

    def hit(self, client: str, now: Optional[float] = None) -> int:
        """Count one request; raise RateLimitError past the limit. Returns remaining."""
        if self.limit <= 0:
            return 0
        count = self.store.increment(self.key_for(client, now))
        if count > self.limit:
            raise RateLimitError()
        return self.limit - count
