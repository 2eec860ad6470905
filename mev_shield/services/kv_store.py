"""
Key/value stores with per-entry expiry.

Two backends share one async contract:

- InMemoryKVStore: process-local TLRU cache, used for tests and single
  instance deployments.
- SqlKVStore: durable table (see models/kv_entry.py), shared by every
  instance pointed at the same database.

Values must be JSON-serializable. Neither backend offers read-modify-write
atomicity; callers that fold updates into a stored value accept that the
last writer wins.
"""

import json
import threading
import time
from datetime import timedelta
from functools import partial
from typing import Any, Callable, NamedTuple, Optional, Protocol

import anyio
import structlog
from cachetools import TLRUCache
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from mev_shield.core.typing import col, ensure_aware, utc_now
from mev_shield.models import KVEntry

logger = structlog.get_logger(__name__)


class KVStore(Protocol):
    async def get(self, key: str) -> Optional[Any]: ...

    async def put(self, key: str, value: Any, ttl_seconds: int) -> None: ...

    async def purge_expired(self) -> int: ...


class _CachedValue(NamedTuple):
    ttl_seconds: float
    payload: str  # JSON text, so callers never share mutable state with the cache


def _time_to_use(key: str, value: _CachedValue, now: float) -> float:
    return now + value.ttl_seconds


class InMemoryKVStore:
    """Thread-safe in-memory store; entries vanish once their TTL elapses."""

    def __init__(self, maxsize: int = 10000, timer: Callable[[], float] = time.monotonic):
        self._cache: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_time_to_use, timer=timer)
        self._lock = threading.Lock()

    async def get(self, key: str) -> Optional[Any]:
        with self._lock:
            cached = self._cache.get(key)
        if cached is None:
            return None
        return json.loads(cached.payload)

    async def put(self, key: str, value: Any, ttl_seconds: int) -> None:
        cached = _CachedValue(ttl_seconds=float(ttl_seconds), payload=json.dumps(value))
        with self._lock:
            self._cache[key] = cached

    async def purge_expired(self) -> int:
        with self._lock:
            return len(self._cache.expire())

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()


class SqlKVStore:
    """
    Durable store backed by the kv_entry table.

    SQLModel sessions are synchronous; each call runs in a worker thread so
    the event loop keeps serving other requests.
    """

    def __init__(self, engine: Engine, clock: Callable = utc_now):
        self.engine = engine
        self.clock = clock

    # -- sync implementations -------------------------------------------------

    def get_sync(self, key: str) -> Optional[Any]:
        with Session(self.engine) as session:
            entry = session.get(KVEntry, key)
            if entry is None:
                return None
            if ensure_aware(entry.expires_at) <= self.clock():
                session.delete(entry)
                session.commit()
                return None
            return entry.value

    def put_sync(self, key: str, value: Any, ttl_seconds: int) -> None:
        now = self.clock()
        expires_at = now + timedelta(seconds=ttl_seconds)
        with Session(self.engine) as session:
            entry = session.get(KVEntry, key)
            if entry is None:
                entry = KVEntry(key=key, value=value, expires_at=expires_at, updated_at=now)
            else:
                entry.value = value
                entry.expires_at = expires_at
                entry.updated_at = now
            session.add(entry)
            session.commit()

    def purge_expired_sync(self) -> int:
        with Session(self.engine) as session:
            expired = session.exec(
                select(KVEntry).where(col(KVEntry.expires_at) <= self.clock())
            ).all()
            for entry in expired:
                session.delete(entry)
            session.commit()
            return len(expired)

    # -- async contract -------------------------------------------------------

    async def get(self, key: str) -> Optional[Any]:
        return await anyio.to_thread.run_sync(partial(self.get_sync, key))

    async def put(self, key: str, value: Any, ttl_seconds: int) -> None:
        await anyio.to_thread.run_sync(partial(self.put_sync, key, value, ttl_seconds))

    async def purge_expired(self) -> int:
        removed = await anyio.to_thread.run_sync(self.purge_expired_sync)
        if removed:
            logger.info("kv_expired_purged", removed=removed)
        return removed
