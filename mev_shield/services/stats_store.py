"""
Per-relay performance records on top of a KVStore.

Records live under `stats:{endpoint}` and expire after STATS_TTL_SECONDS
without a write (7 days by default). A missing, expired or unreadable record
reads as the zero record, so the router tolerates a cold start for any or all
relays.

record_attempt is a plain read-modify-write. Two requests folding into the
same endpoint concurrently can both read the old record; the later write
wins and one attempt is lost from the running average. The score built on
these records is a soft ordering signal, so no locking is done.
"""

from datetime import datetime
from typing import Dict, Iterable, Optional

import structlog
from pydantic import ValidationError

from mev_shield.schemas import PerformanceRecord
from mev_shield.services.kv_store import KVStore

logger = structlog.get_logger(__name__)

STATS_KEY_PREFIX = "stats:"
DEFAULT_STATS_TTL_SECONDS = 7 * 24 * 60 * 60


def stats_key(endpoint: str) -> str:
    return f"{STATS_KEY_PREFIX}{endpoint}"


class StatsStore:
    def __init__(self, kv: KVStore, ttl_seconds: int = DEFAULT_STATS_TTL_SECONDS):
        self.kv = kv
        self.ttl_seconds = ttl_seconds

    async def get(self, endpoint: str) -> PerformanceRecord:
        """Return the endpoint's record, or the zero record if there is none."""
        raw = await self.kv.get(stats_key(endpoint))
        if raw is None:
            return PerformanceRecord()
        try:
            return PerformanceRecord.model_validate(raw)
        except ValidationError as e:
            logger.warning("stats_record_unreadable", endpoint=endpoint, error=str(e))
            return PerformanceRecord()

    async def get_many(self, endpoints: Iterable[str]) -> Dict[str, PerformanceRecord]:
        return {endpoint: await self.get(endpoint) for endpoint in endpoints}

    async def put(
        self,
        endpoint: str,
        record: PerformanceRecord,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        """Persist the record and push its expiry forward."""
        await self.kv.put(
            stats_key(endpoint),
            record.model_dump(mode="json"),
            self.ttl_seconds if ttl_seconds is None else ttl_seconds,
        )

    async def record_attempt(
        self,
        endpoint: str,
        succeeded: bool,
        latency_ms: float,
        now: datetime,
    ) -> PerformanceRecord:
        record = await self.get(endpoint)
        updated = record.with_attempt(succeeded, latency_ms, now)
        await self.put(endpoint, updated)
        return updated
