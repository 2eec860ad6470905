"""Submission status records for accepted private transactions."""

import uuid
from typing import Any, Callable, Optional

import structlog
from pydantic import ValidationError

from mev_shield.core.typing import epoch_ms, utc_now
from mev_shield.schemas import SubmissionStatus
from mev_shield.services.kv_store import KVStore

logger = structlog.get_logger(__name__)

STATUS_KEY_PREFIX = "tx:"
DEFAULT_STATUS_TTL_SECONDS = 24 * 60 * 60


def status_key(status_id: str) -> str:
    return f"{STATUS_KEY_PREFIX}{status_id}"


class StatusStore:
    def __init__(
        self,
        kv: KVStore,
        ttl_seconds: int = DEFAULT_STATUS_TTL_SECONDS,
        clock: Callable = utc_now,
    ):
        self.kv = kv
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    async def save(self, *, method: str, tx_hash: Any, via: str, network: str) -> SubmissionStatus:
        status = SubmissionStatus(
            id=str(uuid.uuid4()),
            method=method,
            hash=tx_hash,
            via=via,
            ts=epoch_ms(self.clock()),
            network=network,
        )
        await self.kv.put(status_key(status.id), status.model_dump(mode="json"), self.ttl_seconds)
        return status

    async def get(self, status_id: str) -> Optional[SubmissionStatus]:
        raw = await self.kv.get(status_key(status_id))
        if raw is None:
            return None
        try:
            return SubmissionStatus.model_validate(raw)
        except ValidationError as e:
            logger.warning("status_record_unreadable", status_id=status_id, error=str(e))
            return None
