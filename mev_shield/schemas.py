from typing import Any, List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from mev_shield.core.typing import ensure_aware


class PerformanceRecord(BaseModel):
    """Running statistics for one relay endpoint."""

    success_count: int = Field(default=0, ge=0)
    failure_count: int = Field(default=0, ge=0)
    avg_latency_ms: float = 0.0  # Running mean over every attempt
    last_used_at: Optional[datetime] = None

    @property
    def total_attempts(self) -> int:
        return self.success_count + self.failure_count

    def with_attempt(self, succeeded: bool, latency_ms: float, now: datetime) -> "PerformanceRecord":
        """Fold one attempt into a new record."""
        total = self.total_attempts
        return PerformanceRecord(
            success_count=self.success_count + (1 if succeeded else 0),
            failure_count=self.failure_count + (0 if succeeded else 1),
            avg_latency_ms=(self.avg_latency_ms * total + latency_ms) / (total + 1),
            last_used_at=ensure_aware(now),
        )


class SubmissionStatus(BaseModel):
    """Metadata persisted for each accepted private submission."""

    id: str
    method: str
    hash: Any  # Relay result, normally the transaction hash
    via: str  # Relay endpoint name
    ts: int  # Epoch milliseconds
    network: str


class RelayHealth(BaseModel):
    name: str
    rank: int
    score: float
    stats: PerformanceRecord


class RelayHealthOut(BaseModel):
    time: datetime
    relays: List[RelayHealth]
