"""
Relay scoring and ranking.

score() blends three terms into [0, 1]:

    0.6 * success rate
  + 0.3 * response score  (1 at 0ms, linear down to 0 at 5s average latency)
  + 0.1 * recency score   (1 if used just now, linear down to 0 after 24h idle)

A relay with no recorded attempts scores `policy.untried_score` (0 by
default), so fresh or evicted relays are tried after every relay with a
history. Raise untried_score to make the router explore new relays first.

rank() is a stable descending sort: equal scores keep the configured order,
so identical stats always produce the identical order.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Mapping, Sequence

from mev_shield.core.typing import ensure_aware
from mev_shield.schemas import PerformanceRecord


@dataclass(frozen=True)
class ScoringPolicy:
    success_weight: float = 0.6
    latency_weight: float = 0.3
    recency_weight: float = 0.1
    latency_ceiling_ms: float = 5000.0
    recency_window_ms: float = 86_400_000.0  # 24h
    untried_score: float = 0.0


DEFAULT_POLICY = ScoringPolicy()


def score(
    record: PerformanceRecord,
    now: datetime,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> float:
    total = record.total_attempts
    if total == 0:
        return policy.untried_score

    success_rate = record.success_count / total
    response_score = max(0.0, 1.0 - record.avg_latency_ms / policy.latency_ceiling_ms)

    recency_score = 0.0
    if record.last_used_at is not None:
        idle_ms = (ensure_aware(now) - ensure_aware(record.last_used_at)).total_seconds() * 1000
        # Clamped at 1 so clock skew (last_used_at in the future) can't inflate it
        recency_score = min(1.0, max(0.0, 1.0 - idle_ms / policy.recency_window_ms))

    return (
        policy.success_weight * success_rate
        + policy.latency_weight * response_score
        + policy.recency_weight * recency_score
    )


def rank(
    candidates: Sequence[str],
    stats: Mapping[str, PerformanceRecord],
    now: datetime,
    policy: ScoringPolicy = DEFAULT_POLICY,
) -> List[str]:
    """Order candidates best-first; ties keep their input order."""
    zero = PerformanceRecord()
    return sorted(
        candidates,
        key=lambda endpoint: -score(stats.get(endpoint, zero), now, policy),
    )
