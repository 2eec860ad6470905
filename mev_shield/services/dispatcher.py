"""
Ranked relay cascade.

Candidates are tried one at a time, best score first. Each attempt gets its
own timeout; an attempt that hits it is abandoned, not retried. After every
attempt (successful or not) the relay's performance record is updated
before the next candidate is tried. The first relay whose `result` is set ends
the cascade; null, false, 0 and "" count as not set, empty objects and
arrays do not.

Latency is the measured round-trip when a response came back. Attempts that
timed out or never connected are recorded with 0ms (see DESIGN.md).

Failure is detected from the response alone; there is no idempotency key.
A relay that accepts the transaction just after its timeout fires means a
second relay may accept it too.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Tuple

import structlog

from mev_shield.core.errors import error_boundary
from mev_shield.core.typing import utc_now
from mev_shield.schemas import PerformanceRecord
from mev_shield.services.networks import RelayEndpoint
from mev_shield.services.scoring import DEFAULT_POLICY, ScoringPolicy, rank, score
from mev_shield.services.stats_store import StatsStore
from mev_shield.services.transport import HttpTransport, MalformedResponseError, TransportError

logger = structlog.get_logger(__name__)


@dataclass
class SubmissionOutcome:
    endpoint: str
    succeeded: bool
    latency_ms: float
    result: Any = None
    error: Optional[str] = None


@dataclass
class CascadeResult:
    outcome: Optional[SubmissionOutcome]  # First success, None when exhausted
    attempts: List[SubmissionOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.outcome is not None

    @property
    def exhausted(self) -> int:
        """Number of candidates that were tried and failed."""
        return sum(1 for attempt in self.attempts if not attempt.succeeded)


def _is_accepted(result: Any) -> bool:
    # 0 and 0.0 compare equal to False
    return result not in (None, False, "")


def _describe_failure(body: Any) -> str:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return str(error.get("message") or error.get("code") or "relay error")
        if error:
            return str(error)
        return "empty result"
    return f"unexpected response type {type(body).__name__}"


class Dispatcher:
    def __init__(
        self,
        transport: HttpTransport,
        stats_store: StatsStore,
        policy: ScoringPolicy = DEFAULT_POLICY,
        clock: Callable = utc_now,
    ):
        self.transport = transport
        self.stats_store = stats_store
        self.policy = policy
        self.clock = clock

    async def scoreboard(
        self, candidates: Sequence[RelayEndpoint]
    ) -> List[Tuple[RelayEndpoint, PerformanceRecord, float]]:
        """Candidates in ranked order with their records and current scores."""
        names = [candidate.name for candidate in candidates]
        stats = await self.stats_store.get_many(names)
        now = self.clock()
        by_name = {candidate.name: candidate for candidate in candidates}
        return [
            (by_name[name], stats[name], score(stats[name], now, self.policy))
            for name in rank(names, stats, now, self.policy)
        ]

    async def rank(self, candidates: Sequence[RelayEndpoint]) -> List[RelayEndpoint]:
        return [endpoint for endpoint, _, _ in await self.scoreboard(candidates)]

    async def submit(
        self,
        payload: Any,
        candidates: Sequence[RelayEndpoint],
        timeout: float,
    ) -> CascadeResult:
        """Rank the candidates, then run the cascade over them."""
        ranked = await self.rank(candidates)
        logger.debug("relay_ranking", order=[endpoint.name for endpoint in ranked])
        return await self.dispatch(payload, ranked, timeout)

    async def dispatch(
        self,
        payload: Any,
        ranked_candidates: Sequence[RelayEndpoint],
        timeout: float,
    ) -> CascadeResult:
        attempts: List[SubmissionOutcome] = []

        for endpoint in ranked_candidates:
            outcome = await self._attempt(endpoint, payload, timeout)
            attempts.append(outcome)

            # Stats are best-effort: a store outage must not sink the submission
            with error_boundary("record_relay_attempt", endpoint=endpoint.name):
                await self.stats_store.record_attempt(
                    endpoint.name, outcome.succeeded, outcome.latency_ms, self.clock()
                )

            logger.info(
                "relay_attempt",
                endpoint=endpoint.name,
                attempt=len(attempts),
                succeeded=outcome.succeeded,
                latency_ms=round(outcome.latency_ms, 1),
                error=outcome.error,
            )
            if outcome.succeeded:
                return CascadeResult(outcome=outcome, attempts=attempts)

        logger.warning("cascade_exhausted", exhausted=len(attempts))
        return CascadeResult(outcome=None, attempts=attempts)

    async def _attempt(self, endpoint: RelayEndpoint, payload: Any, timeout: float) -> SubmissionOutcome:
        started = time.perf_counter()
        try:
            body = await asyncio.wait_for(
                self.transport.post_json(endpoint.url, payload, timeout),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            return SubmissionOutcome(endpoint.name, False, 0.0, error=f"timed out after {timeout}s")
        except TransportError as e:
            return SubmissionOutcome(endpoint.name, False, 0.0, error=str(e))
        except MalformedResponseError as e:
            latency_ms = (time.perf_counter() - started) * 1000
            return SubmissionOutcome(endpoint.name, False, latency_ms, error=str(e))

        latency_ms = (time.perf_counter() - started) * 1000
        result = body.get("result") if isinstance(body, dict) else None
        if _is_accepted(result):
            return SubmissionOutcome(endpoint.name, True, latency_ms, result=result)
        return SubmissionOutcome(endpoint.name, False, latency_ms, error=_describe_failure(body))
