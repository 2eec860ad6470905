"""
Test fixtures for mev-shield tests.

Provides an in-memory KV store, a scripted transport that records every
outbound call, and a fully wired RpcRouter using both.
"""

import asyncio
import copy
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from mev_shield.api.deps import get_rpc_router
from mev_shield.main import app
from mev_shield.models import KVEntry  # noqa: F401  (registers the table)
from mev_shield.services.dispatcher import Dispatcher
from mev_shield.services.kv_store import InMemoryKVStore
from mev_shield.services.networks import MAINNET, NetworkRegistry, RelayEndpoint
from mev_shield.services.rpc_router import RouterConfig, RpcRouter
from mev_shield.services.stats_store import StatsStore
from mev_shield.services.status_store import StatusStore

FIXED_NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

FLASHBOTS_URL = "https://relay.flashbots.test"
BLOXROUTE_URL = "https://relay.bloxroute.test"
EDEN_URL = "https://relay.eden.test"
MAINNET_READ_URL = "https://mainnet.read.test"
SEPOLIA_READ_URL = "https://sepolia.read.test"

RAW_TX = "0x02f8b10181c5"
TX_HASH = "0x" + "ab" * 32


@dataclass
class Slow:
    """Scripted response delivered after a delay."""

    delay: float
    response: Any


class FakeTransport:
    """
    Scripted HttpTransport.

    `responses` maps URL -> response. A response may be a JSON value, an
    exception instance (raised), a Slow wrapper, or a callable taking the
    request body and returning any of those.
    """

    def __init__(self, responses: Dict[str, Any] | None = None):
        self.responses: Dict[str, Any] = dict(responses or {})
        self.calls: List[Tuple[str, Any, float]] = []

    @property
    def urls(self) -> List[str]:
        return [url for url, _, _ in self.calls]

    async def post_json(self, url: str, body: Any, timeout: float) -> Any:
        self.calls.append((url, copy.deepcopy(body), timeout))
        response = self.responses.get(url)
        if callable(response) and not isinstance(response, BaseException):
            response = response(body)
        if isinstance(response, Slow):
            await asyncio.sleep(response.delay)
            response = response.response
        if isinstance(response, BaseException):
            raise response
        return copy.deepcopy(response)


class RecordingStatusStore(StatusStore):
    """StatusStore that also remembers what it saved."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.saved = []

    async def save(self, **kwargs):
        status = await super().save(**kwargs)
        self.saved.append(status)
        return status


def relay_ok(result: Any = TX_HASH) -> Callable[[Any], Dict[str, Any]]:
    return lambda body: {"jsonrpc": "2.0", "id": body.get("id"), "result": result}


def relay_rejects(message: str = "rejected") -> Callable[[Any], Dict[str, Any]]:
    return lambda body: {"jsonrpc": "2.0", "id": body.get("id"), "error": {"code": -32000, "message": message}}


@pytest.fixture
def relays() -> Tuple[RelayEndpoint, ...]:
    return (
        RelayEndpoint(name="flashbots", url=FLASHBOTS_URL),
        RelayEndpoint(name="bloxroute", url=BLOXROUTE_URL),
        RelayEndpoint(name="eden", url=EDEN_URL),
    )


@pytest.fixture
def kv_store() -> InMemoryKVStore:
    return InMemoryKVStore()


@pytest.fixture
def stats_store(kv_store) -> StatsStore:
    return StatsStore(kv_store)


@pytest.fixture
def status_store(kv_store) -> RecordingStatusStore:
    return RecordingStatusStore(kv_store, clock=lambda: FIXED_NOW)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def dispatcher(transport, stats_store) -> Dispatcher:
    return Dispatcher(transport, stats_store, clock=lambda: FIXED_NOW)


@pytest.fixture
def router_config(relays) -> RouterConfig:
    return RouterConfig(
        relays=relays,
        networks=NetworkRegistry.from_read_urls(
            {MAINNET: MAINNET_READ_URL, "sepolia": SEPOLIA_READ_URL}
        ),
        relay_timeout=0.2,
        read_timeout=0.2,
    )


@pytest.fixture
def rpc_router(router_config, dispatcher, transport, status_store) -> RpcRouter:
    return RpcRouter(router_config, dispatcher, transport, status_store)


@pytest.fixture
def client(rpc_router):
    """Test client bound to the fixture router (lifespan is not run)."""
    app.dependency_overrides[get_rpc_router] = lambda: rpc_router
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def test_engine():
    """In-memory SQLite engine with the kv_entry table."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
