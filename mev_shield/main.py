import asyncio
from contextlib import asynccontextmanager, suppress
from typing import Any, cast

from fastapi import Depends, FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mev_shield.api import rpc, status
from mev_shield.api.deps import get_rpc_router
from mev_shield.api.rpc import json_response
from mev_shield.core.config import Settings, settings
from mev_shield.core.errors import error_boundary, init_sentry
from mev_shield.core.logging_config import get_logger
from mev_shield.core.typing import utc_now
from mev_shield.middleware.context import RequestContextMiddleware
from mev_shield.middleware.cors import PermissiveCORSMiddleware
from mev_shield.schemas import RelayHealth, RelayHealthOut
from mev_shield.services.dispatcher import Dispatcher
from mev_shield.services.kv_store import InMemoryKVStore, KVStore, SqlKVStore
from mev_shield.services.rpc_router import RouterConfig, RpcRouter
from mev_shield.services.scoring import ScoringPolicy
from mev_shield.services.stats_store import StatsStore
from mev_shield.services.status_store import StatusStore
from mev_shield.services.transport import HttpTransport, HttpxTransport

logger = get_logger(__name__)


def build_kv_store(settings: Settings) -> KVStore:
    if settings.KV_BACKEND == "sql":
        from mev_shield.db import create_db_and_tables, engine

        create_db_and_tables(engine)
        return SqlKVStore(engine)
    if settings.KV_BACKEND != "memory":
        raise ValueError(f"Unknown KV_BACKEND: {settings.KV_BACKEND!r} (expected 'memory' or 'sql')")
    return InMemoryKVStore(maxsize=settings.KV_MEMORY_MAXSIZE)


def build_rpc_router(settings: Settings, kv: KVStore, transport: HttpTransport) -> RpcRouter:
    """Wire the router from settings; nothing below this reads the environment."""
    stats_store = StatsStore(kv, ttl_seconds=settings.STATS_TTL_SECONDS)
    dispatcher = Dispatcher(
        transport,
        stats_store,
        policy=ScoringPolicy(untried_score=settings.UNTRIED_ENDPOINT_SCORE),
    )
    return RpcRouter(
        RouterConfig.from_settings(settings),
        dispatcher,
        transport,
        StatusStore(kv, ttl_seconds=settings.STATUS_TTL_SECONDS),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_sentry(settings.SENTRY_DSN, environment=settings.ENVIRONMENT)

    kv = build_kv_store(settings)
    transport = HttpxTransport()
    app.state.rpc_router = build_rpc_router(settings, kv, transport)

    rpc_config = app.state.rpc_router.config
    logger.info(
        "service_starting",
        service=settings.SERVICE_NAME,
        kv_backend=settings.KV_BACKEND,
        relays=[relay.name for relay in rpc_config.relays],
        read_networks=[network.name for network in rpc_config.networks if network.read_url],
    )
    if not rpc_config.relays:
        logger.warning("no_private_relays_configured")

    purge_task = None
    if settings.KV_PURGE_INTERVAL_SECONDS > 0:
        interval = max(5, settings.KV_PURGE_INTERVAL_SECONDS)

        async def purge_expired():
            while True:
                await asyncio.sleep(interval)
                with error_boundary("kv_purge"):
                    await kv.purge_expired()

        purge_task = asyncio.create_task(purge_expired())

    try:
        yield
    finally:
        if purge_task:
            purge_task.cancel()
            with suppress(asyncio.CancelledError):
                await purge_task
        await transport.aclose()


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

app.add_middleware(cast(Any, RequestContextMiddleware))

# Outermost: answers every OPTIONS request before routing
app.add_middleware(
    cast(Any, PermissiveCORSMiddleware),
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(rpc.router, tags=["rpc"])
app.include_router(status.router, tags=["status"])


@app.exception_handler(StarletteHTTPException)
async def not_found_handler(request: Request, exc: StarletteHTTPException):
    """Unknown paths and methods get the plain-text 404 the status lookup uses."""
    if exc.status_code in (404, 405):
        return PlainTextResponse("Not found", status_code=404)
    return await http_exception_handler(request, exc)


@app.get("/")
def root():
    """Liveness probe."""
    return json_response({"ok": True, "name": settings.SERVICE_NAME, "time": utc_now().isoformat()})


@app.get("/health/relays", response_model=RelayHealthOut)
async def relay_health(rpc_router: RpcRouter = Depends(get_rpc_router)):
    """Configured relays in the order the next submission would try them."""
    scoreboard = await rpc_router.relay_scoreboard()
    return RelayHealthOut(
        time=utc_now(),
        relays=[
            RelayHealth(name=endpoint.name, rank=position, score=round(relay_score, 4), stats=record)
            for position, (endpoint, record, relay_score) in enumerate(scoreboard, start=1)
        ],
    )
