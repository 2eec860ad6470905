"""
JSON-RPC call router.

Each call moves through Received -> Validated -> Cascading (write) or
Forwarding (read) -> Completed | Failed. Write-class calls are validated and
handed to the Dispatcher with every configured relay; everything else is
forwarded to the single read upstream of the call's network.

handle_call never raises: validation errors, cascade exhaustion and
unexpected faults all come back as JSON-RPC error envelopes with the
caller's id echoed, so one bad call in a batch can't affect the others.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

import structlog

from mev_shield.core.config import Settings
from mev_shield.core.context import set_network
from mev_shield.core.errors import capture_exception, error_boundary
from mev_shield.services.dispatcher import Dispatcher
from mev_shield.services.jsonrpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    JSONRPC_VERSION,
    SERVER_ERROR,
    WRITE_METHODS,
    CascadeExhaustedError,
    RpcError,
    RpcValidationError,
    UpstreamError,
    is_hex_data,
    rpc_error,
    rpc_result,
)
from mev_shield.services.networks import MAINNET, NetworkRegistry, RelayEndpoint
from mev_shield.services.status_store import StatusStore
from mev_shield.services.transport import HttpTransport, TransportError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RouterConfig:
    relays: Tuple[RelayEndpoint, ...]
    networks: NetworkRegistry = field(default_factory=lambda: NetworkRegistry.from_read_urls({}))
    relay_timeout: float = 3.5
    read_timeout: float = 8.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "RouterConfig":
        """Build the router configuration; relays without a URL are skipped."""
        configured = [
            ("flashbots", settings.FLASHBOTS_RPC),
            ("bloxroute", settings.BLOX_PROTECT),
            ("eden", settings.EDEN_RPC),
        ]
        relays = []
        for name, url in configured:
            if not url:
                logger.warning("relay_not_configured", endpoint=name)
                continue
            relays.append(RelayEndpoint(name=name, url=url))

        networks = NetworkRegistry.from_read_urls(
            {
                MAINNET: settings.READ_RPC,
                "sepolia": settings.SEPOLIA_READ_RPC,
                "goerli": settings.GOERLI_READ_RPC,
                "holesky": settings.HOLESKY_READ_RPC,
            }
        )
        return cls(
            relays=tuple(relays),
            networks=networks,
            relay_timeout=settings.RELAY_TIMEOUT_SECONDS,
            read_timeout=settings.READ_TIMEOUT_SECONDS,
        )


class RpcRouter:
    def __init__(
        self,
        config: RouterConfig,
        dispatcher: Dispatcher,
        transport: HttpTransport,
        status_store: StatusStore,
    ):
        self.config = config
        self.dispatcher = dispatcher
        self.transport = transport
        self.status_store = status_store

    async def relay_scoreboard(self):
        return await self.dispatcher.scoreboard(self.config.relays)

    async def handle_payload(self, body: Any, network: str = MAINNET) -> Any:
        """Handle a single call or a batch; batch results keep input order."""
        if isinstance(body, list):
            return list(await asyncio.gather(*(self.handle_call(call, network) for call in body)))
        return await self.handle_call(body, network)

    async def handle_call(self, call: Any, network: str = MAINNET) -> Any:
        rpc_id = call.get("id") if isinstance(call, dict) else None
        method = str((call.get("method") if isinstance(call, dict) else None) or "")
        raw_params = call.get("params") if isinstance(call, dict) else None
        params: List[Any] = raw_params if isinstance(raw_params, list) else []

        set_network(network)
        log = logger.bind(method=method, network=network)

        try:
            if method in WRITE_METHODS:
                response = await self._submit_private(rpc_id, method, params, network)
                path = "cascading"
            else:
                response = await self._forward_read(rpc_id, method, params, network)
                path = "forwarding"
        except RpcError as e:
            log.info(
                "rpc_call_failed",
                state="failed",
                reason=e.reason,
                code=e.code,
                message=e.message,
                **e.log_context(),
            )
            return rpc_error(rpc_id, e.code, e.message)
        except Exception as e:
            capture_exception(
                e,
                context={"method": method, "network": network, "state": "failed", "reason": "internal"},
            )
            return rpc_error(rpc_id, INTERNAL_ERROR, f"internal_error: {str(e) or type(e).__name__}")

        log.info("rpc_call_completed", state="completed", path=path)
        return response

    def validate_write(self, method: str, params: List[Any], network: str) -> str:
        """Return the raw transaction, or raise before any I/O happens."""
        target = self.config.networks.get(network)
        if target is None or not target.supports_relays:
            raise RpcValidationError(SERVER_ERROR, "private_relays_only_supported_on_mainnet")

        raw_tx = params[0] if params else None
        if not is_hex_data(raw_tx):
            raise RpcValidationError(INVALID_PARAMS, f"{method} expects hex rawTx")
        return raw_tx

    async def _submit_private(self, rpc_id: Any, method: str, params: List[Any], network: str) -> Dict[str, Any]:
        raw_tx = self.validate_write(method, params, network)
        payload = {"jsonrpc": JSONRPC_VERSION, "id": rpc_id, "method": method, "params": [raw_tx]}

        cascade = await self.dispatcher.submit(payload, self.config.relays, self.config.relay_timeout)
        if cascade.outcome is None:
            raise CascadeExhaustedError(cascade.exhausted)

        outcome = cascade.outcome
        # The relay already accepted the transaction; a lost status record must not turn that into an error
        with error_boundary("save_submission_status", via=outcome.endpoint):
            status = await self.status_store.save(
                method=method, tx_hash=outcome.result, via=outcome.endpoint, network=network
            )
            logger.info("submission_status_saved", status_id=status.id, via=outcome.endpoint)

        return rpc_result(rpc_id, outcome.result)

    async def _forward_read(self, rpc_id: Any, method: str, params: List[Any], network: str) -> Any:
        target = self.config.networks.get(network)
        if target is None or not target.read_url:
            raise RpcValidationError(SERVER_ERROR, "unsupported_network")

        request_body = {"jsonrpc": JSONRPC_VERSION, "id": rpc_id, "method": method, "params": params}
        try:
            body = await asyncio.wait_for(
                self.transport.post_json(target.read_url, request_body, self.config.read_timeout),
                timeout=self.config.read_timeout,
            )
        except asyncio.TimeoutError as e:
            raise TransportError(f"timed out after {self.config.read_timeout}s", timed_out=True) from e

        if body is None:
            raise UpstreamError()
        if isinstance(body, dict):
            # Wallets match responses by id; upstreams don't always preserve it
            body["id"] = rpc_id
        return body
