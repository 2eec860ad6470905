from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from mev_shield.api.deps import get_rpc_router
from mev_shield.services.networks import MAINNET
from mev_shield.services.rpc_router import RpcRouter

router = APIRouter()

CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}


def json_response(content: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, headers=CORS_HEADERS)


async def _read_rpc_body(request: Request) -> Optional[Any]:
    """Parsed body if it is a JSON object or array, else None."""
    try:
        body = await request.json()
    except ValueError:
        return None
    if isinstance(body, (dict, list)):
        return body
    return None


async def _handle(request: Request, rpc_router: RpcRouter, network: str) -> JSONResponse:
    body = await _read_rpc_body(request)
    if body is None:
        return json_response({"error": "invalid_json"}, status_code=400)
    return json_response(await rpc_router.handle_payload(body, network))


@router.post("/rpc")
async def rpc_mainnet(request: Request, rpc_router: RpcRouter = Depends(get_rpc_router)):
    """JSON-RPC call or batch against mainnet; writes go through the private relays."""
    return await _handle(request, rpc_router, MAINNET)


@router.post("/rpc/{network}")
async def rpc_testnet(network: str, request: Request, rpc_router: RpcRouter = Depends(get_rpc_router)):
    """JSON-RPC call or batch against a testnet (read-only)."""
    if not rpc_router.config.networks.is_testnet(network):
        return json_response({"error": "unsupported_testnet"}, status_code=400)
    return await _handle(request, rpc_router, network)
