from fastapi import Depends, HTTPException, Request, status

from mev_shield.services.rpc_router import RpcRouter
from mev_shield.services.status_store import StatusStore


def get_rpc_router(request: Request) -> RpcRouter:
    """The router built at startup (see main.lifespan)."""
    rpc_router = getattr(request.app.state, "rpc_router", None)
    if rpc_router is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Router not initialized")
    return rpc_router


def get_status_store(rpc_router: RpcRouter = Depends(get_rpc_router)) -> StatusStore:
    return rpc_router.status_store
