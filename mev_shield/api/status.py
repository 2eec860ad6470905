from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from mev_shield.api.deps import get_status_store
from mev_shield.api.rpc import json_response
from mev_shield.services.status_store import StatusStore

router = APIRouter()


@router.get("/status/{status_id}")
async def get_submission_status(status_id: str, status_store: StatusStore = Depends(get_status_store)):
    """Metadata for an accepted private submission (kept for 24h)."""
    record = await status_store.get(status_id)
    if record is None:
        return PlainTextResponse("Not found", status_code=404)
    return json_response(record.model_dump(mode="json"))
