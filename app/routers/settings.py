from fastapi import APIRouter, Depends

from app.dependencies import get_planner
from app.schemas import RemoteConfigIn
from meal_sync.core.app_state import AppState

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/sync")
def sync_status(planner: AppState = Depends(get_planner)):
    report = planner.get_sync_status()
    return {
        "state": report.state,
        "detail": report.detail,
        "remote_configured": planner.remote is not None,
        "persistent": planner.store.available,
    }


@router.post("/sync/retry")
async def sync_retry(planner: AppState = Depends(get_planner)):
    committed = await planner.reconcile()
    return {"committed": committed, "state": planner.get_sync_status().state}


@router.post("/remote")
async def remote_save(body: RemoteConfigIn, planner: AppState = Depends(get_planner)):
    report = await planner.configure_remote(body.endpoint, body.credential)
    return {"state": report.state, "detail": report.detail}
