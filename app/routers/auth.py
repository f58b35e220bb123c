import os
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from app.dependencies import create_session_token, get_planner, SESSION_COOKIE, SESSION_MAX_AGE
from app.schemas import LoginRequest
from meal_sync.core.app_state import AppState

router = APIRouter(tags=["auth"])


def _app_password() -> str:
    """Read APP_PASSWORD at call time so tests can set it via env."""
    return os.environ.get("APP_PASSWORD", "")


@router.post("/login")
async def login(body: LoginRequest, planner: AppState = Depends(get_planner)):
    if not body.password or body.password != _app_password():
        raise HTTPException(status_code=401, detail="Invalid password")
    # Sign-in is an auth-state change: reconcile for this owner
    await planner.on_auth_change(body.user_id)
    resp = JSONResponse({"owner": planner.owner, "sync": planner.get_sync_status().state})
    resp.set_cookie(
        SESSION_COOKIE,
        create_session_token(body.user_id),
        httponly=True,
        samesite="lax",
        max_age=SESSION_MAX_AGE,
    )
    return resp


@router.post("/logout")
async def logout(planner: AppState = Depends(get_planner)):
    await planner.on_auth_change(None)
    resp = JSONResponse({"owner": planner.owner})
    resp.delete_cookie(SESSION_COOKIE)
    return resp
