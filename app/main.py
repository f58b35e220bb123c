import logging
import os
from contextlib import asynccontextmanager
from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from meal_sync.core.app_state import AppState
from meal_sync.db.local_store import LocalStore
from app.dependencies import verify_session_token, is_public, SESSION_COOKIE
from app.routers import auth, recipes, meal_plan, water, shopping, settings

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    planner = AppState(LocalStore())
    app.state.planner = planner
    # Initial auth-state establishment: anonymous until someone logs in
    await planner.on_auth_change(None)
    yield


app = FastAPI(title="Meal Sync", lifespan=lifespan)


@app.middleware("http")
async def auth_middleware(request: Request, call_next):
    if not is_public(request.url.path):
        token = request.cookies.get(SESSION_COOKIE)
        if not token or verify_session_token(token) is None:
            return JSONResponse({"detail": "Not authenticated"}, status_code=401)
    return await call_next(request)


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse({"detail": str(exc)}, status_code=400)


app.include_router(auth.router)
app.include_router(recipes.router)
app.include_router(meal_plan.router)
app.include_router(water.router)
app.include_router(shopping.router)
app.include_router(settings.router)
