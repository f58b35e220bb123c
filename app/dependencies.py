import os
from typing import Optional

from itsdangerous import BadSignature, URLSafeTimedSerializer
from fastapi import Request

from meal_sync.core.app_state import AppState

SESSION_COOKIE = "ms_session"
SESSION_MAX_AGE = 60 * 60 * 24 * 7  # 7 days


def _get_signer() -> URLSafeTimedSerializer:
    key = os.environ.get("SECRET_KEY", "dev-secret-change-in-production")
    return URLSafeTimedSerializer(key)


def create_session_token(user_id: Optional[str] = None) -> str:
    return _get_signer().dumps({"user": user_id})


def verify_session_token(token: str) -> Optional[dict]:
    """Return the session payload, or None if the token is invalid or expired."""
    try:
        return _get_signer().loads(token, max_age=SESSION_MAX_AGE)
    except BadSignature:
        return None


# Paths that don't require auth
_PUBLIC_PREFIXES = ("/login", "/docs", "/openapi.json")


def is_public(path: str) -> bool:
    return any(path.startswith(p) for p in _PUBLIC_PREFIXES)


def get_planner(request: Request) -> AppState:
    return request.app.state.planner
