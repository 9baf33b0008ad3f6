from __future__ import annotations

from fastapi import APIRouter, Request

from spidermusic.core.rate_limiter import rate_limit_ip
from spidermusic.routers import http_error
from spidermusic.services.errors import ServiceError
from spidermusic.services.user_service import UserService

router = APIRouter(prefix="/auth", tags=["auth"])


def _get_user_service(request: Request) -> UserService:
    svc = getattr(getattr(request.app, "state", None), "user_service", None)
    if not svc:
        raise RuntimeError("UserService not configured")
    return svc


@router.post("/login")
def login(request: Request, payload: dict):
    rate_limit_ip(request, "login", limit=10, window_seconds=60)
    svc = _get_user_service(request)
    try:
        return svc.login(payload.get("username", ""), payload.get("password", ""))
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.post("/register")
def register(request: Request, payload: dict):
    rate_limit_ip(request, "register", limit=5, window_seconds=60)
    svc = _get_user_service(request)
    try:
        return svc.register(payload.get("username", ""), payload.get("password", ""))
    except ServiceError as exc:
        raise http_error(exc) from exc
