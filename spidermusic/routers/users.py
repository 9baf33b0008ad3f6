from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from spidermusic.core.access import require_storage_token
from spidermusic.repositories.json_storage import StoreError
from spidermusic.routers import http_error
from spidermusic.services.errors import ServiceError
from spidermusic.services.rename_service import UsernameRenameService

router = APIRouter(prefix="/users", tags=["users"])


def _get_rename_service(request: Request) -> UsernameRenameService:
    svc = getattr(getattr(request.app, "state", None), "rename_service", None)
    if not svc:
        raise RuntimeError("UsernameRenameService not configured")
    return svc


@router.put("/{old_username}", dependencies=[Depends(require_storage_token)])
def rename_user(old_username: str, request: Request, payload: dict):
    new_username = payload.get("newUsername")
    if not isinstance(new_username, str):
        new_username = ""
    svc = _get_rename_service(request)
    try:
        result = svc.rename(old_username, new_username)
    except (ServiceError, StoreError) as exc:
        raise http_error(exc) from exc
    return {"ok": True, "oldUsername": result.old, "newUsername": result.new, "changes": result.changes}
