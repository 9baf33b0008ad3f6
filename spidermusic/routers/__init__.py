"""
FastAPI routers grouped by concern (health, auth, users).

Each module exposes an APIRouter included by the app factory. Handlers stay
thin: they pull the service from app.state and translate service errors to
HTTP status codes.
"""

from fastapi import HTTPException

from spidermusic.repositories.json_storage import StoreError
from spidermusic.services.errors import (
    InvalidCredentialsError,
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
    UsernameTakenError,
    ValidationError,
)

_STATUS = (
    (ValidationError, 400),
    (InvalidCredentialsError, 401),
    (PermissionDeniedError, 403),
    (NotFoundError, 404),
    (UsernameTakenError, 409),
)


def http_error(exc: ServiceError | StoreError) -> HTTPException:
    for exc_type, status in _STATUS:
        if isinstance(exc, exc_type):
            return HTTPException(status, str(exc))
    return HTTPException(500, str(exc))
