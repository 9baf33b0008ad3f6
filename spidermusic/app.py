"""
FastAPI application factory.

Run with: uvicorn --factory spidermusic.app:create_app

The routers only read the user and rename services; the library and social
services are also kept on `app.state` for in-process callers such as tests
and scripts sharing the running store.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from spidermusic.core.config import Settings, get_settings
from spidermusic.core.logs import configure_logging
from spidermusic.repositories.json_storage import DocumentStore, bootstrap, create_store
from spidermusic.routers import auth as auth_router
from spidermusic.routers import health as health_router
from spidermusic.routers import users as users_router
from spidermusic.services.library_service import LibraryService
from spidermusic.services.media_service import MediaStorage
from spidermusic.services.rename_service import UsernameRenameService
from spidermusic.services.social_service import SocialService
from spidermusic.services.user_service import UserService

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers for a JSON-only API."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


def create_app(settings: Settings | None = None, store: DocumentStore | None = None) -> FastAPI:
    """Build the app around one DocumentStore; the store is closed on shutdown."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    store = store or create_store(settings)
    created = bootstrap(store)
    if created:
        logger.info("Initialized collections: %s", ", ".join(created))

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        store.close()

    app = FastAPI(title="Spider Music API", lifespan=lifespan)

    allowed_cors = {settings.public_base_url}
    if settings.app_env != "prod":
        allowed_cors.update({"http://localhost:8000", "http://127.0.0.1:8000"})
    allowed_cors = {origin for origin in allowed_cors if origin}
    if allowed_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=sorted(allowed_cors),
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.app_env == "prod")

    media = MediaStorage(settings)
    app.state.settings = settings
    app.state.store = store
    app.state.user_service = UserService(store, media)
    app.state.library_service = LibraryService(store, media)
    app.state.social_service = SocialService(store, media)
    app.state.rename_service = UsernameRenameService(store)

    app.include_router(health_router.router)
    app.include_router(auth_router.router)
    app.include_router(users_router.router)
    return app
