from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

from zinga_api.core.config import Settings, get_settings
from zinga_api.core.logging import configure_logging
from zinga_api.db.create_tables import create_all
from zinga_api.domain.app_data import default_document
from zinga_api.repositories.json_storage import JsonDataStore
from zinga_api.routers import backup as backup_router
from zinga_api.routers import catalog as catalog_router
from zinga_api.routers import data as data_router
from zinga_api.routers import payments as payments_router
from zinga_api.services.backup_service import BackupService
from zinga_api.services.data_service import DataService
from zinga_api.services.payment_service import PaymentService

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
        response.headers.setdefault("Cache-Control", "no-store")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


@asynccontextmanager
async def _lifespan(app: FastAPI):
    try:
        create_all()
    except SQLAlchemyError:
        logger.exception("Could not create SQL tables; relational routes will fail until the database is reachable")
    settings: Settings = app.state.settings
    logger.info("Data directory: %s", settings.data_dir)
    yield


def build_store(settings: Settings) -> JsonDataStore:
    return JsonDataStore(
        settings.data_dir,
        guarded_collections=settings.guarded_collections,
        backup_retention=settings.backup_retention,
        seed_factory=lambda: default_document(settings.seed_admin_email, settings.seed_admin_password),
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Factory compatible with uvicorn/gunicorn (`--factory`)."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Zinga Linga Data API", lifespan=_lifespan)
    store = build_store(settings)
    app.state.settings = settings
    app.state.store = store
    app.state.data_service = DataService(store)
    app.state.backup_service = BackupService(store)
    app.state.payment_service = PaymentService(store)

    allowed_cors = {settings.public_base_url}
    if settings.app_env != "prod":
        allowed_cors.update({"http://localhost:3000", "http://127.0.0.1:3000"})
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

    app.include_router(data_router.router)
    app.include_router(backup_router.router)
    app.include_router(payments_router.router)
    app.include_router(catalog_router.router)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


app = create_app()
