from contextlib import asynccontextmanager
from typing import Optional
import logging

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles

from .config import Settings, get_settings
from .database import Database
from .errors import CivicError
from .geocoding import NominatimGeocoder
from .image_storage import LocalImageStorage, build_image_storage
from .observability import (
    get_health_check,
    init_sentry,
    metrics_endpoint,
    setup_logging,
    setup_metrics_middleware,
)
from .routes import complaints as complaints_routes
from .routes import geo as geo_routes
from .routes import insights as insights_routes
from .summary import SummaryGenerator

logger = logging.getLogger("civic_api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info("Starting up complaint service (env=%s)...", settings.environment)

    db = Database(settings.database_url)
    await db.connect()
    http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.http_timeout_seconds, connect=5.0))

    app.state.db = db
    app.state.http_client = http_client
    app.state.image_storage = build_image_storage(settings)
    app.state.geocoder = NominatimGeocoder(http_client, settings)
    app.state.summary_generator = SummaryGenerator(http_client, settings)
    try:
        yield
    finally:
        logger.info("Shutting down complaint service...")
        await http_client.aclose()
        await db.close()


async def civic_error_handler(request: Request, exc: CivicError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("%s %s rejected: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": "Invalid request"})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title=f"{settings.app_title} API", lifespan=lifespan)
    app.state.settings = settings

    setup_metrics_middleware(app)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins) or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=list(settings.allowed_hosts) or ["*"])

    app.add_exception_handler(CivicError, civic_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(complaints_routes.router)
    app.include_router(insights_routes.router)
    app.include_router(geo_routes.router)

    # Serve locally stored images (development fallback for S3).
    if settings.storage_provider != "s3":
        settings.local_storage_path.mkdir(parents=True, exist_ok=True)
        app.mount(
            LocalImageStorage.url_prefix,
            StaticFiles(directory=str(settings.local_storage_path)),
            name="storage",
        )

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return get_health_check(app)

    @app.get("/metrics")
    def metrics() -> Response:
        """Prometheus metrics endpoint."""
        return metrics_endpoint()

    return app


def build_default_app() -> FastAPI:
    settings = get_settings()
    setup_logging()
    init_sentry(settings.sentry_dsn, settings.environment)
    return create_app(settings)
