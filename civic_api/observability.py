"""Observability module for logging, metrics, and error tracking."""

import logging
import json
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

# Prometheus metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total number of HTTP requests',
    ['method', 'endpoint', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'Duration of HTTP requests in seconds',
    ['method', 'endpoint']
)

complaints_created_total = Counter(
    'complaints_created_total',
    'Total number of complaints created',
    ['with_image']
)

complaint_votes_total = Counter(
    'complaint_votes_total',
    'Total number of votes recorded',
    ['direction']
)

upstream_failures_total = Counter(
    'upstream_failures_total',
    'Failed calls to geocoding, storage or summary providers',
    ['service']
)


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(level: int = logging.INFO) -> None:
    """Configure structured JSON logging."""
    logging.basicConfig(
        level=level,
        format='%(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    for handler in logging.getLogger().handlers:
        handler.setFormatter(JSONFormatter())

    logging.getLogger("civic_api").setLevel(level)
    logging.getLogger("civic_api").info("Structured JSON logging configured")


def init_sentry(dsn: Optional[str], environment: str) -> None:
    """Initialize Sentry error tracking when a DSN is configured."""
    if not dsn:
        logging.getLogger("civic_api").info("Sentry DSN not configured, skipping initialization")
        return

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        integrations=[
            FastApiIntegration(),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
    )
    logging.getLogger("civic_api").info("Sentry initialized successfully")


def _endpoint_label(request: Request) -> str:
    # Route templates keep label cardinality bounded (/api/complaints/{complaint_id}).
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def setup_metrics_middleware(app: FastAPI) -> None:
    """Add Prometheus metrics middleware to FastAPI app."""
    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time

        endpoint = _endpoint_label(request)
        method = request.method
        http_requests_total.labels(method=method, endpoint=endpoint, status=response.status_code).inc()
        http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)

        return response


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def get_health_check(app: FastAPI) -> Dict[str, Any]:
    settings = app.state.settings
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "storage_provider": settings.storage_provider,
    }
