"""control_api.py - Control plane for a running storage provider.

Endpoints:
    GET /health   liveness, always "ok"
    GET /ready    "ready" while the provider holds open sessions, 503 otherwise
    GET /apps     configured application names
    GET /metrics  Prometheus exposition of the global registry
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

from .logger import get_logger
from .provider import AppStorageProvider

logger = get_logger(__name__)

API_VERSION = "1.0"


def with_version(payload: dict) -> dict:
    payload = dict(payload)
    payload["version"] = API_VERSION
    return payload


def create_app(provider: AppStorageProvider | None = None) -> FastAPI:
    app = FastAPI(title="casstorage control plane", docs_url="/docs", redoc_url=None)
    app.state.provider = provider

    @app.get("/health", response_class=PlainTextResponse)
    async def health():
        return "ok"

    @app.get("/ready", response_class=PlainTextResponse)
    async def ready():
        current = app.state.provider
        if current is None or current.released:
            return PlainTextResponse("not ready", status_code=503)
        return "ready"

    @app.get("/apps")
    async def apps():
        current = app.state.provider
        names = [] if current is None else current.apps()
        return with_version({"apps": names})

    @app.get("/metrics")
    async def metrics():
        return Response(generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)

    logger.debug("[Control Plane] App created")
    return app
