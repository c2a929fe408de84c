"""
FastAPI server: allowlist, eligibility, share text, and mini-app webhook.

Lifespan creates the tables, one shared httpx.AsyncClient for all provider
and notification calls, and the service graph. Domain exceptions map to
HTTP statuses here and nowhere else.
"""

from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from allowgate import __version__
from allowgate.allowgate_logging import bind_request_context, clear_request_context, get_logger
from allowgate.api_server.routes import router
from allowgate.api_server.services import Services, build_services
from allowgate.config import get_settings
from allowgate.core.exceptions import (
    EligibilityUnavailable,
    InvalidAddressError,
    StorageUnavailable,
    WebhookError,
)
from allowgate.database import init_db

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Error mapping
# -----------------------------------------------------------------------------

async def _invalid_address(request: Request, exc: InvalidAddressError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": str(exc)})


async def _storage_unavailable(request: Request, exc: StorageUnavailable) -> JSONResponse:
    logger.error("api_storage_unavailable", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=503, content={"error": str(exc)})


async def _eligibility_unavailable(request: Request, exc: EligibilityUnavailable) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"success": False, "error": str(exc), "alreadyAllowlisted": False},
        headers={"Retry-After": "1"},
    )


async def _webhook_error(request: Request, exc: WebhookError) -> JSONResponse:
    logger.warning("webhook_rejected", kind=type(exc).__name__, error=str(exc))
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.public_message})


# -----------------------------------------------------------------------------
# App
# -----------------------------------------------------------------------------

def create_app(services: Services | None = None) -> FastAPI:
    """
    Build the ASGI app. With services given (tests), the lifespan does not
    create its own; otherwise they are wired from get_settings() at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if services is not None:
            yield
            return
        settings = get_settings()
        init_db()
        async with httpx.AsyncClient(timeout=settings.provider_timeout_sec) as http:
            app.state.services = build_services(settings, http)
            logger.info("api_started", version=__version__)
            yield
        logger.info("api_stopped")

    app = FastAPI(
        title="Allowgate API",
        description="Reputation-gated allowlist with Merkle proofs.",
        version=__version__,
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    app.add_exception_handler(InvalidAddressError, _invalid_address)
    app.add_exception_handler(StorageUnavailable, _storage_unavailable)
    app.add_exception_handler(EligibilityUnavailable, _eligibility_unavailable)
    app.add_exception_handler(WebhookError, _webhook_error)

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        clear_request_context()
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        bind_request_context(request_id=request_id)
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "api_request",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        response.headers["X-Request-ID"] = request_id
        return response

    app.include_router(router)

    @app.get("/health")
    def health() -> dict[str, str]:
        """Liveness check: API is up."""
        return {"status": "ok"}

    return app
