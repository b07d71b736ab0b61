"""Middleware and helpers shared by the two HTTP transports."""

from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from companies_house_mcp.utils.logging import new_request_id


def install_common_middleware(app: FastAPI) -> None:
    """Add CORS and request-id propagation to an app."""

    @app.middleware("http")
    async def add_request_id_middleware(request: Request, call_next):
        """Bind the request ID and path to structlog's context for this request."""
        request_id = request.headers.get("X-Request-ID") or new_request_id()
        structlog.contextvars.bind_contextvars(request_id=request_id, path=request.url.path)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id", "path")
        response.headers["X-Request-ID"] = request_id
        return response

    # CORS must be added LAST so it processes incoming requests FIRST (handles OPTIONS preflight)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )


def health_payload(version: str, **extra: Any) -> dict[str, Any]:
    """Body of the ``GET /health`` endpoints."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": version,
        **extra,
    }
