"""Streamable HTTP transport: one JSON-RPC message per ``POST /``."""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from companies_house_mcp.mcp.errors import INTERNAL_ERROR, make_error_data
from companies_house_mcp.mcp.handlers import PROTOCOL_VERSION
from companies_house_mcp.mcp.jsonrpc import Dispatcher, error_response
from companies_house_mcp.mcp.models import RequestId
from companies_house_mcp.transports.common import health_payload, install_common_middleware
from companies_house_mcp.utils.logging import get_logger

logger = logging.getLogger(__name__)

TRANSPORT_NAME = "streamable-http"


def _request_id_from_body(body: bytes) -> RequestId:
    """Best-effort id recovery for error envelopes built outside the dispatcher."""
    try:
        data = json.loads(body)
    except ValueError:
        return None
    if isinstance(data, dict):
        raw_id = data.get("id")
        if isinstance(raw_id, (int, str)) and not isinstance(raw_id, bool):
            return raw_id
    return None


def create_streamable_app(
    dispatcher: Dispatcher,
    name: str = "companies-house-mcp-streamable",
    version: str = "1.0.0",
    on_shutdown: Callable[[], Awaitable[None]] | None = None,
) -> FastAPI:
    """Build the Streamable HTTP app around an injected dispatcher."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        log = get_logger("streamable")
        log.info(
            "Streamable HTTP server ready",
            server_name=name,
            tool_count=dispatcher.registry.tool_count,
        )
        yield
        log.info("Shutting down Streamable HTTP server")
        if on_shutdown is not None:
            await on_shutdown()

    app = FastAPI(
        title="Companies House MCP Streamable HTTP Server",
        version=version,
        lifespan=lifespan,
    )
    app.state.dispatcher = dispatcher
    install_common_middleware(app)

    @app.get("/health")
    async def health() -> dict:
        """Health check endpoint. Never touches the dispatcher."""
        return health_payload(version, transport=TRANSPORT_NAME)

    @app.get("/info")
    async def info() -> dict[str, Any]:
        """Server info endpoint for MCP discovery."""
        return {
            "name": name,
            "version": version,
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "transport": TRANSPORT_NAME,
        }

    @app.post("/")
    async def mcp_endpoint(request: Request) -> Response:
        """
        JSON-RPC endpoint.

        Notifications get 204 with an empty body; requests get 200 with the
        JSON-RPC response. Failures outside the dispatcher become a 500 with a
        JSON-RPC error envelope.
        """
        body = b""
        try:
            body = await request.body()
            response = await dispatcher.handle_message(body)
            if response is None:
                return Response(status_code=204)
            return JSONResponse(content=response.model_dump())
        except Exception as e:
            logger.exception("Streamable HTTP request failed outside the dispatcher")
            envelope = error_response(
                _request_id_from_body(body),
                make_error_data(INTERNAL_ERROR, str(e) or "Unknown error"),
            )
            return JSONResponse(status_code=500, content=envelope.model_dump())

    return app
