"""HTTP facade: REST endpoints, a JSON-RPC bridge endpoint and SSE mirrors.

Every route goes through the same registry/dispatcher as the other transports,
except the ``/api`` and ``/stream`` convenience mirrors, which return the raw
upstream JSON.
"""

import json
import logging
from contextlib import asynccontextmanager
from functools import partial
from typing import Any, AsyncGenerator, Awaitable, Callable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sse_starlette.sse import EventSourceResponse

from companies_house_mcp.mcp.errors import (
    PARSE_ERROR,
    InvalidParamsError,
    McpError,
    ToolNotFoundError,
    make_error_data,
)
from companies_house_mcp.mcp.jsonrpc import Dispatcher, error_response
from companies_house_mcp.mcp.models import ToolsListResult
from companies_house_mcp.tools.companies_house.client import CompaniesHouseClient
from companies_house_mcp.transports.common import health_payload, install_common_middleware
from companies_house_mcp.utils.logging import get_logger

logger = logging.getLogger(__name__)

UpstreamCall = Callable[[], Awaitable[Any]]


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _read_arguments(request: Request) -> dict[str, Any]:
    """Read a tool's raw arguments object from the request body."""
    body = await request.body()
    if not body.strip():
        return {}
    try:
        arguments = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidParamsError(f"Invalid JSON body: {e}") from e
    if arguments is None:
        return {}
    if not isinstance(arguments, dict):
        raise InvalidParamsError("Tool arguments must be a JSON object")
    return arguments


async def _api_response(call: UpstreamCall) -> JSONResponse:
    try:
        return JSONResponse(content=await call())
    except Exception as e:
        logger.warning(f"API lookup failed: {e}")
        return _error(500, str(e))


def _sse_response(call: UpstreamCall) -> EventSourceResponse:
    """One terminal ``data:`` event with the full result, then the stream closes."""

    async def event_generator() -> AsyncGenerator[dict[str, str], None]:
        try:
            result = await call()
        except Exception as e:
            logger.warning(f"Streaming lookup failed: {e}")
            yield {"event": "error", "data": json.dumps({"error": str(e)})}
            return
        yield {"data": json.dumps(result)}

    return EventSourceResponse(event_generator())


def create_facade_app(
    dispatcher: Dispatcher,
    client: CompaniesHouseClient,
    version: str = "1.0.0",
) -> FastAPI:
    """Build the HTTP facade around an injected dispatcher and upstream client."""
    registry = dispatcher.registry

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        log = get_logger("http")
        log.info("HTTP facade ready", tool_count=registry.tool_count, version=version)
        yield
        log.info("Shutting down HTTP facade")
        await client.aclose()

    app = FastAPI(
        title="Companies House MCP HTTP Server",
        description="REST and JSON-RPC bridge access to the Companies House MCP tools",
        version=version,
        lifespan=lifespan,
    )
    app.state.dispatcher = dispatcher
    app.state.client = client
    install_common_middleware(app)

    # =========================================================================
    # Health and tool catalogue
    # =========================================================================

    @app.get("/health")
    async def health() -> dict:
        """Health check endpoint."""
        return health_payload(version)

    @app.get("/tools")
    async def list_tools() -> dict:
        """List available tools in the same shape as ``tools/list``."""
        return ToolsListResult(tools=registry.list_tools()).model_dump()

    # =========================================================================
    # MCP Endpoints
    # =========================================================================

    @app.post("/mcp/tools/{tool_name}")
    async def call_tool(tool_name: str, request: Request) -> JSONResponse:
        """Execute a tool; the body is the raw arguments object."""
        try:
            arguments = await _read_arguments(request)
            result = await registry.call_tool(tool_name, arguments)
        except ToolNotFoundError:
            return _error(404, f"Tool '{tool_name}' not found")
        except InvalidParamsError as e:
            return _error(400, e.message)
        except McpError as e:
            return _error(500, e.message)
        except Exception as e:
            logger.exception(f"Unexpected error calling tool {tool_name}")
            return _error(500, str(e))
        return JSONResponse(content=result.model_dump())

    @app.post("/mcp/bridge")
    async def mcp_bridge(request: Request) -> JSONResponse:
        """JSON-RPC endpoint used by the stdio bridge."""
        try:
            body = await request.body()
        except Exception as e:
            return JSONResponse(
                content=error_response(
                    None, make_error_data(PARSE_ERROR, f"Could not read request body: {e}")
                ).model_dump()
            )

        response = await dispatcher.handle_message(body)
        if response is None:
            # Notification - no response needed
            return JSONResponse(content={"status": "ok"}, status_code=202)
        return JSONResponse(content=response.model_dump())

    # =========================================================================
    # Direct API mirrors
    # =========================================================================

    @app.get("/api/search/{query}")
    async def api_search(query: str, items_per_page: int = 20) -> JSONResponse:
        return await _api_response(partial(client.search_companies, query, items_per_page))

    @app.get("/api/company/{company_number}")
    async def api_company(company_number: str) -> JSONResponse:
        return await _api_response(partial(client.get_company_profile, company_number))

    @app.get("/api/company/{company_number}/officers")
    async def api_officers(company_number: str) -> JSONResponse:
        return await _api_response(partial(client.get_company_officers, company_number))

    @app.get("/api/company/{company_number}/filings")
    async def api_filings(company_number: str, items_per_page: int = 25) -> JSONResponse:
        return await _api_response(
            partial(client.get_company_filings, company_number, items_per_page)
        )

    # =========================================================================
    # Server-Sent Events mirrors
    # =========================================================================

    @app.get("/stream/search/{query}")
    async def stream_search(query: str, items_per_page: int = 20) -> EventSourceResponse:
        return _sse_response(partial(client.search_companies, query, items_per_page))

    @app.get("/stream/company/{company_number}")
    async def stream_company(company_number: str) -> EventSourceResponse:
        return _sse_response(partial(client.get_company_profile, company_number))

    @app.get("/stream/company/{company_number}/officers")
    async def stream_officers(company_number: str) -> EventSourceResponse:
        return _sse_response(partial(client.get_company_officers, company_number))

    @app.get("/stream/company/{company_number}/filings")
    async def stream_filings(company_number: str, items_per_page: int = 25) -> EventSourceResponse:
        return _sse_response(
            partial(client.get_company_filings, company_number, items_per_page)
        )

    return app
