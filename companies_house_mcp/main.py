"""Server entry point: stdio, HTTP facade or Streamable HTTP, chosen by MCP_MODE."""

import asyncio
import sys

from pydantic import ValidationError

from companies_house_mcp.config.loader import Settings, get_settings
from companies_house_mcp.mcp import create_dispatcher
from companies_house_mcp.mcp.jsonrpc import Dispatcher
from companies_house_mcp.tools import build_registry
from companies_house_mcp.tools.companies_house.client import CompaniesHouseClient
from companies_house_mcp.transports.http_facade import create_facade_app
from companies_house_mcp.transports.stdio import (
    StdioServer,
    install_signal_handlers,
    open_stdin_reader,
)
from companies_house_mcp.transports.streamable_http import create_streamable_app
from companies_house_mcp.utils.logging import get_logger, setup_logging

# Appended to SERVER_NAME in the serverInfo each transport reports
SERVER_NAME_SUFFIXES = {"stdio": "", "http": "-http", "streamable": "-streamable"}


def build_components(settings: Settings) -> tuple[CompaniesHouseClient, Dispatcher]:
    """Create the upstream client and a dispatcher over the tool catalogue."""
    client = CompaniesHouseClient(
        settings.companies_house_api_key,
        base_url=settings.companies_house_base_url,
        timeout=settings.upstream_timeout,
    )
    registry = build_registry(client)
    name = settings.server_name + SERVER_NAME_SUFFIXES[settings.mcp_mode]
    dispatcher = create_dispatcher(registry, name, settings.server_version)
    return client, dispatcher


async def run_stdio(settings: Settings) -> None:
    """Serve MCP over stdin/stdout until stdin closes or a signal arrives."""
    log = get_logger("stdio")
    client, dispatcher = build_components(settings)
    server = StdioServer(dispatcher)
    stop = asyncio.Event()
    install_signal_handlers(stop)
    log.info("Stdio MCP server ready", tool_count=dispatcher.registry.tool_count)
    try:
        reader = await open_stdin_reader()
        await server.serve(reader, stop)
    finally:
        await client.aclose()
        log.info("Stdio MCP server stopped")


def run_http(settings: Settings) -> None:
    """Run an HTTP transport with uvicorn (handles SIGINT/SIGTERM itself)."""
    import uvicorn

    client, dispatcher = build_components(settings)
    if settings.mcp_mode == "http":
        app = create_facade_app(dispatcher, client, version=settings.server_version)
    else:
        app = create_streamable_app(
            dispatcher,
            name=dispatcher.handlers.server_info.name,
            version=settings.server_version,
            on_shutdown=client.aclose,
        )

    get_logger("startup").info(
        "Starting MCP server",
        mode=settings.mcp_mode,
        host=settings.host,
        port=settings.port,
    )
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


def main() -> None:
    """Start the server selected by MCP_MODE; exit 1 without an API key."""
    try:
        settings = get_settings()
    except ValidationError as e:
        missing_key = any(
            error["loc"] == ("companies_house_api_key",) for error in e.errors()
        )
        if missing_key:
            sys.stderr.write("COMPANIES_HOUSE_API_KEY environment variable is required\n")
        else:
            sys.stderr.write(f"Invalid configuration: {e}\n")
        sys.exit(1)

    setup_logging(settings.log_level, settings.log_format)

    if settings.mcp_mode == "stdio":
        try:
            asyncio.run(run_stdio(settings))
        except KeyboardInterrupt:
            pass
    else:
        run_http(settings)


if __name__ == "__main__":
    main()
