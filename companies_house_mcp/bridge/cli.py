"""Entry point for the stdio -> HTTP bridge process."""

import asyncio
import sys

from pydantic import ValidationError

from companies_house_mcp.bridge.client import BridgeState, RetryingHttpClient
from companies_house_mcp.bridge.server import create_bridge
from companies_house_mcp.config.loader import BridgeSettings, get_bridge_settings
from companies_house_mcp.transports.stdio import install_signal_handlers, open_stdin_reader
from companies_house_mcp.utils.logging import get_logger, setup_logging


async def _probe_health(http: RetryingHttpClient) -> None:
    log = get_logger("bridge")
    healthy = await http.check_health()
    if healthy:
        log.info("Upstream server is healthy", server_url=http.base_url)
    else:
        log.warning("Upstream server health check failed", server_url=http.base_url)


async def run_bridge(settings: BridgeSettings) -> None:
    """Serve stdin until it closes or a termination signal arrives."""
    log = get_logger("bridge")
    state = BridgeState(
        max_retry_attempts=settings.mcp_max_retry_attempts,
        base_delay=settings.mcp_reconnect_delay,
    )
    http = RetryingHttpClient(
        settings.mcp_server_url, state, timeout=settings.mcp_request_timeout
    )
    bridge = create_bridge(
        settings.mcp_bridge_mode, http, shutdown_grace=settings.mcp_shutdown_grace
    )
    log.info(
        "Bridge ready for MCP requests",
        mode=settings.mcp_bridge_mode,
        server_url=settings.mcp_server_url,
        max_retry_attempts=settings.mcp_max_retry_attempts,
        reconnect_delay_ms=settings.mcp_reconnect_delay,
    )

    stop = asyncio.Event()
    install_signal_handlers(stop)
    probe = asyncio.create_task(_probe_health(http))
    try:
        reader = await open_stdin_reader()
        await bridge.serve(reader, stop)
    finally:
        probe.cancel()
        await asyncio.gather(probe, return_exceptions=True)
        await http.aclose()
        log.info("Bridge shut down")


def main() -> None:
    """Run the bridge with settings from the environment."""
    try:
        settings = get_bridge_settings()
    except ValidationError as e:
        sys.stderr.write(f"Invalid bridge configuration: {e}\n")
        sys.exit(1)

    setup_logging(settings.log_level, settings.log_format)
    try:
        asyncio.run(run_bridge(settings))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
