"""Stdio bridge to an HTTP-hosted MCP server, with retry and backoff."""

from companies_house_mcp.bridge.client import BridgeState, RetryingHttpClient
from companies_house_mcp.bridge.server import (
    BridgeServer,
    RestBridge,
    StreamableBridge,
    create_bridge,
)

__all__ = [
    "BridgeState",
    "RetryingHttpClient",
    "BridgeServer",
    "RestBridge",
    "StreamableBridge",
    "create_bridge",
]
