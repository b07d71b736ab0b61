"""MCP method handlers for JSON-RPC requests and notifications."""

import logging
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from companies_house_mcp.mcp.errors import InvalidParamsError, MethodNotFoundError
from companies_house_mcp.mcp.models import (
    Capabilities,
    InitializeResult,
    ServerInfo,
    ToolCallParams,
    ToolsListResult,
)
from companies_house_mcp.mcp.registry import ToolRegistry, format_validation_error

logger = logging.getLogger(__name__)

# MCP protocol version we support
PROTOCOL_VERSION = "2024-11-05"


class MCPHandlers:
    """Handlers for MCP protocol methods."""

    def __init__(self, registry: ToolRegistry, server_info: ServerInfo):
        self.registry = registry
        self.server_info = server_info

    def capabilities(self) -> Capabilities:
        return Capabilities(tools={})

    async def handle_initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle the initialize request. Client params are logged, never rejected."""
        client_info = params.get("clientInfo") or {}
        logger.info(
            f"Initialize from client {client_info.get('name', 'unknown')} "
            f"(protocol {params.get('protocolVersion', 'unspecified')})"
        )
        result = InitializeResult(
            protocolVersion=PROTOCOL_VERSION,
            capabilities=self.capabilities(),
            serverInfo=self.server_info,
        )
        return result.model_dump()

    async def handle_tools_list(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle the tools/list request."""
        result = ToolsListResult(tools=self.registry.list_tools())
        return result.model_dump()

    async def handle_tools_call(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle the tools/call request."""
        try:
            call_params = ToolCallParams(**params)
        except ValidationError as e:
            raise InvalidParamsError(
                f"Invalid tools/call params: {format_validation_error(e)}"
            ) from e

        logger.info(f"Calling tool: {call_params.name}")
        result = await self.registry.call_tool(
            call_params.name, call_params.arguments or {}
        )
        return result.model_dump()

    async def handle_initialized(self, params: dict[str, Any]) -> None:
        logger.info("Client confirmed initialization")

    async def handle_cancelled(self, params: dict[str, Any]) -> None:
        # Advisory only: in-flight upstream calls are not aborted.
        logger.info(
            f"Client cancelled request {params.get('requestId')}: "
            f"{params.get('reason', 'no reason given')}"
        )

    def request_handler(
        self, method: str
    ) -> Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]:
        handlers = {
            "initialize": self.handle_initialize,
            "tools/list": self.handle_tools_list,
            "tools/call": self.handle_tools_call,
        }
        handler = handlers.get(method)
        if handler is None:
            raise MethodNotFoundError(f"Method not found: {method}")
        return handler

    def notification_handler(
        self, method: str
    ) -> Callable[[dict[str, Any]], Awaitable[None]] | None:
        handlers = {
            "notifications/initialized": self.handle_initialized,
            "notifications/cancelled": self.handle_cancelled,
        }
        return handlers.get(method)
