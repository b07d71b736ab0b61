"""MCP (Model Context Protocol) implementation with JSON-RPC 2.0."""

from companies_house_mcp.mcp.models import (
    JsonRpcRequest,
    JsonRpcNotification,
    JsonRpcResponse,
    JsonRpcError,
    ServerInfo,
    Tool,
    TextContent,
    ToolCallResult,
)
from companies_house_mcp.mcp.registry import ToolRegistry
from companies_house_mcp.mcp.handlers import MCPHandlers, PROTOCOL_VERSION
from companies_house_mcp.mcp.jsonrpc import Dispatcher
from companies_house_mcp.mcp.errors import (
    PARSE_ERROR,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    INVALID_PARAMS,
    INTERNAL_ERROR,
)


def create_dispatcher(registry: ToolRegistry, name: str, version: str) -> Dispatcher:
    """Wire a dispatcher around an already-populated registry."""
    handlers = MCPHandlers(registry, ServerInfo(name=name, version=version))
    return Dispatcher(handlers)


__all__ = [
    "JsonRpcRequest",
    "JsonRpcNotification",
    "JsonRpcResponse",
    "JsonRpcError",
    "ServerInfo",
    "Tool",
    "TextContent",
    "ToolCallResult",
    "ToolRegistry",
    "MCPHandlers",
    "Dispatcher",
    "PROTOCOL_VERSION",
    "create_dispatcher",
    "PARSE_ERROR",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INVALID_PARAMS",
    "INTERNAL_ERROR",
]
