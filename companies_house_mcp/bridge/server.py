"""Stdio front ends that forward JSON-RPC requests to an HTTP-hosted server."""

import json
import logging
from typing import Any
from urllib.parse import quote

import httpx

from companies_house_mcp.bridge.client import RetryingHttpClient
from companies_house_mcp.mcp.errors import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    InternalError,
    InvalidParamsError,
    McpError,
    MethodNotFoundError,
    TransportError,
    make_error_data,
)
from companies_house_mcp.mcp.handlers import PROTOCOL_VERSION
from companies_house_mcp.mcp.jsonrpc import error_response
from companies_house_mcp.mcp.models import (
    Capabilities,
    InitializeResult,
    JsonRpcResponse,
    RequestId,
    ServerInfo,
)
from companies_house_mcp.transports.stdio import LineServer, ReplyWriter, write_stdout

logger = logging.getLogger(__name__)


def _usable_id(raw_id: Any) -> RequestId:
    if isinstance(raw_id, (int, str)) and not isinstance(raw_id, bool):
        return raw_id
    return None


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise InternalError(f"Invalid response from server: {e}") from e


class BridgeServer(LineServer):
    """
    Read JSON-RPC lines from stdin and forward requests over HTTP.

    Notifications are consumed silently: no HTTP call, no stdout write.
    Every request gets exactly one reply line carrying its original id.
    """

    def __init__(
        self,
        http: RetryingHttpClient,
        write: ReplyWriter = write_stdout,
        shutdown_grace: float = 1.0,
    ):
        super().__init__(write=write, shutdown_grace=shutdown_grace)
        self.http = http

    async def forward(self, message: dict[str, Any]) -> dict[str, Any]:
        """Forward one request and return the JSON-RPC response object."""
        raise NotImplementedError

    async def process_line(self, line: str) -> str | None:
        try:
            message = json.loads(line)
        except ValueError:
            logger.warning("Received a line that is not valid JSON")
            return self.parse_error_reply("Invalid JSON")

        if not isinstance(message, dict):
            return json.dumps(
                error_response(
                    None, make_error_data(INVALID_REQUEST, "Expected a JSON-RPC object")
                ).model_dump()
            )

        if "id" not in message:
            logger.debug(f"Consumed notification {message.get('method')}")
            return None

        request_id = _usable_id(message.get("id"))
        try:
            response = await self.forward(message)
        except McpError as e:
            response = error_response(request_id, e.to_error_data()).model_dump()
        except Exception as e:
            logger.exception("Bridge failed to process request")
            response = error_response(
                request_id,
                make_error_data(INTERNAL_ERROR, f"Request processing failed: {e}"),
            ).model_dump()
        return json.dumps(response)


class StreamableBridge(BridgeServer):
    """Forwards whole envelopes to a Streamable HTTP server's ``POST /``."""

    async def forward(self, message: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self.http.post("/", message)
        except TransportError as e:
            raise TransportError(
                f"Streamable server request failed: {e.message}", attempts=e.attempts
            ) from e
        return _json_body(response)


class RestBridge(BridgeServer):
    """Maps MCP methods onto the HTTP facade's REST endpoints."""

    server_info = ServerInfo(name="companies-house-mcp-http-bridge", version="1.0.0")

    async def forward(self, message: dict[str, Any]) -> dict[str, Any]:
        method = message.get("method")
        params = message.get("params") or {}
        request_id = _usable_id(message.get("id"))

        if method == "initialize":
            result: Any = InitializeResult(
                protocolVersion=PROTOCOL_VERSION,
                capabilities=Capabilities(tools={}),
                serverInfo=self.server_info,
            ).model_dump()
        elif method == "tools/list":
            result = await self._list_tools()
        elif method == "tools/call":
            result = await self._call_tool(params)
        elif method == "bridge/status":
            result = self.status()
        else:
            raise MethodNotFoundError(f"Unknown method: {method}")

        return JsonRpcResponse(id=request_id, result=result).model_dump()

    async def _list_tools(self) -> Any:
        try:
            response = await self.http.get("/tools")
        except TransportError as e:
            raise TransportError(f"Failed to get tools: {e.message}", attempts=e.attempts) from e
        return _json_body(response)

    async def _call_tool(self, params: Any) -> Any:
        if not isinstance(params, dict) or not isinstance(params.get("name"), str):
            raise InvalidParamsError("tools/call requires a string 'name'")
        name = params["name"]
        arguments = params.get("arguments") or {}
        try:
            response = await self.http.post(f"/mcp/tools/{quote(name, safe='')}", arguments)
        except TransportError as e:
            raise TransportError(
                f"Tool execution failed: {e.message}", attempts=e.attempts
            ) from e
        return _json_body(response)

    def status(self) -> dict[str, Any]:
        state = self.http.state
        return {
            "server_url": self.http.base_url,
            "retry_count": state.retry_count,
            "max_retries": state.max_retry_attempts,
            "reconnect_delay": state.base_delay,
        }


def create_bridge(
    mode: str,
    http: RetryingHttpClient,
    write: ReplyWriter = write_stdout,
    shutdown_grace: float = 1.0,
) -> BridgeServer:
    """Build the bridge variant named by ``mode`` (``streamable`` or ``rest``)."""
    bridges = {"streamable": StreamableBridge, "rest": RestBridge}
    try:
        bridge_cls = bridges[mode]
    except KeyError:
        raise ValueError(f"Unknown bridge mode: {mode}") from None
    return bridge_cls(http, write=write, shutdown_grace=shutdown_grace)
