"""JSON-RPC 2.0 message dispatching shared by every transport."""

import json
import logging
from typing import Any

from pydantic import ValidationError

from companies_house_mcp.mcp.errors import (
    INTERNAL_ERROR,
    InvalidNotificationError,
    InvalidRequestError,
    McpError,
    ParseError,
    make_error_data,
)
from companies_house_mcp.mcp.handlers import MCPHandlers
from companies_house_mcp.mcp.models import (
    JsonRpcError,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    RequestId,
)
from companies_house_mcp.mcp.registry import format_validation_error

logger = logging.getLogger(__name__)


def _usable_id(raw_id: Any) -> RequestId:
    """Return ``raw_id`` if it can be echoed in a response, else None."""
    if isinstance(raw_id, (int, str)) and not isinstance(raw_id, bool):
        return raw_id
    return None


def error_response(request_id: RequestId, error: dict[str, Any]) -> JsonRpcResponse:
    """Build an error envelope from an error object."""
    return JsonRpcResponse(id=request_id, error=JsonRpcError(**error))


class Dispatcher:
    """Classify JSON-RPC messages, route them to MCP handlers and shape replies.

    The dispatcher is stateless per call. ``handle_message`` never raises:
    every failure becomes a JSON-RPC error envelope, and notifications never
    produce a reply.
    """

    def __init__(self, handlers: MCPHandlers):
        self.handlers = handlers

    @property
    def registry(self):
        return self.handlers.registry

    def classify(self, raw_data: str | bytes) -> JsonRpcRequest | JsonRpcNotification:
        """
        Parse raw data into a request or a notification.

        Whether the ``id`` key is present decides which; its value does not.

        Raises:
            ParseError: The data is not valid JSON.
            InvalidRequestError: Valid JSON that is not a JSON-RPC request.
            InvalidNotificationError: An id-less message that is not a valid
                notification. It must be dropped without a reply.
        """
        try:
            if isinstance(raw_data, bytes):
                raw_data = raw_data.decode("utf-8")
            data = json.loads(raw_data)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ParseError(f"Invalid JSON: {e}") from e

        if isinstance(data, list):
            raise InvalidRequestError("Batch requests are not supported")
        if not isinstance(data, dict):
            raise InvalidRequestError("Invalid JSON-RPC request: expected an object")

        if "id" not in data:
            try:
                return JsonRpcNotification.model_validate(data)
            except ValidationError as e:
                raise InvalidNotificationError(
                    f"Invalid JSON-RPC notification: {format_validation_error(e)}"
                ) from e

        try:
            return JsonRpcRequest.model_validate(data)
        except ValidationError as e:
            raise InvalidRequestError(
                f"Invalid JSON-RPC request: {format_validation_error(e)}",
                request_id=_usable_id(data.get("id")),
            ) from e

    async def handle_notification(self, notification: JsonRpcNotification) -> None:
        """Handle a notification. Never produces a reply, even on failure."""
        handler = self.handlers.notification_handler(notification.method)
        if handler is None:
            logger.warning(f"Unknown notification method: {notification.method}")
            return
        try:
            await handler(notification.params or {})
        except Exception:
            logger.debug(
                f"Notification handler for {notification.method} failed", exc_info=True
            )

    async def handle_request(self, request: JsonRpcRequest) -> JsonRpcResponse:
        """Handle a request. Always returns a response carrying the request id."""
        try:
            handler = self.handlers.request_handler(request.method)
            result = await handler(request.params or {})
            return JsonRpcResponse(id=request.id, result=result)
        except McpError as e:
            logger.info(f"Request {request.method} failed with {e.code}: {e.message}")
            return error_response(request.id, e.to_error_data())
        except Exception as e:
            logger.exception(f"Error handling method {request.method}")
            return error_response(
                request.id, make_error_data(INTERNAL_ERROR, f"Internal error: {e}")
            )

    async def handle_message(self, raw_data: str | bytes) -> JsonRpcResponse | None:
        """
        Handle a raw JSON-RPC message end-to-end.

        Returns a response, or None for notifications.
        """
        try:
            message = self.classify(raw_data)
        except InvalidNotificationError as e:
            logger.warning(f"Dropping malformed notification: {e.message}")
            return None
        except InvalidRequestError as e:
            return error_response(e.request_id, e.to_error_data())
        except McpError as e:
            # Parse errors don't have a request id
            return error_response(None, e.to_error_data())

        if isinstance(message, JsonRpcNotification):
            try:
                await self.handle_notification(message)
            except Exception:
                logger.debug("Notification handling failed", exc_info=True)
            return None

        return await self.handle_request(message)

    def serialize_response(self, response: JsonRpcResponse) -> str:
        """Serialize a JSON-RPC response to a single-line JSON string."""
        return json.dumps(response.model_dump())
