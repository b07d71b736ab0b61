"""JSON-RPC 2.0 error codes, protocol exceptions and error object helpers."""

from typing import Any

# Standard JSON-RPC 2.0 error codes
PARSE_ERROR = -32700  # Invalid JSON was received
INVALID_REQUEST = -32600  # The JSON sent is not a valid Request object
METHOD_NOT_FOUND = -32601  # The method does not exist / is not available
INVALID_PARAMS = -32602  # Invalid method parameter(s)
INTERNAL_ERROR = -32603  # Internal JSON-RPC error


def error_message(code: int) -> str:
    """Get the standard message for a JSON-RPC error code."""
    messages = {
        PARSE_ERROR: "Parse error",
        INVALID_REQUEST: "Invalid Request",
        METHOD_NOT_FOUND: "Method not found",
        INVALID_PARAMS: "Invalid params",
        INTERNAL_ERROR: "Internal error",
    }
    return messages.get(code, "Unknown error")


def make_error_data(code: int, message: str | None = None, data: Any = None) -> dict[str, Any]:
    """Create an error object for JSON-RPC response."""
    error: dict[str, Any] = {
        "code": code,
        "message": message or error_message(code),
    }
    if data is not None:
        error["data"] = data
    return error


class McpError(Exception):
    """Base class for failures that map onto a JSON-RPC error object."""

    code: int = INTERNAL_ERROR

    def __init__(self, message: str | None = None, data: Any = None):
        self.message = message or error_message(self.code)
        self.data = data
        super().__init__(self.message)

    def to_error_data(self) -> dict[str, Any]:
        return make_error_data(self.code, self.message, self.data)


class ParseError(McpError):
    code = PARSE_ERROR


class InvalidRequestError(McpError):
    code = INVALID_REQUEST

    def __init__(self, message: str | None = None, data: Any = None, request_id: Any = None):
        super().__init__(message, data)
        # Echoed in the error response when the offending message carried one
        self.request_id = request_id


class InvalidNotificationError(InvalidRequestError):
    """A malformed message without an id: logged and dropped, never answered."""


class MethodNotFoundError(McpError):
    code = METHOD_NOT_FOUND


class ToolNotFoundError(MethodNotFoundError):
    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.tool_name = name


class InvalidParamsError(McpError):
    code = INVALID_PARAMS


class InternalError(McpError):
    code = INTERNAL_ERROR


class ToolExecutionError(InternalError):
    """A tool handler failed; the message carries the underlying error text."""


class TransportError(InternalError):
    """The bridge gave up on an upstream HTTP call after exhausting its retries."""

    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts


class DuplicateToolError(ValueError):
    """Raised at startup when two tools share a name."""
