"""Tool registry for managing MCP tools."""

import logging
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ValidationError

from companies_house_mcp.mcp.errors import (
    DuplicateToolError,
    InvalidParamsError,
    McpError,
    ToolExecutionError,
    ToolNotFoundError,
)
from companies_house_mcp.mcp.models import TextContent, Tool, ToolCallResult

logger = logging.getLogger(__name__)

# Handlers receive the decoded argument model (or the raw dict when the tool
# declares no model) and return the content blocks of the result.
ToolHandler = Callable[[Any], Awaitable[list[TextContent]]]


def format_validation_error(exc: ValidationError) -> str:
    """Flatten a pydantic ValidationError into a one-line message."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"]) or "arguments"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


class ToolDefinition:
    """A registered tool with its metadata, argument decoder and handler."""

    def __init__(
        self,
        name: str,
        description: str,
        input_schema: dict[str, Any],
        handler: ToolHandler,
        arguments_model: type[BaseModel] | None = None,
    ):
        self.name = name
        self.description = description
        self.input_schema = input_schema
        self.handler = handler
        self.arguments_model = arguments_model

    def to_mcp_tool(self) -> Tool:
        """Convert to MCP Tool model for protocol responses."""
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.input_schema,
        )

    def decode_arguments(self, arguments: dict[str, Any]) -> Any:
        """Validate raw arguments before the handler ever sees them."""
        if self.arguments_model is None:
            return arguments
        try:
            return self.arguments_model.model_validate(arguments)
        except ValidationError as e:
            raise InvalidParamsError(
                f"Invalid arguments for tool '{self.name}': {format_validation_error(e)}"
            ) from e


class ToolRegistry:
    """Ordered, write-once registry of MCP tools.

    Tools are registered at startup and only read afterwards, so concurrent
    requests share one instance without locking.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}

    def register(
        self,
        name: str,
        description: str,
        input_schema: dict[str, Any],
        handler: ToolHandler,
        arguments_model: type[BaseModel] | None = None,
    ) -> None:
        """Register a tool with the registry."""
        if name in self._tools:
            raise DuplicateToolError(f"Tool '{name}' is already registered")
        self._tools[name] = ToolDefinition(
            name=name,
            description=description,
            input_schema=input_schema,
            handler=handler,
            arguments_model=arguments_model,
        )
        logger.debug(f"Registered tool: {name}")

    def get(self, name: str) -> ToolDefinition | None:
        """Get a tool by name."""
        return self._tools.get(name)

    def list_tools(self) -> list[Tool]:
        """List all registered tools, in registration order."""
        return [tool.to_mcp_tool() for tool in self._tools.values()]

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> ToolCallResult:
        """
        Call a tool by name with the given arguments.

        Raises:
            ToolNotFoundError: No tool is registered under ``name``.
            InvalidParamsError: The arguments failed the tool's decoder.
            ToolExecutionError: The handler raised; the message embeds its text.
        """
        tool = self.get(name)
        if tool is None:
            raise ToolNotFoundError(name)

        decoded = tool.decode_arguments(arguments)

        try:
            content = await tool.handler(decoded)
        except McpError:
            raise
        except Exception as e:
            logger.exception(f"Error executing tool {name}")
            raise ToolExecutionError(f"Tool execution failed: {e}") from e

        return ToolCallResult(content=content)

    @property
    def tool_count(self) -> int:
        """Return the number of registered tools."""
        return len(self._tools)
