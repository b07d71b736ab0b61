"""Tool argument base model and decorator for tool registration."""

from typing import Any, Callable, Iterable

from pydantic import BaseModel, ConfigDict

from companies_house_mcp.mcp.registry import ToolRegistry


class ToolArguments(BaseModel):
    """Base class for per-tool argument decoders.

    Unknown keys are ignored, and numeric identifiers are accepted where a
    string is declared (clients often send company numbers as numbers).
    """

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)


def tool(
    name: str,
    description: str,
    input_schema: dict[str, Any],
    arguments: type[ToolArguments] | None = None,
) -> Callable[[Callable], Callable]:
    """
    Decorator to mark a function or method as an MCP tool.

    Usage:
        @tool(
            name="get_company_profile",
            description="Get detailed company profile information",
            input_schema={...},
            arguments=CompanyNumberArguments,
        )
        async def get_company_profile(self, args: CompanyNumberArguments) -> list[TextContent]:
            ...

    The decorated function is returned unchanged with _tool_metadata attached.
    """
    def decorator(func: Callable) -> Callable:
        func._tool_metadata = {  # type: ignore[attr-defined]
            "name": name,
            "description": description,
            "input_schema": input_schema,
            "arguments_model": arguments,
        }
        return func

    return decorator


def get_tool_metadata(func: Callable) -> dict[str, Any] | None:
    """Get tool metadata from a decorated function (or bound method)."""
    return getattr(func, "_tool_metadata", None)


def register_decorated(registry: ToolRegistry, handlers: Iterable[Callable]) -> None:
    """Register decorated handlers in the order given."""
    for handler in handlers:
        metadata = get_tool_metadata(handler)
        if metadata is None:
            raise ValueError(f"{handler!r} is not decorated with @tool")
        registry.register(handler=handler, **metadata)
