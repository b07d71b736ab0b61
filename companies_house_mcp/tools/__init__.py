"""Tool providers."""

from companies_house_mcp.mcp.registry import ToolRegistry
from companies_house_mcp.tools.companies_house import CompaniesHouseClient, register_tools


def build_registry(client: CompaniesHouseClient) -> ToolRegistry:
    """Build the tool registry for the fixed Companies House catalogue."""
    registry = ToolRegistry()
    register_tools(registry, client)
    return registry


__all__ = ["build_registry"]
