"""Companies House provider: upstream client and MCP tools."""

from companies_house_mcp.tools.companies_house.client import (
    CompaniesHouseClient,
    UpstreamError,
)
from companies_house_mcp.tools.companies_house.tools import register_tools

__all__ = ["CompaniesHouseClient", "UpstreamError", "register_tools"]
