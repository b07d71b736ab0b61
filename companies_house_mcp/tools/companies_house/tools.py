"""Companies House provider tools."""

import json
import logging
from typing import Annotated, Any

from pydantic import StringConstraints

from companies_house_mcp.mcp.models import TextContent
from companies_house_mcp.mcp.registry import ToolRegistry
from companies_house_mcp.tools.base import ToolArguments, register_decorated, tool
from companies_house_mcp.tools.companies_house.client import CompaniesHouseClient

logger = logging.getLogger(__name__)

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

COMPANY_NUMBER_PROPERTY = {
    "type": "string",
    "description": "Company number (e.g., 12345678)",
}


class SearchCompaniesArguments(ToolArguments):
    query: NonEmptyStr
    items_per_page: int = 20


class CompanyNumberArguments(ToolArguments):
    company_number: NonEmptyStr


class CompanyFilingsArguments(CompanyNumberArguments):
    items_per_page: int = 25


def as_text(payload: Any) -> list[TextContent]:
    """Wrap an upstream payload as a single pretty-printed JSON text block."""
    return [TextContent(text=json.dumps(payload, indent=2, ensure_ascii=False))]


class CompaniesHouseTools:
    """The four registry lookups, bound to one upstream client."""

    def __init__(self, client: CompaniesHouseClient):
        self.client = client

    @tool(
        name="search_companies",
        description="Search for UK companies by name or keyword",
        input_schema={
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Search query for company name or keyword",
                },
                "items_per_page": {
                    "type": "number",
                    "description": "Number of results to return (default: 20)",
                    "default": 20,
                },
            },
            "required": ["query"],
        },
        arguments=SearchCompaniesArguments,
    )
    async def search_companies(self, args: SearchCompaniesArguments) -> list[TextContent]:
        result = await self.client.search_companies(args.query, args.items_per_page)
        return as_text(result)

    @tool(
        name="get_company_profile",
        description="Get detailed company profile information",
        input_schema={
            "type": "object",
            "properties": {"company_number": COMPANY_NUMBER_PROPERTY},
            "required": ["company_number"],
        },
        arguments=CompanyNumberArguments,
    )
    async def get_company_profile(self, args: CompanyNumberArguments) -> list[TextContent]:
        result = await self.client.get_company_profile(args.company_number)
        return as_text(result)

    @tool(
        name="get_company_officers",
        description="Get list of company officers (directors, secretaries, etc.)",
        input_schema={
            "type": "object",
            "properties": {"company_number": COMPANY_NUMBER_PROPERTY},
            "required": ["company_number"],
        },
        arguments=CompanyNumberArguments,
    )
    async def get_company_officers(self, args: CompanyNumberArguments) -> list[TextContent]:
        result = await self.client.get_company_officers(args.company_number)
        return as_text(result)

    @tool(
        name="get_company_filings",
        description="Get company filing history",
        input_schema={
            "type": "object",
            "properties": {
                "company_number": COMPANY_NUMBER_PROPERTY,
                "items_per_page": {
                    "type": "number",
                    "description": "Number of filings to return (default: 25)",
                    "default": 25,
                },
            },
            "required": ["company_number"],
        },
        arguments=CompanyFilingsArguments,
    )
    async def get_company_filings(self, args: CompanyFilingsArguments) -> list[TextContent]:
        result = await self.client.get_company_filings(
            args.company_number, args.items_per_page
        )
        return as_text(result)


def register_tools(registry: ToolRegistry, client: CompaniesHouseClient) -> None:
    """Register the Companies House tools, in catalogue order."""
    tools = CompaniesHouseTools(client)
    register_decorated(
        registry,
        [
            tools.search_companies,
            tools.get_company_profile,
            tools.get_company_officers,
            tools.get_company_filings,
        ],
    )
