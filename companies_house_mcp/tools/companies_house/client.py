"""Companies House public data API client."""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from companies_house_mcp.utils.http import create_http_client

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.company-information.service.gov.uk"


class UpstreamError(Exception):
    """A Companies House call failed or returned a non-success status."""


def describe_http_error(error: Exception) -> str:
    """Render an httpx failure as a short one-line message."""
    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        message = f"HTTP {response.status_code} {response.reason_phrase}"
        try:
            body = response.json()
        except ValueError:
            return message
        # The API reports failures as {"errors": [{"error": "...", ...}]}
        errors = body.get("errors") if isinstance(body, dict) else None
        if errors and isinstance(errors[0], dict) and errors[0].get("error"):
            message = f"{message}: {errors[0]['error']}"
        return message
    return str(error) or type(error).__name__


class CompaniesHouseClient:
    """Client for the Companies House API.

    Authenticates with HTTP Basic auth: the API key is the username and the
    password is empty. No retries happen here; a failure surfaces as
    UpstreamError straight away.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self._client = create_http_client(
            timeout=timeout,
            base_url=base_url,
            auth=(api_key, ""),
            transport=transport,
        )

    async def _get(
        self, path: str, action: str, params: dict[str, Any] | None = None
    ) -> Any:
        try:
            response = await self._client.get(path, params=params)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Companies House GET {path} failed: {e!r}")
            raise UpstreamError(f"Failed to {action}: {describe_http_error(e)}") from e

    async def search_companies(
        self, query: str, items_per_page: int = 20
    ) -> dict[str, Any]:
        """
        Search for companies by name or keyword.

        Args:
            query: Search term
            items_per_page: Maximum results

        Returns:
            Search payload with ``total_results`` and ``items``
        """
        return await self._get(
            "/search/companies",
            "search companies",
            params={"q": query, "items_per_page": items_per_page},
        )

    async def get_company_profile(self, company_number: str) -> dict[str, Any]:
        """Get the full company profile."""
        return await self._get(
            f"/company/{quote(company_number, safe='')}",
            "get company profile",
        )

    async def get_company_officers(self, company_number: str) -> list[dict[str, Any]]:
        """Get the company's officers (directors, secretaries, ...)."""
        data = await self._get(
            f"/company/{quote(company_number, safe='')}/officers",
            "get company officers",
        )
        return data.get("items") or []

    async def get_company_filings(
        self, company_number: str, items_per_page: int = 25
    ) -> list[dict[str, Any]]:
        """Get the company's filing history, newest first."""
        data = await self._get(
            f"/company/{quote(company_number, safe='')}/filing-history",
            "get company filings",
            params={"items_per_page": items_per_page},
        )
        return data.get("items") or []

    async def aclose(self) -> None:
        """Close the underlying HTTP client (call on shutdown)."""
        await self._client.aclose()
