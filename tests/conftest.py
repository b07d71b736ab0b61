"""Pytest configuration and fixtures."""

import os

# Settings refuse to load without a key; tests never reach the real API.
os.environ.setdefault("COMPANIES_HOUSE_API_KEY", "test-api-key")

import pytest
from fastapi.testclient import TestClient

from companies_house_mcp.mcp import create_dispatcher
from companies_house_mcp.tools import build_registry
from companies_house_mcp.tools.companies_house.client import UpstreamError
from companies_house_mcp.transports.http_facade import create_facade_app
from companies_house_mcp.transports.streamable_http import create_streamable_app

SEARCH_RESULT = {
    "total_results": 1,
    "items": [
        {
            "company_name": "TESCO PLC",
            "company_number": "00445790",
            "company_status": "active",
            "company_type": "plc",
            "date_of_creation": "1947-11-27",
            "address": {"locality": "Welwyn Garden City", "postal_code": "AL7 1GA"},
        }
    ],
}

PROFILE_RESULT = {
    "company_name": "TESCO PLC",
    "company_number": "00445790",
    "company_status": "active",
    "company_type": "plc",
    "date_of_creation": "1947-11-27",
    "registered_office_address": {"address_line_1": "Tesco House", "country": "United Kingdom"},
}

OFFICERS_RESULT = [
    {"name": "MURPHY, Ken", "officer_role": "director", "appointed_on": "2020-04-01"},
]

FILINGS_RESULT = [
    {"description": "accounts-with-accounts-type-group", "date": "2024-06-01", "category": "accounts", "type": "AA"},
]


class FakeCompaniesHouseClient:
    """In-memory stand-in for CompaniesHouseClient that records its calls."""

    search_result = SEARCH_RESULT
    profile_result = PROFILE_RESULT
    officers_result = OFFICERS_RESULT
    filings_result = FILINGS_RESULT

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.fail_with: Exception | None = None
        self.closed = False

    def _record(self, *call) -> None:
        self.calls.append(call)
        if self.fail_with is not None:
            raise self.fail_with

    async def search_companies(self, query: str, items_per_page: int = 20) -> dict:
        self._record("search_companies", query, items_per_page)
        return SEARCH_RESULT

    async def get_company_profile(self, company_number: str) -> dict:
        self._record("get_company_profile", company_number)
        return PROFILE_RESULT

    async def get_company_officers(self, company_number: str) -> list:
        self._record("get_company_officers", company_number)
        return OFFICERS_RESULT

    async def get_company_filings(self, company_number: str, items_per_page: int = 25) -> list:
        self._record("get_company_filings", company_number, items_per_page)
        return FILINGS_RESULT

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def upstream() -> FakeCompaniesHouseClient:
    """Fake upstream client shared by the registry and the /api routes."""
    return FakeCompaniesHouseClient()


@pytest.fixture
def failing_upstream(upstream: FakeCompaniesHouseClient) -> FakeCompaniesHouseClient:
    """Fake upstream client whose every call fails like a 404 from the API."""
    upstream.fail_with = UpstreamError(
        "Failed to get company profile: HTTP 404 Not Found: company-profile-not-found"
    )
    return upstream


@pytest.fixture
def registry(upstream):
    """Registry holding the four Companies House tools."""
    return build_registry(upstream)


@pytest.fixture
def dispatcher(registry):
    """Dispatcher over the Companies House registry."""
    return create_dispatcher(registry, "companies-house-mcp", "1.0.0")


@pytest.fixture
def facade_client(dispatcher, upstream) -> TestClient:
    """Synchronous test client for the HTTP facade."""
    return TestClient(create_facade_app(dispatcher, upstream))


@pytest.fixture
def streamable_client(dispatcher) -> TestClient:
    """Synchronous test client for the Streamable HTTP transport."""
    return TestClient(create_streamable_app(dispatcher))


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    """sse-starlette keeps a module-level exit event bound to the first event loop."""
    from sse_starlette import sse

    app_status = getattr(sse, "AppStatus", None)
    if app_status is not None and hasattr(app_status, "should_exit_event"):
        app_status.should_exit_event = None
    yield


@pytest.fixture
def sample_jsonrpc_request():
    """Sample JSON-RPC request factory."""
    def _make_request(method: str, params: dict = None, id: int | str = 1):
        return {
            "jsonrpc": "2.0",
            "id": id,
            "method": method,
            "params": params or {},
        }
    return _make_request
