"""Tests for the Streamable HTTP transport."""

from fastapi.testclient import TestClient

from companies_house_mcp.mcp.registry import ToolRegistry
from companies_house_mcp.transports.streamable_http import create_streamable_app


class ExplodingDispatcher:
    """Dispatcher stand-in that fails outside the JSON-RPC error handling."""

    registry = ToolRegistry()

    async def handle_message(self, raw_data):
        raise RuntimeError("dispatcher crashed")


class TestDiscovery:
    """Tests for /health and /info."""

    def test_health(self, streamable_client: TestClient):
        """Health reports the transport name."""
        response = streamable_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["transport"] == "streamable-http"

    def test_health_does_not_touch_dispatcher(self):
        """Health stays green even when the dispatcher is broken."""
        client = TestClient(create_streamable_app(ExplodingDispatcher()))
        assert client.get("/health").status_code == 200

    def test_info(self, streamable_client: TestClient):
        """Info describes the server for discovery."""
        data = streamable_client.get("/info").json()

        assert data["name"] == "companies-house-mcp-streamable"
        assert data["protocolVersion"] == "2024-11-05"
        assert data["capabilities"] == {"tools": {}}
        assert data["transport"] == "streamable-http"


class TestMcpEndpoint:
    """Tests for POST /."""

    def test_request(self, streamable_client: TestClient, sample_jsonrpc_request):
        """Requests get 200 with the JSON-RPC response."""
        response = streamable_client.post("/", json=sample_jsonrpc_request("tools/list", id=3))

        assert response.status_code == 200
        data = response.json()
        assert data["jsonrpc"] == "2.0"
        assert data["id"] == 3
        assert len(data["result"]["tools"]) == 4

    def test_tool_call(self, streamable_client: TestClient, upstream, sample_jsonrpc_request):
        """tools/call runs the tool through the shared dispatcher."""
        request = sample_jsonrpc_request(
            "tools/call", {"name": "get_company_officers", "arguments": {"company_number": "1"}}
        )
        response = streamable_client.post("/", json=request)

        assert response.status_code == 200
        assert response.json()["result"]["content"][0]["type"] == "text"
        assert upstream.calls == [("get_company_officers", "1")]

    def test_notification(self, streamable_client: TestClient):
        """Notifications get 204 with an empty body."""
        response = streamable_client.post(
            "/", json={"jsonrpc": "2.0", "method": "notifications/initialized"}
        )

        assert response.status_code == 204
        assert response.content == b""

    def test_parse_error(self, streamable_client: TestClient):
        """Malformed JSON is answered with a parse error envelope."""
        response = streamable_client.post(
            "/", content=b"not json", headers={"Content-Type": "application/json"}
        )

        data = response.json()
        assert data["id"] is None
        assert data["error"]["code"] == -32700

    def test_tool_error_is_200(self, streamable_client: TestClient, failing_upstream, sample_jsonrpc_request):
        """Tool failures are JSON-RPC errors, not HTTP errors."""
        request = sample_jsonrpc_request(
            "tools/call", {"name": "get_company_profile", "arguments": {"company_number": "1"}}, id=12
        )
        response = streamable_client.post("/", json=request)

        assert response.status_code == 200
        assert response.json()["error"]["code"] == -32603
        assert response.json()["id"] == 12

    def test_adapter_failure(self, sample_jsonrpc_request):
        """Failures outside the dispatcher are a 500 with a -32603 envelope."""
        client = TestClient(create_streamable_app(ExplodingDispatcher()))
        response = client.post("/", json=sample_jsonrpc_request("tools/list", id=21))

        assert response.status_code == 500
        data = response.json()
        assert data["id"] == 21
        assert data["error"]["code"] == -32603
        assert data["error"]["message"] == "dispatcher crashed"
