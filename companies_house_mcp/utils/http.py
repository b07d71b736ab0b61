"""HTTP client construction shared by the upstream client and the bridge."""

import httpx

from companies_house_mcp import __version__

USER_AGENT = f"companies-house-mcp/{__version__}"


def create_http_client(
    timeout: float = 30.0,
    base_url: str | None = None,
    auth: httpx.Auth | tuple[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """
    Create an async HTTP client with sensible defaults.

    Args:
        timeout: Request timeout in seconds.
        base_url: Optional base URL for all requests.
        auth: Optional credentials, e.g. ``(api_key, "")`` for HTTP Basic auth.
        transport: Optional transport override (tests use ``httpx.MockTransport``).

    Returns:
        Configured httpx.AsyncClient instance. The caller owns it and must
        close it with ``aclose()``.
    """
    return httpx.AsyncClient(
        base_url=base_url or "",
        timeout=httpx.Timeout(timeout),
        auth=auth,
        transport=transport,
        follow_redirects=True,
        headers={
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        },
        limits=httpx.Limits(
            max_keepalive_connections=10,
            max_connections=20,
            keepalive_expiry=30.0,
        ),
    )
