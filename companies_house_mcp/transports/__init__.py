"""Transport adapters: stdio, HTTP facade and Streamable HTTP."""

from companies_house_mcp.transports.http_facade import create_facade_app
from companies_house_mcp.transports.stdio import LineServer, StdioServer
from companies_house_mcp.transports.streamable_http import create_streamable_app

__all__ = ["LineServer", "StdioServer", "create_facade_app", "create_streamable_app"]
