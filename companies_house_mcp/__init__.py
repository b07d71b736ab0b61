"""Companies House MCP server: stdio, HTTP facade and Streamable HTTP transports."""

__version__ = "1.0.0"
