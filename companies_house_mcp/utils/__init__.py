"""Utility modules: logging and HTTP client."""

from companies_house_mcp.utils.logging import setup_logging, get_logger
from companies_house_mcp.utils.http import create_http_client

__all__ = [
    "setup_logging",
    "get_logger",
    "create_http_client",
]
