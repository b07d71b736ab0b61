"""Configuration loading and management."""

from companies_house_mcp.config.loader import (
    BridgeSettings,
    Settings,
    get_bridge_settings,
    get_settings,
)

__all__ = ["Settings", "BridgeSettings", "get_settings", "get_bridge_settings"]
