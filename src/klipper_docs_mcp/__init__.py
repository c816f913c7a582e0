"""Klipper documentation MCP server: markdown indexing, search and config lookup."""

__version__ = "1.0.0"
