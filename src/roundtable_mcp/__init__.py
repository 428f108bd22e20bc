"""Roundtable MCP Server - multi-agent structured debates over MCP."""

__version__ = "1.0.0"
