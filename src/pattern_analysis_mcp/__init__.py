"""Fabric pattern analysis pipeline exposed as an MCP server."""

__version__ = "0.1.0"
