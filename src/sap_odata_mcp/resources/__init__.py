"""MCP resources exposing catalog state."""

from .catalog import register_catalog_resources

__all__ = ["register_catalog_resources"]
