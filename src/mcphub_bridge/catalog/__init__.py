"""
MCP Server Catalog

The published list of servers MCPHub knows how to install.
"""

from .base import CommandTemplate, FrontendServer, ServerCatalogEntry, parse_catalog
from .manager import CatalogManager

__all__ = [
    "CatalogManager",
    "CommandTemplate",
    "FrontendServer",
    "ServerCatalogEntry",
    "parse_catalog",
]
