"""Bridge MCP tool servers into one local tool registry.

Public surface is re-exported here so callers can keep using
`from mcp_bridge import ToolRouter, build_default_router`, etc.
"""

from pathlib import Path

from .catalog import CatalogEntry, ToolDescriptor, load_catalog, write_catalog
from .config import (
    BridgeConfig,
    RemoteServerConfig,
    ServerConfig,
    StdioServerConfig,
    load_bridge_config,
    parse_bridge_config,
)
from .errors import (
    BridgeError,
    CacheError,
    ConfigurationError,
    InvocationError,
    ServerConnectionError,
    UnknownServerError,
)
from .naming import resolve_env_placeholders, sanitize_tool_name
from .pool import ConnectionPool
from .registry import AgentTool, ToolRegistry
from .router import CachedCatalog, LiveDiscovery, ToolRegistration, ToolResult, ToolRouter


async def build_default_router(config_path: str | Path | None = None) -> ToolRouter:
    router = ToolRouter(load_bridge_config(config_path))
    await router.start()
    return router


__all__ = [
    "AgentTool",
    "BridgeConfig",
    "BridgeError",
    "CacheError",
    "CachedCatalog",
    "CatalogEntry",
    "ConfigurationError",
    "ConnectionPool",
    "InvocationError",
    "LiveDiscovery",
    "RemoteServerConfig",
    "ServerConfig",
    "ServerConnectionError",
    "StdioServerConfig",
    "ToolDescriptor",
    "ToolRegistration",
    "ToolRegistry",
    "ToolResult",
    "ToolRouter",
    "UnknownServerError",
    "build_default_router",
    "load_bridge_config",
    "load_catalog",
    "parse_bridge_config",
    "resolve_env_placeholders",
    "sanitize_tool_name",
    "write_catalog",
]
