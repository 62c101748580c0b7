"""Expose MCP server tools as local tools and route calls back to their server.

The router gets each server's catalog from a `CatalogSource`:

- `LiveDiscovery` connects to every enabled server at startup and lists its tools.
- `CachedCatalog` reads the cache written by `python -m mcp_bridge.discover`
  and defers connections until a tool is first called.

Everything after that (naming, registration, routing, result shaping) is
shared by both sources.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol

from .catalog import CatalogEntry, ToolDescriptor, load_catalog
from .config import BridgeConfig, ServerConfig
from .errors import CacheError, InvocationError
from .naming import sanitize_tool_name
from .pool import ConnectionPool
from .registry import AgentTool, ToolHost, ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    content: List[Dict[str, Any]] = field(default_factory=list)
    is_error: bool = False

    @classmethod
    def failure(cls, message: str) -> "ToolResult":
        return cls(content=[{"type": "text", "text": message}], is_error=True)

    def as_dict(self) -> Dict[str, Any]:
        return {"content": self.content, "isError": self.is_error}


@dataclass(frozen=True)
class ToolRegistration:
    local_name: str
    server_name: str
    remote_name: str
    description: str
    input_schema: Dict[str, Any]

    @property
    def source(self) -> str:
        return f"mcp:{self.server_name}"


def _stringify(result: Any) -> str:
    if isinstance(result, str):
        return result
    if hasattr(result, "model_dump"):
        return json.dumps(result.model_dump(exclude_none=True, by_alias=True))
    try:
        return json.dumps(result)
    except TypeError:
        return str(result)


def _content_item(item: Any) -> Any:
    if hasattr(item, "model_dump"):
        return item.model_dump(exclude_none=True, by_alias=True)
    return item


def normalize_result(result: Any) -> ToolResult:
    """Shape a raw MCP call result as `{content, isError}`."""
    if isinstance(result, Mapping):
        content = result.get("content")
        flag = result.get("isError", result.get("is_error"))
    else:
        content = getattr(result, "content", None)
        flag = getattr(result, "isError", getattr(result, "is_error", None))

    if isinstance(content, list):
        items = [_content_item(item) for item in content]
    else:
        items = [{"type": "text", "text": _stringify(result)}]
    return ToolResult(content=items, is_error=flag is True)


class CatalogSource(Protocol):
    async def load(self, servers: Mapping[str, ServerConfig], pool: ConnectionPool) -> List[CatalogEntry]: ...


class LiveDiscovery:
    """Connect to every enabled server now and list its tools."""

    async def load(self, servers: Mapping[str, ServerConfig], pool: ConnectionPool) -> List[CatalogEntry]:
        results = await asyncio.gather(*(self._discover(name, pool) for name in servers))
        return [entry for entry in results if entry is not None]

    async def _discover(self, server_name: str, pool: ConnectionPool) -> Optional[CatalogEntry]:
        try:
            session = await pool.get_session(server_name)
            tools = [ToolDescriptor.coerce(tool) for tool in await session.list_tools()]
        except Exception as exc:
            logger.error("Skipping MCP server %s: %s", server_name, exc)
            return None
        logger.info("Discovered %d tool(s) on %s", len(tools), server_name)
        return CatalogEntry.now(server_name, tools)


class CachedCatalog:
    """Use a previously discovered catalog; connect lazily on first call."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    async def load(self, servers: Mapping[str, ServerConfig], pool: ConnectionPool) -> List[CatalogEntry]:
        try:
            entries = load_catalog(self.path)
        except CacheError as exc:
            logger.warning(
                "No usable MCP tool cache (%s). Run `python -m mcp_bridge.discover` to discover MCP tools.",
                exc,
            )
            return []
        if not entries:
            logger.warning("MCP tool cache %s lists no servers", self.path)
        return entries


def catalog_source_for(config: BridgeConfig) -> CatalogSource:
    if config.mode == "eager":
        return LiveDiscovery()
    return CachedCatalog(config.cache_path)


class ToolRouter:
    def __init__(
        self,
        config: BridgeConfig,
        host: Optional[ToolHost] = None,
        *,
        catalog_source: Optional[CatalogSource] = None,
        pool: Optional[ConnectionPool] = None,
    ) -> None:
        self.config = config
        self.host: ToolHost = host if host is not None else ToolRegistry(allowed=config.allow)
        self.pool = pool if pool is not None else ConnectionPool(config.servers)
        self.catalog_source = catalog_source or catalog_source_for(config)
        self._routes: Dict[str, ToolRegistration] = {}
        self._started = False

    @property
    def registrations(self) -> List[ToolRegistration]:
        return list(self._routes.values())

    def route(self, local_name: str) -> Optional[ToolRegistration]:
        return self._routes.get(local_name)

    async def start(self) -> List[ToolRegistration]:
        if self._started:
            return self.registrations
        self._started = True

        entries = await self.catalog_source.load(self.config.enabled_servers(), self.pool)
        self.register_catalog(entries)
        servers = {registration.server_name for registration in self._routes.values()}
        logger.info("Registered %d tool(s) from %d server(s)", len(self._routes), len(servers))
        return self.registrations

    async def stop(self) -> None:
        await self.pool.close_all()

    def register_catalog(self, entries: List[CatalogEntry]) -> List[ToolRegistration]:
        registered: List[ToolRegistration] = []
        for entry in entries:
            server = self.config.servers.get(entry.server)
            if server is None or not server.enabled:
                # The live config decides which servers are active.
                logger.debug("Skipping catalog for %s: server not configured or disabled", entry.server)
                continue
            for tool in entry.tools:
                registered.append(self._register(entry.server, server, tool))
        return registered

    def _register(self, server_name: str, server: ServerConfig, tool: ToolDescriptor) -> ToolRegistration:
        description = tool.description or f"MCP tool from {server_name}"
        registration = ToolRegistration(
            local_name=sanitize_tool_name(server_name, tool.name, server.tool_prefix),
            server_name=server_name,
            remote_name=tool.name,
            description=f"{description} (MCP: {server_name}/{tool.name})",
            input_schema=tool.schema_or_default(),
        )

        previous = self._routes.get(registration.local_name)
        if previous is not None:
            logger.warning(
                "Tool name collision: %s from %s/%s shadows %s/%s",
                registration.local_name,
                server_name,
                tool.name,
                previous.server_name,
                previous.remote_name,
            )
        self._routes[registration.local_name] = registration

        self.host.register_tool(
            AgentTool(
                name=registration.local_name,
                description=registration.description,
                parameters=registration.input_schema,
                handler=partial(self.invoke, registration),
                source=registration.source,
            ),
            optional=self.config.optional,
        )
        logger.debug("Routed %s -> %s/%s", registration.local_name, server_name, tool.name)
        return registration

    async def call(self, local_name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        registration = self._routes.get(local_name)
        if registration is None:
            return ToolResult.failure(f"Unknown MCP tool '{local_name}'")
        return await self.invoke(registration, arguments)

    async def invoke(self, registration: ToolRegistration, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        """Call the remote tool behind `registration`. Failures come back as results, never raised."""
        server_name, remote_name = registration.server_name, registration.remote_name

        try:
            session = await self.pool.get_session(server_name)
        except Exception as exc:
            return self._failure(InvocationError(server_name, remote_name, exc))

        try:
            result = await session.call_tool(remote_name, dict(arguments or {}))
            return normalize_result(result)
        except Exception as exc:
            return self._failure(InvocationError(server_name, remote_name, exc))

    def _failure(self, error: InvocationError) -> ToolResult:
        logger.warning("%s", error)
        return ToolResult.failure(str(error))

    async def __aenter__(self) -> "ToolRouter":
        await self.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.stop()


__all__ = [
    "CachedCatalog",
    "CatalogSource",
    "LiveDiscovery",
    "ToolRegistration",
    "ToolResult",
    "ToolRouter",
    "catalog_source_for",
    "normalize_result",
]
